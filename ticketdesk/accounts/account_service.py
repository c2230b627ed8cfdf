import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ticketdesk import models
from ticketdesk.accounts.ledger import apply_adjustment, mark_booked, revert_booked, wallet_adjustments
from ticketdesk.accounts.schemas import (
    Account, AccountCreate, AccountUpdate, BookingRecord, BookingRecordSave, Handler,
    HandlerCreate, HandlerUpdate, UsageStats
)
from ticketdesk.accounts.usage import account_usage, handler_usage
from ticketdesk.documents import map_account, map_booking_record, map_documents, map_handler
from ticketdesk.exceptions import NotFoundError, ValidationError
from ticketdesk.timestamps import utcnow

logger = logging.getLogger(__name__)

class AccountService:
    """Service for the reservation account pool, handlers and payment records"""

    def __init__(self, db: Session):
        self.db = db

    # ================================
    # Reservation Accounts
    # ================================
    def list_accounts(self) -> List[Account]:
        """Accounts ordered by wallet balance, richest first"""
        rows = self.db.query(models.Account).order_by(models.Account.wallet_amount.desc()).all()
        return map_documents(((row.id, row.as_document()) for row in rows), map_account, kind="account")

    def get_account(self, account_id: str) -> Account:
        row = self._get_account_row(account_id)
        return map_account(row.id, row.as_document())

    def create_account(self, request: AccountCreate) -> Account:
        username = request.username.strip()
        self._ensure_unique_username(username)

        row = models.Account(
            username=username,
            password=request.password,
            wallet_amount=request.wallet_amount,
            last_booked_date=request.last_booked_date
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        logger.info("Added account %s", username)
        return map_account(row.id, row.as_document())

    def update_account(self, account_id: str, request: AccountUpdate) -> Account:
        row = self._get_account_row(account_id)
        username = request.username.strip()
        if username != row.username:
            self._ensure_unique_username(username)
            logger.warning(
                "Renaming account %s to %s; existing payment records keep the old name",
                row.username, username
            )

        row.username = username
        row.password = request.password
        row.wallet_amount = request.wallet_amount
        row.last_booked_date = request.last_booked_date
        self.db.commit()
        self.db.refresh(row)
        return map_account(row.id, row.as_document())

    def delete_account(self, account_id: str) -> None:
        row = self._get_account_row(account_id)
        self.db.delete(row)
        self.db.commit()
        logger.info("Removed account %s", row.username)

    def top_up_wallet(self, account_id: str, amount: Decimal) -> Account:
        """Add funds to an account wallet"""
        if amount <= 0:
            raise ValidationError("Top-up amount must be positive")
        row = self._get_account_row(account_id)
        row.wallet_amount = apply_adjustment(Decimal(row.wallet_amount or 0), amount, row.username)
        self.db.commit()
        self.db.refresh(row)
        logger.info("Topped up %s by %s", row.username, amount)
        return map_account(row.id, row.as_document())

    # ================================
    # Handlers
    # ================================
    def list_handlers(self) -> List[Handler]:
        rows = self.db.query(models.Handler).order_by(models.Handler.name.asc()).all()
        return map_documents(((row.id, row.as_document()) for row in rows), map_handler, kind="handler")

    def create_handler(self, request: HandlerCreate) -> Handler:
        name = request.name.strip()
        if self.db.query(models.Handler).filter(models.Handler.name == name).first():
            raise ValidationError(f"Handler '{name}' already exists")

        row = models.Handler(name=name)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return map_handler(row.id, row.as_document())

    def update_handler(self, handler_id: str, request: HandlerUpdate) -> Handler:
        row = self._get_handler_row(handler_id)
        name = request.name.strip()
        if name != row.name:
            if self.db.query(models.Handler).filter(models.Handler.name == name).first():
                raise ValidationError(f"Handler '{name}' already exists")
            logger.warning("Renaming handler %s to %s; existing payment records keep the old name", row.name, name)
        row.name = name
        self.db.commit()
        self.db.refresh(row)
        return map_handler(row.id, row.as_document())

    def delete_handler(self, handler_id: str) -> None:
        row = self._get_handler_row(handler_id)
        self.db.delete(row)
        self.db.commit()

    # ================================
    # Payment Records
    # ================================
    def list_booking_records(self) -> List[BookingRecord]:
        rows = self.db.query(models.BookingRecord).order_by(models.BookingRecord.created_at.desc()).all()
        return map_documents(((row.id, row.as_document()) for row in rows), map_booking_record, kind="booking record")

    def get_record_by_booking(self, booking_id: str) -> Optional[BookingRecord]:
        """Payment record of a booking, if one was saved"""
        row = self._find_record_row(booking_id)
        if row is None:
            return None
        return map_booking_record(row.id, row.as_document())

    def save_booking_record(self, request: BookingRecordSave) -> BookingRecord:
        """Create or replace the payment record of a booking.

        Wallet charges are moved between accounts so that only the current
        record's wallet charge is debited. The charged account's last booked
        date follows the booking date, and a previously charged account has
        its date reverted.
        """
        booking = self.db.get(models.Booking, request.booking_id)
        if booking is None:
            raise NotFoundError("Booking", request.booking_id)

        new_account = self._get_account_row_by_username(request.booked_account_username)
        if new_account is None:
            raise NotFoundError("Account", request.booked_account_username)

        row = self._find_record_row(request.booking_id)
        previous = map_booking_record(row.id, row.as_document()) if row is not None else None

        try:
            accounts: Dict[str, models.Account] = {new_account.username: new_account}
            for username, delta in wallet_adjustments(previous, request).items():
                account = accounts.get(username) or self._get_account_row_by_username(username)
                if account is None:
                    logger.warning("Wallet account %s no longer exists; skipping adjustment of %s", username, delta)
                    continue
                accounts[username] = account
                account.wallet_amount = apply_adjustment(Decimal(account.wallet_amount or 0), delta, username)

            if previous is None:
                mark_booked(new_account, booking.booking_date)
            elif previous.booked_account_username != new_account.username:
                old_account = self._get_account_row_by_username(previous.booked_account_username)
                if old_account is not None:
                    revert_booked(old_account)
                mark_booked(new_account, booking.booking_date)

            if row is None:
                row = models.BookingRecord(booking_id=request.booking_id)
                self.db.add(row)
            row.booking_ids = list(request.booking_ids)
            row.group_id = request.group_id or booking.group_id
            row.booked_by = request.booked_by.strip()
            row.booked_account_username = new_account.username
            row.amount_charged = request.amount_charged
            row.method_used = request.method_used.value

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(row)
        logger.info(
            "Saved payment record for booking %s (%s via %s, %s)",
            request.booking_id, request.amount_charged, request.method_used.value, new_account.username
        )
        return map_booking_record(row.id, row.as_document())

    def delete_booking_record(self, record_id: str) -> None:
        """Remove a payment record, refunding any wallet charge"""
        row = self.db.get(models.BookingRecord, record_id)
        if row is None:
            raise NotFoundError("Booking record", record_id)
        record = map_booking_record(row.id, row.as_document())

        try:
            account = self._get_account_row_by_username(record.booked_account_username)
            if account is not None:
                for username, delta in wallet_adjustments(record, None).items():
                    account.wallet_amount = apply_adjustment(Decimal(account.wallet_amount or 0), delta, username)
                revert_booked(account)
            else:
                logger.warning("Account %s no longer exists; nothing to refund", record.booked_account_username)

            self.db.delete(row)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # ================================
    # Usage Statistics
    # ================================
    def get_account_stats(self, now: Optional[datetime] = None, days: Optional[int] = None) -> List[UsageStats]:
        """Per-account usage over the trailing window"""
        return account_usage(self.list_accounts(), self.list_booking_records(), now or utcnow(), days)

    def get_handler_stats(self, since: Optional[datetime] = None) -> List[UsageStats]:
        """Per-handler usage since the configured epoch"""
        return handler_usage(self.list_handlers(), self.list_booking_records(), since)

    # ================================
    # Helpers
    # ================================
    def _get_account_row(self, account_id: str) -> models.Account:
        row = self.db.get(models.Account, account_id)
        if row is None:
            raise NotFoundError("Account", account_id)
        return row

    def _get_account_row_by_username(self, username: str) -> Optional[models.Account]:
        return self.db.query(models.Account).filter(models.Account.username == username).first()

    def _get_handler_row(self, handler_id: str) -> models.Handler:
        row = self.db.get(models.Handler, handler_id)
        if row is None:
            raise NotFoundError("Handler", handler_id)
        return row

    def _find_record_row(self, booking_id: str) -> Optional[models.BookingRecord]:
        return self.db.query(models.BookingRecord).filter(models.BookingRecord.booking_id == booking_id).first()

    def _ensure_unique_username(self, username: str) -> None:
        if self._get_account_row_by_username(username) is not None:
            raise ValidationError(f"Account '{username}' already exists")
