"""Wallet and last-booked-date bookkeeping for payment records."""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Optional

from ticketdesk.accounts.schemas import BookingRecordBase
from ticketdesk.bookings.schemas import PaymentMethod
from ticketdesk.exceptions import ValidationError


def wallet_adjustments(
    previous: Optional[BookingRecordBase],
    current: Optional[BookingRecordBase]
) -> Dict[str, Decimal]:
    """Net wallet change per account username when a payment record changes.

    A previous wallet charge is credited back to its account and a new wallet
    charge is debited from its account. Pass ``current=None`` for a deletion
    and ``previous=None`` for a new record.
    """
    adjustments: Dict[str, Decimal] = defaultdict(Decimal)

    if previous is not None and previous.method_used == PaymentMethod.WALLET:
        adjustments[previous.booked_account_username] += previous.amount_charged

    if current is not None and current.method_used == PaymentMethod.WALLET:
        adjustments[current.booked_account_username] -= current.amount_charged

    return {username: delta for username, delta in adjustments.items() if delta != 0}


def apply_adjustment(balance: Decimal, delta: Decimal, username: str) -> Decimal:
    new_balance = (balance or Decimal('0')) + delta
    if new_balance < 0:
        raise ValidationError(
            f"Insufficient wallet balance for '{username}'. "
            f"Available: ₹{balance:.2f}, Required: ₹{-delta:.2f}"
        )
    return new_balance


def mark_booked(account, booking_date: Optional[date]) -> None:
    """Record a new booking date, remembering the old one for revert"""
    if booking_date is None:
        return
    account.previous_last_booked_date = account.last_booked_date
    account.last_booked_date = booking_date


def revert_booked(account) -> None:
    account.last_booked_date = account.previous_last_booked_date
    account.previous_last_booked_date = None
