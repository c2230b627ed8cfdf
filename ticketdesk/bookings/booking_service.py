import logging
from datetime import date, datetime
from typing import Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from ticketdesk import models
from ticketdesk.bookings.listing import (
    bucket_and_sort, check_limit, distinct_booking_dates, paginate, parse_cursor, search
)
from ticketdesk.bookings.refunds import pending_refunds, refund_queue_summary
from ticketdesk.bookings.schemas import (
    Booking, BookingCreate, BookingGroup, BookingGroupCreate, BookingPage, BookingStatus,
    BookingStatusUpdate, BookingUpdate, BucketedBookings, Passenger, RefundDetails,
    RefundQueueSummary
)
from ticketdesk.documents import map_booking, map_booking_group, map_documents
from ticketdesk.exceptions import NotFoundError, ValidationError
from ticketdesk.timestamps import utcnow

logger = logging.getLogger(__name__)

class BookingService:
    """Service for tracking client booking requests"""

    def __init__(self, db: Session):
        self.db = db

    # ================================
    # Reads
    # ================================
    def list_bookings(self) -> List[Booking]:
        """All mappable bookings, newest first"""
        rows = self.db.query(models.Booking).order_by(models.Booking.created_at.desc()).all()
        return self._map_rows(rows)

    def get_booking(self, booking_id: str) -> Booking:
        row = self._get_row(booking_id)
        return map_booking(row.id, row.as_document())

    def get_bookings_view(
        self,
        today: Union[date, datetime],
        query: Optional[str] = None
    ) -> BucketedBookings:
        """Pending/completed buckets, optionally narrowed by a search query"""
        bookings = self.list_bookings()
        if query:
            bookings = search(bookings, query)
        return bucket_and_sort(bookings, today)

    def get_bookings_page(
        self,
        last_created_at: Optional[datetime],
        limit_count: int
    ) -> BookingPage:
        """One page of the created-at feed"""
        check_limit(limit_count)
        cursor = parse_cursor(last_created_at)

        # One extra booking tells the feed whether another page exists.
        # Unmappable rows are dropped, so keep reading below the last raw row.
        bookings: List[Booking] = []
        boundary = cursor
        while len(bookings) <= limit_count:
            wanted = limit_count + 1 - len(bookings)
            query = self.db.query(models.Booking)
            if boundary is not None:
                query = query.filter(models.Booking.created_at < boundary)
            rows = query.order_by(models.Booking.created_at.desc()).limit(wanted).all()

            bookings.extend(self._map_rows(rows))
            if len(rows) < wanted or rows[-1].created_at is None:
                break
            boundary = rows[-1].created_at

        return paginate(bookings, cursor, limit_count)

    def search_bookings(self, query: str) -> List[Booking]:
        return search(self.list_bookings(), query)

    def get_pending_refunds(self) -> List[Booking]:
        return pending_refunds(self.list_bookings())

    def get_refund_summary(self) -> RefundQueueSummary:
        return refund_queue_summary(self.list_bookings())

    def get_booking_dates(self) -> List[date]:
        return distinct_booking_dates(self.list_bookings())

    # ================================
    # Writes
    # ================================
    def create_booking(self, request: BookingCreate) -> Booking:
        """Track a new booking request; always starts as Requested"""
        row = models.Booking(status=BookingStatus.REQUESTED.value)
        self._apply_form(row, request)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        logger.info("Created booking %s (%s -> %s, %s)", row.id, row.source, row.destination, row.journey_date)
        return map_booking(row.id, row.as_document())

    def update_booking(self, booking_id: str, request: BookingUpdate) -> Booking:
        row = self._get_row(booking_id)
        self._apply_form(row, request)
        self.db.commit()
        self.db.refresh(row)
        return map_booking(row.id, row.as_document())

    def delete_booking(self, booking_id: str) -> None:
        """Delete a booking that no payment record references"""
        row = self._get_row(booking_id)
        referencing = [
            record.id for record in self.db.query(models.BookingRecord).all()
            if record.booking_id == booking_id or booking_id in (record.booking_ids or [])
        ]
        if referencing:
            raise ValidationError(
                f"Booking {booking_id} is referenced by payment record(s) {', '.join(referencing)}"
            )
        self.db.delete(row)
        self.db.commit()
        logger.info("Deleted booking %s", booking_id)

    def update_status(self, booking_id: str, update: BookingStatusUpdate) -> Booking:
        """Explicit status change; the only path back to Requested"""
        row = self._get_row(booking_id)
        previous = row.status
        row.status = update.status.value

        # None leaves the field alone, blank clears it
        if update.reason is not None:
            row.status_reason = update.reason.strip() or None
        if update.handler is not None:
            row.status_handler = update.handler.strip() or None

        self.db.commit()
        self.db.refresh(row)
        logger.info("Booking %s status %s -> %s", booking_id, previous, row.status)
        return map_booking(row.id, row.as_document())

    def update_prepared_accounts(self, booking_id: str, usernames: List[str]) -> Booking:
        row = self._get_row(booking_id)
        row.prepared_accounts = list(usernames) or None
        self.db.commit()
        self.db.refresh(row)
        return map_booking(row.id, row.as_document())

    def set_refund_details(self, booking_id: str, details: RefundDetails) -> Booking:
        """Attach a received refund; the booking leaves the refund queue"""
        row = self._get_row(booking_id)
        row.refund_details = {
            "amount": float(details.amount),
            "date": details.date.isoformat(),
            "method": details.method,
            "accountId": details.account_id,
        }
        self.db.commit()
        self.db.refresh(row)
        logger.info("Recorded refund of %s for booking %s", details.amount, booking_id)
        return map_booking(row.id, row.as_document())

    def clear_refund_details(self, booking_id: str) -> Booking:
        row = self._get_row(booking_id)
        row.refund_details = None
        self.db.commit()
        self.db.refresh(row)
        return map_booking(row.id, row.as_document())

    # ================================
    # Booking Groups
    # ================================
    def list_groups(self) -> List[BookingGroup]:
        rows = self.db.query(models.BookingGroup).order_by(models.BookingGroup.created_at.desc()).all()
        return map_documents(((row.id, row.as_document()) for row in rows), map_booking_group, kind="booking group")

    def create_group(self, request: BookingGroupCreate) -> BookingGroup:
        """Group bookings that are paid for together"""
        bookings = [self._get_row(booking_id) for booking_id in request.booking_ids]
        group = models.BookingGroup(
            name=request.name or f"Group Booking {utcnow().date().isoformat()}",
            booking_ids=list(request.booking_ids)
        )
        self.db.add(group)
        self.db.flush()
        for booking in bookings:
            booking.group_id = group.id
        self.db.commit()
        self.db.refresh(group)
        return map_booking_group(group.id, group.as_document())

    def add_to_group(self, group_id: str, booking_id: str) -> BookingGroup:
        group = self._get_group_row(group_id)
        booking = self._get_row(booking_id)
        if booking_id not in (group.booking_ids or []):
            group.booking_ids = list(group.booking_ids or []) + [booking_id]
            booking.group_id = group.id
            self.db.commit()
            self.db.refresh(group)
        return map_booking_group(group.id, group.as_document())

    def ungroup(self, group_id: str) -> None:
        group = self._get_group_row(group_id)
        for booking in self.db.query(models.Booking).filter(models.Booking.group_id == group_id).all():
            booking.group_id = None
        self.db.delete(group)
        self.db.commit()

    # ================================
    # Helpers
    # ================================
    def _get_row(self, booking_id: str) -> models.Booking:
        row = self.db.get(models.Booking, booking_id)
        if row is None:
            raise NotFoundError("Booking", booking_id)
        return row

    def _get_group_row(self, group_id: str) -> models.BookingGroup:
        row = self.db.get(models.BookingGroup, group_id)
        if row is None:
            raise NotFoundError("Booking group", group_id)
        return row

    def _map_rows(self, rows: Iterable[models.Booking]) -> List[Booking]:
        return map_documents(((row.id, row.as_document()) for row in rows), map_booking, kind="booking")

    def _apply_form(self, row: models.Booking, form: BookingCreate) -> None:
        row.source = form.source.strip()
        row.destination = form.destination.strip()
        row.journey_date = form.journey_date
        row.booking_date = form.booking_date
        row.user_name = form.user_name.strip()
        row.passengers = [self._passenger_document(p) for p in form.passengers]
        row.class_type = form.class_type.value
        row.booking_type = form.booking_type.value
        row.train_preference = form.train_preference or None
        row.remarks = form.remarks or None

    @staticmethod
    def _passenger_document(passenger: Passenger) -> dict:
        document = {"name": passenger.name, "age": passenger.age, "gender": passenger.gender}
        if passenger.berth_preference is not None:
            document["berthPreference"] = passenger.berth_preference
        return document
