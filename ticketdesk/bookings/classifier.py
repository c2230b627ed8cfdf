"""
View-time status classification.

A booking's stored status is never rewritten when its journey date passes.
Instead the display bucket and the status shown to users are derived from
``(status, journey_date, today)`` every time bookings are read.
"""

from datetime import date, datetime
from typing import Union

from ticketdesk.bookings.schemas import Booking, BookingStatus, Bucket, Classification
from ticketdesk.timestamps import as_calendar_day

PENDING_STATUSES = frozenset({
    BookingStatus.REQUESTED,
    BookingStatus.FAILED_PAID,
    BookingStatus.FAILED_UNPAID,
})

TERMINAL_STATUSES = frozenset({
    BookingStatus.BOOKED,
    BookingStatus.MISSED,
    BookingStatus.FAILED_PAID,
    BookingStatus.FAILED_UNPAID,
    BookingStatus.CNF_CANCELLED,
    BookingStatus.USER_CANCELLED,
})


def classify(booking: Booking, today: Union[date, datetime]) -> Classification:
    """Derive the display bucket and effective status of a booking"""
    today = as_calendar_day(today)
    status = booking.status

    if booking.journey_date >= today:
        if status in PENDING_STATUSES:
            return Classification(bucket=Bucket.PENDING, effective_status=status)
        # Future journey already resolved
        return Classification(bucket=Bucket.COMPLETED, effective_status=status)

    if status == BookingStatus.REQUESTED:
        # Journey passed without anyone booking it
        return Classification(bucket=Bucket.COMPLETED, effective_status=BookingStatus.MISSED)

    return Classification(bucket=Bucket.COMPLETED, effective_status=status)


def is_pending(booking: Booking, today: Union[date, datetime]) -> bool:
    return classify(booking, today).bucket == Bucket.PENDING
