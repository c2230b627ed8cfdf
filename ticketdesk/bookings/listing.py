"""
Ordering, grouping and retrieval of bookings.

Two orderings coexist and are deliberately kept apart:

- the bucketed view (``bucket_and_sort``) orders by journey date, ascending
  for pending bookings and descending for completed ones;
- the infinite-scroll feed (``paginate``) orders by creation instant,
  newest first, and pages with a creation-instant cursor.
"""

from datetime import date, datetime
from typing import Iterable, List, Optional, Union

from ticketdesk.bookings.classifier import classify
from ticketdesk.bookings.schemas import (
    Booking, Bucket, BucketedBookings, BookingPage, ClassifiedBooking,
    ClassFamilySplit, DateGroup, NON_AC_CLASSES
)
from ticketdesk.exceptions import DataFormatError, ValidationError
from ticketdesk.timestamps import as_utc, parse_strict


def _creation_key(booking: Booking):
    return (as_utc(booking.created_at), booking.id)


# Bucketed view
def bucket_and_sort(bookings: Iterable[Booking], today: Union[date, datetime]) -> BucketedBookings:
    """Split bookings into pending and completed buckets, each in display order"""
    pending: List[ClassifiedBooking] = []
    completed: List[ClassifiedBooking] = []

    for booking in sorted(bookings, key=_creation_key):
        classification = classify(booking, today)
        item = ClassifiedBooking(
            booking=booking,
            bucket=classification.bucket,
            effective_status=classification.effective_status
        )
        if classification.bucket == Bucket.PENDING:
            pending.append(item)
        else:
            completed.append(item)

    # Stable sorts: creation order is the tie-break
    pending.sort(key=lambda item: item.booking.journey_date)
    completed.sort(key=lambda item: item.booking.journey_date, reverse=True)

    return BucketedBookings(pending=pending, completed=completed)


def group_by_booking_date(
    items: Iterable[ClassifiedBooking],
    descending: bool = False
) -> List[DateGroup]:
    """Group classified bookings under their booking date headings"""
    groups = {}
    for item in items:
        groups.setdefault(item.booking.booking_date, []).append(item)

    return [
        DateGroup(booking_date=booking_date, bookings=groups[booking_date])
        for booking_date in sorted(groups, reverse=descending)
    ]


def split_by_class_family(bookings: Iterable[Booking]) -> ClassFamilySplit:
    """Separate AC bookings from sleeper/sitting/unreserved ones"""
    split = ClassFamilySplit()
    for booking in bookings:
        if booking.class_type in NON_AC_CLASSES:
            split.non_ac.append(booking)
        else:
            split.ac.append(booking)
    return split


def distinct_booking_dates(bookings: Iterable[Booking]) -> List[date]:
    """Distinct booking dates, newest first"""
    return sorted({booking.booking_date for booking in bookings}, reverse=True)


# Created-at feed
def check_limit(limit_count) -> None:
    if isinstance(limit_count, bool) or not isinstance(limit_count, int) or limit_count <= 0:
        raise ValidationError(f"limit_count must be a positive integer, got {limit_count!r}")


def parse_cursor(last_created_at) -> Optional[datetime]:
    """Normalise a feed cursor; ``None`` means start from the newest booking"""
    if last_created_at is None:
        return None
    try:
        return parse_strict(last_created_at, "lastCreatedAt")
    except DataFormatError as exc:
        raise ValidationError(f"Invalid cursor: {last_created_at!r}") from exc


def paginate(
    bookings: Iterable[Booking],
    last_created_at: Optional[datetime],
    limit_count: int
) -> BookingPage:
    """Return the page of bookings created strictly before ``last_created_at``.

    ``last_created_at=None`` starts from the most recent booking. The page's
    ``next_cursor`` is the creation instant of its last booking when the page
    is full, and ``None`` otherwise.

    Cursor ties are not resolved: a booking sharing its ``created_at`` with
    the last booking of the previous page is skipped by the next page.
    """
    check_limit(limit_count)
    cursor = parse_cursor(last_created_at)

    ordered = sorted(bookings, key=_creation_key, reverse=True)
    if cursor is not None:
        ordered = [booking for booking in ordered if as_utc(booking.created_at) < cursor]

    page = ordered[:limit_count]
    next_cursor = page[-1].created_at if len(page) == limit_count else None

    return BookingPage(
        bookings=page,
        next_cursor=next_cursor,
        has_more=len(ordered) > limit_count
    )


# Free-text search
def _searchable_values(booking: Booking):
    for passenger in booking.passengers:
        yield passenger.name
    yield booking.user_name
    yield booking.source
    yield booking.destination
    yield booking.class_type.value
    yield booking.train_preference
    yield booking.remarks


def search(bookings: Iterable[Booking], query: Optional[str]) -> List[Booking]:
    """Case-insensitive match over passenger names, client, route, class and preferences"""
    needle = (query or "").strip().lower()
    if not needle:
        return list(bookings)

    return [
        booking for booking in bookings
        if any(value and needle in value.lower() for value in _searchable_values(booking))
    ]
