from datetime import date, datetime, timedelta, timezone

import pytest

from factories import make_booking
from ticketdesk.bookings.classifier import TERMINAL_STATUSES, classify, is_pending
from ticketdesk.bookings.schemas import BookingStatus, Bucket

TODAY = date(2025, 2, 10)
YESTERDAY = TODAY - timedelta(days=1)
TOMORROW = TODAY + timedelta(days=1)


@pytest.mark.parametrize("journey_date", [YESTERDAY, TODAY - timedelta(days=30)])
def test_past_requested_booking_is_missed(journey_date) -> None:
    booking = make_booking(journey_date=journey_date, status=BookingStatus.REQUESTED)
    result = classify(booking, TODAY)
    assert result.bucket == Bucket.COMPLETED
    assert result.effective_status == BookingStatus.MISSED
    # The stored status is left alone
    assert booking.status == BookingStatus.REQUESTED


@pytest.mark.parametrize("journey_date", [TODAY, TOMORROW, TODAY + timedelta(days=90)])
def test_upcoming_requested_booking_is_pending(journey_date) -> None:
    result = classify(make_booking(journey_date=journey_date), TODAY)
    assert result.bucket == Bucket.PENDING
    assert result.effective_status == BookingStatus.REQUESTED


@pytest.mark.parametrize("status", [BookingStatus.FAILED_PAID, BookingStatus.FAILED_UNPAID])
def test_upcoming_failed_booking_stays_pending(status) -> None:
    result = classify(make_booking(journey_date=TOMORROW, status=status), TODAY)
    assert result.bucket == Bucket.PENDING
    assert result.effective_status == status


@pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
def test_past_terminal_booking_keeps_its_status(status) -> None:
    result = classify(make_booking(journey_date=YESTERDAY, status=status), TODAY)
    assert result.bucket == Bucket.COMPLETED
    assert result.effective_status == status


@pytest.mark.parametrize(
    "status",
    [BookingStatus.BOOKED, BookingStatus.CNF_CANCELLED, BookingStatus.USER_CANCELLED, BookingStatus.MISSED],
)
def test_upcoming_resolved_booking_is_completed(status) -> None:
    result = classify(make_booking(journey_date=TOMORROW, status=status), TODAY)
    assert result.bucket == Bucket.COMPLETED
    assert result.effective_status == status


def test_past_failed_booking_is_not_reclassified_as_missed() -> None:
    result = classify(make_booking(journey_date=YESTERDAY, status=BookingStatus.FAILED_UNPAID), TODAY)
    assert result.effective_status == BookingStatus.FAILED_UNPAID


def test_today_as_instant_uses_utc_calendar_day() -> None:
    booking = make_booking(journey_date=TODAY)
    late_evening_utc = datetime(2025, 2, 10, 23, 30, tzinfo=timezone.utc)
    next_morning_ist = datetime(2025, 2, 11, 5, 0, tzinfo=timezone(timedelta(hours=5, minutes=30)))

    assert is_pending(booking, late_evening_utc)
    assert is_pending(booking, next_morning_ist)
    assert not is_pending(booking, datetime(2025, 2, 11, 0, 0, tzinfo=timezone.utc))
