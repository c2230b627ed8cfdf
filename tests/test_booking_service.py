import logging
from datetime import date, timedelta
from decimal import Decimal

import pytest

from factories import T0, add_booking_row, add_record_row
from ticketdesk.bookings.booking_service import BookingService
from ticketdesk.bookings.schemas import (
    BookingCreate, BookingGroupCreate, BookingStatus, BookingStatusUpdate, BookingUpdate, RefundDetails
)
from ticketdesk.exceptions import NotFoundError, ValidationError
from ticketdesk.timestamps import utcnow

TODAY = date(2025, 2, 10)


def booking_request(**overrides) -> BookingCreate:
    fields = dict(
        source="NDLS",
        destination="BCT",
        journey_date=TODAY + timedelta(days=1),
        booking_date=TODAY,
        user_name="Sharma",
        passengers=[{"name": "Anil Sharma", "age": 42, "gender": "M", "berth_preference": True}],
        class_type="3A",
        remarks="Lower berth",
    )
    fields.update(overrides)
    return BookingCreate(**fields)


def test_create_booking_starts_requested(db) -> None:
    service = BookingService(db)
    booking = service.create_booking(booking_request())

    assert booking.status == BookingStatus.REQUESTED
    assert booking.created_at.tzinfo is not None
    assert booking.passengers[0].berth_preference is True
    assert service.get_booking(booking.id) == booking


def test_create_booking_requires_passengers() -> None:
    with pytest.raises(ValueError):
        booking_request(passengers=[])


def test_get_missing_booking(db) -> None:
    with pytest.raises(NotFoundError):
        BookingService(db).get_booking("missing")


def test_update_booking_keeps_status(db) -> None:
    service = BookingService(db)
    booking = service.create_booking(booking_request())
    service.update_status(booking.id, BookingStatusUpdate(status=BookingStatus.BOOKED, handler="Asha"))

    updated = service.update_booking(booking.id, BookingUpdate(**booking_request(user_name="Verma").model_dump()))

    assert updated.user_name == "Verma"
    assert updated.status == BookingStatus.BOOKED


def test_status_update_reason_handling(db) -> None:
    service = BookingService(db)
    booking = service.create_booking(booking_request())

    failed = service.update_status(
        booking.id,
        BookingStatusUpdate(status=BookingStatus.FAILED_PAID, reason="Waitlisted", handler="Ravi"),
    )
    assert (failed.status_reason, failed.status_handler) == ("Waitlisted", "Ravi")

    kept = service.update_status(booking.id, BookingStatusUpdate(status=BookingStatus.CNF_CANCELLED))
    assert kept.status_reason == "Waitlisted"

    reopened = service.update_status(booking.id, BookingStatusUpdate(status=BookingStatus.REQUESTED, reason=""))
    assert reopened.status == BookingStatus.REQUESTED
    assert reopened.status_reason is None


def test_stored_status_is_not_rewritten_by_views(db) -> None:
    service = BookingService(db)
    booking = service.create_booking(booking_request(journey_date=TODAY - timedelta(days=2)))

    view = service.get_bookings_view(TODAY)

    assert view.completed[0].effective_status == BookingStatus.MISSED
    assert service.get_booking(booking.id).status == BookingStatus.REQUESTED


def test_view_skips_unmappable_rows(db, caplog) -> None:
    add_booking_row(db, T0, journey_date=TODAY + timedelta(days=3))
    add_booking_row(db, T0 + timedelta(minutes=1), status="Lost in transit")

    with caplog.at_level(logging.ERROR, logger="ticketdesk.documents"):
        view = BookingService(db).get_bookings_view(TODAY)

    assert len(view.pending) == 1
    assert view.completed == []
    assert "[Mapping Error]" in caplog.text


def test_view_with_search(db) -> None:
    service = BookingService(db)
    service.create_booking(booking_request())
    service.create_booking(booking_request(user_name="Khan", passengers=[{"name": "Imran Khan", "age": 52, "gender": "M"}]))

    view = service.get_bookings_view(TODAY, query="imran")

    assert [item.booking.user_name for item in view.pending] == ["Khan"]


def test_feed_pages_by_creation_time(db) -> None:
    rows = [add_booking_row(db, T0 + timedelta(minutes=i)) for i in range(5)]
    service = BookingService(db)

    first = service.get_bookings_page(None, 2)
    second = service.get_bookings_page(first.next_cursor, 2)
    third = service.get_bookings_page(second.next_cursor, 2)

    ids = [b.id for page in (first, second, third) for b in page.bookings]
    assert ids == [row.id for row in reversed(rows)]
    assert (first.has_more, second.has_more, third.has_more) == (True, True, False)
    assert third.next_cursor is None


def test_feed_rejects_bad_limit(db) -> None:
    with pytest.raises(ValidationError):
        BookingService(db).get_bookings_page(None, 0)


def test_refund_lifecycle(db) -> None:
    service = BookingService(db)
    booking = service.create_booking(booking_request())
    service.update_status(booking.id, BookingStatusUpdate(status=BookingStatus.FAILED_PAID))

    assert [b.id for b in service.get_pending_refunds()] == [booking.id]
    assert service.get_refund_summary().count == 1

    refunded = service.set_refund_details(
        booking.id, RefundDetails(amount=Decimal("812.50"), date=TODAY, method="UPI")
    )
    assert refunded.refund_details.amount == Decimal("812.5")
    assert service.get_pending_refunds() == []

    service.clear_refund_details(booking.id)
    assert len(service.get_pending_refunds()) == 1


def test_prepared_accounts(db) -> None:
    service = BookingService(db)
    booking = service.create_booking(booking_request())
    updated = service.update_prepared_accounts(booking.id, ["agent1", "agent2"])
    assert updated.prepared_accounts == ["agent1", "agent2"]


def test_booking_dates(db) -> None:
    service = BookingService(db)
    service.create_booking(booking_request(booking_date=date(2025, 2, 8)))
    service.create_booking(booking_request(booking_date=date(2025, 2, 9)))
    service.create_booking(booking_request(booking_date=date(2025, 2, 8)))
    assert service.get_booking_dates() == [date(2025, 2, 9), date(2025, 2, 8)]


def test_delete_refused_while_payment_record_exists(db) -> None:
    service = BookingService(db)
    booking = service.create_booking(booking_request())
    record = add_record_row(db, T0, booking_id="other", booking_ids=["other", booking.id])

    with pytest.raises(ValidationError):
        service.delete_booking(booking.id)

    db.delete(record)
    db.commit()
    service.delete_booking(booking.id)
    with pytest.raises(NotFoundError):
        service.get_booking(booking.id)


def test_booking_groups(db) -> None:
    service = BookingService(db)
    first = service.create_booking(booking_request())
    second = service.create_booking(booking_request())
    third = service.create_booking(booking_request())

    group = service.create_group(BookingGroupCreate(booking_ids=[first.id, second.id], name="Sharma family"))
    assert group.booking_ids == [first.id, second.id]
    assert service.get_booking(first.id).group_id == group.id

    group = service.add_to_group(group.id, third.id)
    assert group.booking_ids == [first.id, second.id, third.id]
    assert [g.id for g in service.list_groups()] == [group.id]

    service.ungroup(group.id)
    assert service.list_groups() == []
    assert service.get_booking(third.id).group_id is None


def test_group_with_unknown_booking(db) -> None:
    with pytest.raises(NotFoundError):
        BookingService(db).create_group(BookingGroupCreate(booking_ids=["missing"]))


def walk_feed(service: BookingService, limit_count: int) -> list:
    ids, cursor = [], None
    for _ in range(20):
        page = service.get_bookings_page(cursor, limit_count)
        ids.extend(b.id for b in page.bookings)
        if page.next_cursor is None:
            break
        cursor = page.next_cursor
    return ids


def test_feed_reads_past_unmappable_rows(db) -> None:
    good1 = add_booking_row(db, T0)
    good2 = add_booking_row(db, T0 + timedelta(minutes=1))
    add_booking_row(db, T0 + timedelta(minutes=2), status="Bogus")
    add_booking_row(db, T0 + timedelta(minutes=3), status="Bogus")
    good5 = add_booking_row(db, T0 + timedelta(minutes=4))
    service = BookingService(db)

    first = service.get_bookings_page(None, 2)
    assert [b.id for b in first.bookings] == [good5.id, good2.id]
    assert first.has_more is True
    assert first.next_cursor is not None

    assert walk_feed(service, 2) == [good5.id, good2.id, good1.id]


@pytest.mark.parametrize("limit_count", [1, 2, 3])
def test_feed_skips_long_runs_of_unmappable_rows(db, limit_count) -> None:
    good = [add_booking_row(db, T0 + timedelta(minutes=i)) for i in range(3)]
    for i in range(3, 10):
        add_booking_row(db, T0 + timedelta(minutes=i), status="Bogus")
    newest = add_booking_row(db, T0 + timedelta(minutes=10))

    expected = [newest.id] + [row.id for row in reversed(good)]
    assert walk_feed(BookingService(db), limit_count) == expected


def test_feed_ends_when_only_unmappable_rows_remain(db) -> None:
    good = add_booking_row(db, T0 + timedelta(minutes=5))
    add_booking_row(db, T0, status="Bogus")
    add_booking_row(db, T0 + timedelta(minutes=1), status="Bogus")

    page = BookingService(db).get_bookings_page(None, 1)

    assert [b.id for b in page.bookings] == [good.id]
    assert page.has_more is False


def test_default_group_name_uses_utc_day(db) -> None:
    service = BookingService(db)
    booking = service.create_booking(booking_request())

    before = utcnow().date()
    group = service.create_group(BookingGroupCreate(booking_ids=[booking.id]))
    after = utcnow().date()

    assert group.name in {f"Group Booking {before.isoformat()}", f"Group Booking {after.isoformat()}"}
