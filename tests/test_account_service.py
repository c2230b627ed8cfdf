from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from factories import add_booking_row, add_record_row
from ticketdesk.accounts.account_service import AccountService
from ticketdesk.accounts.schemas import (
    AccountCreate, AccountUpdate, BookingRecordSave, HandlerCreate, HandlerUpdate
)
from ticketdesk.exceptions import NotFoundError, ValidationError

T0 = datetime(2025, 2, 1, tzinfo=timezone.utc)


@pytest.fixture
def service(db) -> AccountService:
    return AccountService(db)


@pytest.fixture
def booking(db):
    return add_booking_row(db, T0, booking_date=date(2025, 2, 9), journey_date=date(2025, 2, 10))


def add_account(service: AccountService, username: str, wallet: str = "1000", **fields):
    return service.create_account(AccountCreate(username=username, password="pw", wallet_amount=Decimal(wallet), **fields))


def payment(booking_id: str, username: str = "agent1", amount: str = "400", method: str = "Wallet", **fields):
    return BookingRecordSave(
        booking_id=booking_id,
        booked_by="Asha",
        booked_account_username=username,
        amount_charged=Decimal(amount),
        method_used=method,
        **fields,
    )


def wallet(service: AccountService, account_id: str) -> Decimal:
    return service.get_account(account_id).wallet_amount


def test_account_crud(service) -> None:
    account = add_account(service, " agent1 ")
    assert account.username == "agent1"
    assert account.created_at.tzinfo is not None

    with pytest.raises(ValidationError):
        add_account(service, "agent1")

    updated = service.update_account(account.id, AccountUpdate(username="agent1b", password="new", wallet_amount=Decimal("5")))
    assert (updated.username, updated.password, updated.wallet_amount) == ("agent1b", "new", Decimal("5"))

    service.delete_account(account.id)
    with pytest.raises(NotFoundError):
        service.get_account(account.id)


def test_accounts_listed_by_wallet(service) -> None:
    add_account(service, "poor", "10")
    add_account(service, "rich", "9000")
    assert [a.username for a in service.list_accounts()] == ["rich", "poor"]


def test_top_up(service) -> None:
    account = add_account(service, "agent1", "100")
    assert service.top_up_wallet(account.id, Decimal("250.50")).wallet_amount == Decimal("350.50")
    with pytest.raises(ValidationError):
        service.top_up_wallet(account.id, Decimal("0"))


def test_handler_crud(service) -> None:
    ravi = service.create_handler(HandlerCreate(name="Ravi"))
    service.create_handler(HandlerCreate(name="Asha"))
    assert [h.name for h in service.list_handlers()] == ["Asha", "Ravi"]

    with pytest.raises(ValidationError):
        service.create_handler(HandlerCreate(name="Asha"))
    with pytest.raises(ValidationError):
        service.update_handler(ravi.id, HandlerUpdate(name="Asha"))

    assert service.update_handler(ravi.id, HandlerUpdate(name="Ravi K")).name == "Ravi K"
    service.delete_handler(ravi.id)
    assert [h.name for h in service.list_handlers()] == ["Asha"]


def test_wallet_payment_debits_and_marks_booked(service, booking) -> None:
    account = add_account(service, "agent1", "1000", last_booked_date=date(2025, 1, 20))

    record = service.save_booking_record(payment(booking.id))

    assert record.booking_ids == [booking.id]
    assert record.created_at is not None
    assert wallet(service, account.id) == Decimal("600")
    stored = service.get_account(account.id)
    assert stored.last_booked_date == date(2025, 2, 9)
    assert stored.previous_last_booked_date == date(2025, 1, 20)
    assert service.get_record_by_booking(booking.id) == record


def test_saving_again_replaces_the_record(service, booking) -> None:
    account = add_account(service, "agent1", "1000")
    first = service.save_booking_record(payment(booking.id, amount="400"))

    second = service.save_booking_record(payment(booking.id, amount="450"))
    assert second.id == first.id
    assert wallet(service, account.id) == Decimal("550")

    service.save_booking_record(payment(booking.id, amount="450", method="UPI"))
    assert wallet(service, account.id) == Decimal("1000")
    assert len(service.list_booking_records()) == 1


def test_switching_account_moves_charge_and_booked_date(service, booking) -> None:
    old = add_account(service, "agent1", "1000", last_booked_date=date(2025, 1, 20))
    new = add_account(service, "agent2", "1000", last_booked_date=date(2025, 1, 25))
    service.save_booking_record(payment(booking.id, "agent1"))

    service.save_booking_record(payment(booking.id, "agent2"))

    old_state = service.get_account(old.id)
    new_state = service.get_account(new.id)
    assert (old_state.wallet_amount, old_state.last_booked_date) == (Decimal("1000"), date(2025, 1, 20))
    assert (new_state.wallet_amount, new_state.last_booked_date) == (Decimal("600"), date(2025, 2, 9))
    assert new_state.previous_last_booked_date == date(2025, 1, 25)


def test_insufficient_wallet_balance_changes_nothing(service, booking) -> None:
    account = add_account(service, "agent1", "100")

    with pytest.raises(ValidationError, match="Insufficient wallet balance"):
        service.save_booking_record(payment(booking.id, amount="400"))

    assert wallet(service, account.id) == Decimal("100")
    assert service.get_account(account.id).last_booked_date is None
    assert service.get_record_by_booking(booking.id) is None


def test_save_requires_known_booking_and_account(service, booking) -> None:
    add_account(service, "agent1")
    with pytest.raises(NotFoundError):
        service.save_booking_record(payment("missing"))
    with pytest.raises(NotFoundError):
        service.save_booking_record(payment(booking.id, "ghost"))


def test_delete_record_refunds_and_reverts(service, booking) -> None:
    account = add_account(service, "agent1", "1000", last_booked_date=date(2025, 1, 20))
    record = service.save_booking_record(payment(booking.id))

    service.delete_booking_record(record.id)

    state = service.get_account(account.id)
    assert state.wallet_amount == Decimal("1000")
    assert state.last_booked_date == date(2025, 1, 20)
    assert service.get_record_by_booking(booking.id) is None
    with pytest.raises(NotFoundError):
        service.delete_booking_record(record.id)


def test_account_stats(service, db) -> None:
    account = add_account(service, "agent1")
    idle = add_account(service, "idle", "5")
    add_record_row(db, datetime(2025, 1, 5, tzinfo=timezone.utc))
    add_record_row(db, datetime(2025, 2, 1, 14, tzinfo=timezone.utc))

    stats = {s.entity_id: s for s in service.get_account_stats(now=datetime(2025, 2, 15, tzinfo=timezone.utc))}

    assert (stats[account.id].count, stats[account.id].last_used_date) == (1, date(2025, 2, 1))
    assert (stats[idle.id].count, stats[idle.id].last_used_date) == (0, None)

    wide = {s.entity_id: s for s in service.get_account_stats(now=datetime(2025, 2, 15, tzinfo=timezone.utc), days=60)}
    assert wide[account.id].count == 2


def test_handler_stats(service, db) -> None:
    asha = service.create_handler(HandlerCreate(name="Asha"))
    add_record_row(db, datetime(2025, 12, 31, tzinfo=timezone.utc))
    add_record_row(db, datetime(2026, 2, 1, tzinfo=timezone.utc))
    add_record_row(db, datetime(2026, 2, 3, tzinfo=timezone.utc), booked_by="Ravi")

    [stats] = service.get_handler_stats(since=datetime(2026, 1, 1, tzinfo=timezone.utc))
    assert stats.entity_id == asha.id
    assert (stats.count, stats.last_used_date) == (1, date(2026, 2, 1))

    default_window = service.get_handler_stats()
    assert default_window[0].count == 1
