"""
Mapping of stored documents onto typed records.

Documents use the store's camelCase field names. Authoritative timestamps
(booking and account ``createdAt``/``updatedAt``) and booking calendar dates
are parsed strictly; a bad value makes the whole record unmappable. Ad-hoc
fields are parsed leniently and degrade to ``None``.
"""

import logging
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple, TypeVar

from ticketdesk.accounts.schemas import Account, BookingRecord, Handler
from ticketdesk.bookings.schemas import (
    Booking, BookingGroup, BookingStatus, LEGACY_CLASS_MAP, LEGACY_STATUS_MAP,
    Passenger, RefundDetails, TrainClass
)
from ticketdesk.exceptions import DataFormatError
from ticketdesk.timestamps import parse_calendar_date, parse_lenient, parse_strict

logger = logging.getLogger(__name__)

T = TypeVar("T")


def normalize_status(value: Any) -> BookingStatus:
    if value in LEGACY_STATUS_MAP:
        return LEGACY_STATUS_MAP[value]
    return BookingStatus(value)


def normalize_class_type(value: Any) -> TrainClass:
    if value in LEGACY_CLASS_MAP:
        return LEGACY_CLASS_MAP[value]
    return TrainClass(value)


def _map_passenger(data: Mapping[str, Any]) -> Passenger:
    if not isinstance(data, Mapping):
        raise TypeError(f"passenger entry must be a mapping, got {type(data).__name__}")
    return Passenger(
        name=data.get("name"),
        age=data.get("age"),
        gender=data.get("gender"),
        berth_preference=data.get("berthPreference")
    )


def _map_refund_details(data: Optional[Mapping[str, Any]], record_id: str) -> Optional[RefundDetails]:
    if not data:
        return None
    if not isinstance(data, Mapping):
        raise TypeError(f"refundDetails must be a mapping, got {type(data).__name__}")
    return RefundDetails(
        amount=data.get("amount"),
        date=parse_calendar_date(data.get("date"), field="refundDetails.date", record_id=record_id, strict=True),
        method=data.get("method"),
        account_id=data.get("accountId")
    )


def map_booking(doc_id: str, data: Mapping[str, Any]) -> Booking:
    passengers = data.get("passengers")
    return Booking(
        id=doc_id,
        source=data.get("source"),
        destination=data.get("destination"),
        journey_date=parse_calendar_date(data.get("journeyDate"), field="journeyDate", record_id=doc_id, strict=True),
        booking_date=parse_calendar_date(data.get("bookingDate"), field="bookingDate", record_id=doc_id, strict=True),
        user_name=data.get("userName"),
        passengers=[_map_passenger(p) for p in passengers] if isinstance(passengers, list) else [],
        class_type=normalize_class_type(data.get("classType")),
        booking_type=data.get("bookingType") or "Tatkal",
        train_preference=data.get("trainPreference") or None,
        remarks=data.get("remarks") or data.get("timePreference") or None,
        status=normalize_status(data.get("status")),
        status_reason=data.get("statusReason"),
        status_handler=data.get("statusHandler"),
        prepared_accounts=data.get("preparedAccounts") if isinstance(data.get("preparedAccounts"), list) else None,
        group_id=data.get("groupId"),
        refund_details=_map_refund_details(data.get("refundDetails"), doc_id),
        created_at=parse_strict(data.get("createdAt"), "createdAt", doc_id),
        updated_at=parse_strict(data.get("updatedAt"), "updatedAt", doc_id)
    )


def map_account(doc_id: str, data: Mapping[str, Any]) -> Account:
    return Account(
        id=doc_id,
        username=data.get("username"),
        password=data.get("password"),
        wallet_amount=data.get("walletAmount") or 0,
        last_booked_date=parse_calendar_date(data.get("lastBookedDate") or None, field="lastBookedDate", record_id=doc_id),
        previous_last_booked_date=parse_calendar_date(
            data.get("previousLastBookedDate") or None, field="previousLastBookedDate", record_id=doc_id
        ),
        created_at=parse_strict(data.get("createdAt"), "createdAt", doc_id),
        updated_at=parse_strict(data.get("updatedAt"), "updatedAt", doc_id)
    )


def map_handler(doc_id: str, data: Mapping[str, Any]) -> Handler:
    return Handler(
        id=doc_id,
        name=data.get("name"),
        created_at=parse_lenient(data.get("createdAt"), "createdAt", doc_id),
        updated_at=parse_lenient(data.get("updatedAt"), "updatedAt", doc_id)
    )


def map_booking_record(doc_id: str, data: Mapping[str, Any]) -> BookingRecord:
    booking_ids = data.get("bookingIds")
    return BookingRecord(
        id=doc_id,
        booking_id=data.get("bookingId"),
        booking_ids=booking_ids if isinstance(booking_ids, list) else [],
        group_id=data.get("groupId"),
        booked_by=data.get("bookedBy"),
        booked_account_username=data.get("bookedAccountUsername"),
        amount_charged=data.get("amountCharged") or 0,
        method_used=data.get("methodUsed"),
        created_at=data.get("createdAt"),
        updated_at=data.get("updatedAt")
    )


def map_booking_group(doc_id: str, data: Mapping[str, Any]) -> BookingGroup:
    booking_ids = data.get("bookingIds")
    return BookingGroup(
        id=doc_id,
        name=data.get("name") or "Untitled Group",
        booking_ids=booking_ids if isinstance(booking_ids, list) else [],
        created_at=parse_strict(data.get("createdAt"), "createdAt", doc_id),
        updated_at=parse_strict(data.get("updatedAt"), "updatedAt", doc_id)
    )


def map_documents(
    documents: Iterable[Tuple[str, Mapping[str, Any]]],
    mapper: Callable[[str, Mapping[str, Any]], T],
    kind: str = "document"
) -> List[T]:
    """Map a collection, dropping (and logging) records that cannot be mapped"""
    mapped: List[T] = []
    for doc_id, data in documents:
        try:
            mapped.append(mapper(doc_id, data))
        except (DataFormatError, ValueError, TypeError) as exc:
            logger.error("[Mapping Error] Failed to map %s %s: %s", kind, doc_id, exc)
    return mapped
