"""
Timestamp normalisation for stored records.

Stored documents carry timestamps in several shapes: native document-store
timestamp objects, ``{"seconds", "nanoseconds"}`` mappings from JSON exports,
ISO-8601 strings, epoch milliseconds, or nothing at all. Everything in the
engine works on timezone-aware UTC ``datetime`` values, so every timestamp
passes through this module first.

Two modes:

- strict: used for authoritative ``createdAt``/``updatedAt`` fields. Any
  unparsable input raises ``DataFormatError`` naming the record and field.
- lenient: used for ad-hoc fields (``lastBookedDate``, booking record
  timestamps during aggregation). Unparsable input becomes ``UNKNOWN``.
"""

import logging
import math
import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional

from dateutil import parser as dateutil_parser
from dateutil.parser import isoparse

from ticketdesk.exceptions import DataFormatError

logger = logging.getLogger(__name__)

UNKNOWN = None
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_SECONDS_KEYS = ("seconds", "_seconds")
_NANOS_KEYS = ("nanoseconds", "_nanoseconds", "nanos")
_NATIVE_CONVERTERS = ("to_datetime", "ToDatetime", "toDate")
_ISO_DATE = re.compile(r"^\d{4}-?\d{2}-?\d{2}(?!\d)")
_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2001, 2, 2)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values, convert aware ones"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_calendar_date(instant: datetime) -> date:
    """Truncate an instant to its UTC calendar date"""
    return as_utc(instant).date()


def format_calendar_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _first_present(data: Mapping[str, Any], keys) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _from_epoch_millis(value) -> datetime:
    if isinstance(value, bool):
        raise TypeError("boolean is not a timestamp")
    millis = float(value)
    if math.isnan(millis) or math.isinf(millis):
        raise ValueError("epoch value is not finite")
    return EPOCH + timedelta(milliseconds=millis)


def _from_string(value: str) -> datetime:
    text = value.strip()
    if not text:
        raise ValueError("empty timestamp string")
    if _ISO_DATE.match(text):
        return as_utc(isoparse(text))

    # Non-ISO renderings such as "Jan 5, 2025 10:30". Parsing against two
    # different defaults exposes any date component the text leaves out.
    parsed = dateutil_parser.parse(text, default=_DEFAULT_A)
    if parsed.date() != dateutil_parser.parse(text, default=_DEFAULT_B).date():
        raise ValueError(f"incomplete date in {text!r}")
    return as_utc(parsed)


def _coerce_instant(value: Any) -> datetime:
    if value is None:
        raise ValueError("missing timestamp")
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        return _from_string(value)
    if isinstance(value, (int, float, Decimal)):
        return _from_epoch_millis(value)
    if isinstance(value, Mapping):
        seconds = _first_present(value, _SECONDS_KEYS)
        if seconds is None or isinstance(seconds, bool):
            raise ValueError("mapping has no seconds component")
        nanos = _first_present(value, _NANOS_KEYS) or 0
        return EPOCH + timedelta(seconds=float(seconds), microseconds=float(nanos) / 1000)
    for attr in _NATIVE_CONVERTERS:
        converter = getattr(value, attr, None)
        if callable(converter):
            converted = converter()
            if not isinstance(converted, datetime):
                raise TypeError(f"{attr}() returned {type(converted).__name__}")
            return as_utc(converted)
    raise TypeError(f"unsupported timestamp type {type(value).__name__}")


def parse_timestamp(
    value: Any,
    *,
    field: str,
    record_id: Optional[str] = None,
    strict: bool = False
) -> Optional[datetime]:
    """Coerce a stored timestamp into an aware UTC instant.

    Returns ``UNKNOWN`` for unparsable input in lenient mode; raises
    ``DataFormatError`` in strict mode.
    """
    try:
        return _coerce_instant(value)
    except (ValueError, TypeError, OverflowError, OSError) as exc:
        if strict:
            logger.error(
                "[DataFormatError] Record %s: field '%s' is invalid: %r (%s)",
                record_id, field, value, exc
            )
            raise DataFormatError(record_id, field, value, str(exc)) from exc
        if value is not None:
            logger.debug("Record %s: treating '%s'=%r as unknown (%s)", record_id, field, value, exc)
        return UNKNOWN


def parse_calendar_date(
    value: Any,
    *,
    field: str,
    record_id: Optional[str] = None,
    strict: bool = False
) -> Optional[date]:
    """Coerce a stored calendar date (``YYYY-MM-DD`` or any instant) into a ``date``"""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, str) and len(value.strip()) == 10:
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    instant = parse_timestamp(value, field=field, record_id=record_id, strict=strict)
    if instant is None:
        return UNKNOWN
    return instant.date()


def parse_strict(value: Any, field: str, record_id: Optional[str] = None) -> datetime:
    return parse_timestamp(value, field=field, record_id=record_id, strict=True)


def parse_lenient(value: Any, field: str, record_id: Optional[str] = None) -> Optional[datetime]:
    return parse_timestamp(value, field=field, record_id=record_id, strict=False)


def as_calendar_day(today) -> date:
    """Reduce a caller-supplied "today" (date or datetime) to a calendar date"""
    if isinstance(today, datetime):
        return to_calendar_date(today)
    if isinstance(today, date):
        return today
    raise TypeError(f"today must be a date or datetime, got {type(today).__name__}")
