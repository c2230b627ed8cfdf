"""
Usage aggregation for reservation accounts and handlers.

Booking records reference accounts and handlers by *name*
(``bookedAccountUsername`` / ``bookedBy``), not by storage id. The join is
therefore a weak reference: renaming an account or handler detaches the
records written under its old name. Statistics follow the stored names as
they are; historical records keep counting for whoever carries that name.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence

from ticketdesk.accounts.schemas import (
    Account, BookingRecord, Handler, SinceWindow, TrailingWindow, UsageStats, UsageWindow
)
from ticketdesk.config import settings
from ticketdesk.timestamps import as_utc, to_calendar_date

logger = logging.getLogger(__name__)


class KeyedRelation(NamedTuple):
    """Join between an entity and booking records on a denormalised key"""
    name: str
    entity_key: Callable[[Any], Optional[str]]
    record_key: Callable[[BookingRecord], Optional[str]]


ACCOUNT_RELATION = KeyedRelation(
    name="account",
    entity_key=lambda account: account.username,
    record_key=lambda record: record.booked_account_username,
)

HANDLER_RELATION = KeyedRelation(
    name="handler",
    entity_key=lambda handler: handler.name,
    record_key=lambda record: record.booked_by,
)


def relation_for(entity: Any) -> KeyedRelation:
    if isinstance(entity, Account):
        return ACCOUNT_RELATION
    if isinstance(entity, Handler):
        return HANDLER_RELATION
    raise TypeError(f"No usage relation for {type(entity).__name__}")


def _tally(
    records: Iterable[BookingRecord],
    relation: KeyedRelation,
    window_start: datetime
) -> Dict[str, Dict[str, Any]]:
    usage: Dict[str, Dict[str, Any]] = {}
    skipped = 0

    for record in records:
        key = relation.record_key(record)
        if not key:
            continue
        if record.created_at is None:
            skipped += 1
            continue
        created_at = as_utc(record.created_at)
        if created_at < window_start:
            continue

        entry = usage.setdefault(key, {"count": 0, "last": None})
        entry["count"] += 1
        if entry["last"] is None or created_at > entry["last"]:
            entry["last"] = created_at

    if skipped:
        logger.info("Excluded %d %s usage record(s) with unknown createdAt", skipped, relation.name)
    return usage


def aggregate_usage(
    entities: Sequence[Any],
    records: Iterable[BookingRecord],
    window: UsageWindow,
    relation: Optional[KeyedRelation] = None
) -> List[UsageStats]:
    """Count in-window booking records per entity.

    Returns one ``UsageStats`` per entity, in input order. ``last_used_date``
    is the latest in-window record's UTC calendar date, or ``None`` when the
    entity has no matching records.
    """
    if not entities:
        return []
    if relation is None:
        relation = relation_for(entities[0])

    usage = _tally(records, relation, window.start())

    stats = []
    for entity in entities:
        key = relation.entity_key(entity)
        entry = usage.get(key) if key else None
        stats.append(UsageStats(
            entity_id=entity.id,
            key=key,
            count=entry["count"] if entry else 0,
            last_used_date=to_calendar_date(entry["last"]) if entry else None
        ))
    return stats


def account_usage(
    accounts: Sequence[Account],
    records: Iterable[BookingRecord],
    now: datetime,
    days: Optional[int] = None
) -> List[UsageStats]:
    """Account usage over the trailing window ending at ``now``"""
    window = TrailingWindow(days=days or settings.ACCOUNT_USAGE_WINDOW_DAYS, now=now)
    return aggregate_usage(accounts, records, window, ACCOUNT_RELATION)


def handler_usage(
    handlers: Sequence[Handler],
    records: Iterable[BookingRecord],
    since: Optional[datetime] = None
) -> List[UsageStats]:
    """Handler usage since the configured epoch"""
    window = SinceWindow(since=since or settings.HANDLER_USAGE_SINCE)
    return aggregate_usage(handlers, records, window, HANDLER_RELATION)
