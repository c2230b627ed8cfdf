"""Exception taxonomy shared by the booking and account engines."""

from typing import Any, Optional


class TicketDeskError(Exception):
    """Base class for all ticket desk errors"""


class DataFormatError(TicketDeskError):
    """A stored value could not be coerced into the type its field requires.

    Fatal to the single record being processed; batch operations catch it,
    log it and drop the record.
    """

    def __init__(self, record_id: Optional[str], field: str, value: Any = None, reason: Optional[str] = None):
        self.record_id = record_id
        self.field = field
        self.value = value
        message = f"Record {record_id or '<unknown>'}: field '{field}' has invalid value {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ValidationError(TicketDeskError, ValueError):
    """Caller input rejected before any computation"""


class NotFoundError(TicketDeskError, LookupError):
    """Requested record does not exist"""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} '{key}' not found")
