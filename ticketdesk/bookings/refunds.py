from typing import Iterable, List

from ticketdesk.bookings.schemas import Booking, BookingStatus, RefundQueueSummary
from ticketdesk.timestamps import as_utc

REFUNDABLE_STATUSES = frozenset({
    BookingStatus.FAILED_PAID,
    BookingStatus.CNF_CANCELLED,
})


def is_refund_pending(booking: Booking) -> bool:
    """Money went out for this booking and no refund has been recorded yet"""
    return booking.status in REFUNDABLE_STATUSES and booking.refund_details is None


def pending_refunds(bookings: Iterable[Booking]) -> List[Booking]:
    """Refund queue, newest failure first"""
    queue = [booking for booking in bookings if is_refund_pending(booking)]
    queue.sort(key=lambda booking: (as_utc(booking.created_at), booking.id), reverse=True)
    return queue


def refund_queue_summary(bookings: Iterable[Booking]) -> RefundQueueSummary:
    queue = pending_refunds(bookings)
    return RefundQueueSummary(
        count=len(queue),
        oldest_created_at=queue[-1].created_at if queue else None
    )
