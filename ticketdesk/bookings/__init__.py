"""
Booking Request Module

Tracks ticket booking requests from intake to outcome:

- Classification of bookings into pending and completed buckets
- Dashboard views: bucketing, date grouping, AC/non-AC split, search
- Cursor pagination of the creation-time feed
- Refund queue for failed-paid and cancelled bookings
- Booking groups for bookings paid together

Key Components:
- classifier.py: Pending/completed classification against a reference day
- listing.py: Sorting, grouping, search and pagination of booking snapshots
- refunds.py: Refund queue selection
- booking_service.py: Persistence of bookings and groups
- router.py: FastAPI endpoints
- schemas.py: Pydantic models for bookings
"""

from .schemas import (
    Booking, BookingCreate, BookingUpdate, BookingStatus, BookingType, TrainClass,
    Bucket, Passenger, RefundDetails, BucketedBookings, BookingPage, BookingGroup
)
from .classifier import classify, is_pending
from .listing import (
    bucket_and_sort, group_by_booking_date, split_by_class_family,
    distinct_booking_dates, paginate, search
)
from .refunds import is_refund_pending, pending_refunds, refund_queue_summary

__all__ = [
    "Booking",
    "BookingCreate",
    "BookingUpdate",
    "BookingStatus",
    "BookingType",
    "TrainClass",
    "Bucket",
    "Passenger",
    "RefundDetails",
    "BucketedBookings",
    "BookingPage",
    "BookingGroup",
    "classify",
    "is_pending",
    "bucket_and_sort",
    "group_by_booking_date",
    "split_by_class_family",
    "distinct_booking_dates",
    "paginate",
    "search",
    "is_refund_pending",
    "pending_refunds",
    "refund_queue_summary"
]
