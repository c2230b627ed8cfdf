"""
Reservation Account Module

Manages the pool of reservation accounts, the handlers who execute bookings
and the payment record written for each booked ticket.

Key Components:
- usage.py: Per-account and per-handler usage statistics
- ledger.py: Wallet and last-booked-date bookkeeping
- account_service.py: Persistence of accounts, handlers and payment records
- router.py: FastAPI endpoints
- schemas.py: Pydantic models for accounts, handlers and records
"""

from .schemas import (
    Account, Handler, BookingRecord, UsageStats, TrailingWindow, SinceWindow
)
from .usage import aggregate_usage, account_usage, handler_usage
from .ledger import wallet_adjustments, apply_adjustment

__all__ = [
    "Account",
    "Handler",
    "BookingRecord",
    "UsageStats",
    "TrailingWindow",
    "SinceWindow",
    "aggregate_usage",
    "account_usage",
    "handler_usage",
    "wallet_adjustments",
    "apply_adjustment"
]
