from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional, Union
from datetime import datetime, date, timedelta
from decimal import Decimal

from ticketdesk.bookings.schemas import PaymentMethod
from ticketdesk.timestamps import as_utc, parse_lenient

# Reservation accounts
class AccountBase(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    wallet_amount: Decimal = Field(Decimal('0'), ge=0)
    last_booked_date: Optional[date] = None

class AccountCreate(AccountBase):
    """Request to add an account to the pool"""

class AccountUpdate(AccountBase):
    """Full replacement of an account's editable fields"""

class Account(AccountBase):
    """Reservation credential pool entry"""
    id: str
    previous_last_booked_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime

class WalletTopUp(BaseModel):
    amount: Decimal = Field(..., gt=0)

# Operators
class HandlerBase(BaseModel):
    name: str = Field(..., min_length=1)

class HandlerCreate(HandlerBase):
    pass

class HandlerUpdate(HandlerBase):
    pass

class Handler(HandlerBase):
    """Operator who executes bookings"""
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

# Payment receipts
class BookingRecordBase(BaseModel):
    booking_id: str = Field(..., min_length=1)
    booking_ids: List[str] = []
    group_id: Optional[str] = None
    booked_by: str = Field(..., min_length=1)
    booked_account_username: str = Field(..., min_length=1)
    amount_charged: Decimal = Field(..., ge=0)
    method_used: PaymentMethod

    @model_validator(mode="after")
    def default_booking_ids(self):
        if not self.booking_ids:
            self.booking_ids = [self.booking_id]
        return self

class BookingRecordSave(BookingRecordBase):
    """Create or replace the payment record of a booking"""

class BookingRecord(BookingRecordBase):
    """Payment receipt; timestamps are unknown (None) when unparsable"""
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator('created_at', 'updated_at', mode='before')
    @classmethod
    def coerce_timestamp(cls, v, info):
        return parse_lenient(v, info.field_name, info.data.get('id'))

# Usage statistics
class TrailingWindow(BaseModel):
    """The ``days`` days up to ``now``"""
    days: int = Field(..., gt=0)
    now: datetime

    def start(self) -> datetime:
        return as_utc(self.now) - timedelta(days=self.days)

class SinceWindow(BaseModel):
    """Everything on or after a fixed instant"""
    since: datetime

    def start(self) -> datetime:
        return as_utc(self.since)

UsageWindow = Union[TrailingWindow, SinceWindow]

class UsageStats(BaseModel):
    """Bookings serviced by one account or handler within a window"""
    entity_id: str
    key: Optional[str] = None
    count: int = 0
    last_used_date: Optional[date] = None
