from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Literal
from datetime import datetime, date
import datetime as dt
from decimal import Decimal
from enum import Enum

class BookingStatus(str, Enum):
    """Booking status enumeration"""
    REQUESTED = "Requested"
    BOOKED = "Booked"
    MISSED = "Missed"
    FAILED_PAID = "Booking Failed (Paid)"
    FAILED_UNPAID = "Booking Failed (Unpaid)"
    CNF_CANCELLED = "CNF & Cancelled"
    USER_CANCELLED = "User Cancelled"

# Stored values written before the paid/unpaid split
LEGACY_STATUS_MAP = {
    "Booking Failed": BookingStatus.FAILED_UNPAID,
}

class BookingType(str, Enum):
    """Reservation quota"""
    TATKAL = "Tatkal"
    GENERAL = "General"

class TrainClass(str, Enum):
    """Train class codes"""
    FIRST_AC = "1A"
    SECOND_AC = "2A"
    THIRD_AC = "3A"
    THIRD_AC_ECONOMY = "3E"
    CHAIR_CAR = "CC"
    EXECUTIVE_CHAIR_CAR = "EC"
    SLEEPER = "SL"
    SECOND_SITTING = "2S"
    UNRESERVED = "UR"

LEGACY_CLASS_MAP = {
    "AC First Class": TrainClass.FIRST_AC,
    "AC 2 Tier": TrainClass.SECOND_AC,
    "AC 3 Tier": TrainClass.THIRD_AC,
    "AC 3 Economy": TrainClass.THIRD_AC_ECONOMY,
    "AC Chair Car": TrainClass.CHAIR_CAR,
    "Executive Chair Car": TrainClass.EXECUTIVE_CHAIR_CAR,
    "Sleeper": TrainClass.SLEEPER,
    "Second Sitting": TrainClass.SECOND_SITTING,
    "General": TrainClass.UNRESERVED,
}

# Non-AC classes shown in their own section of a booking date
NON_AC_CLASSES = (TrainClass.SLEEPER, TrainClass.UNRESERVED, TrainClass.SECOND_SITTING)

class Bucket(str, Enum):
    """View-time display bucket"""
    PENDING = "Pending"
    COMPLETED = "Completed"

class PaymentMethod(str, Enum):
    """How a booking was paid for"""
    WALLET = "Wallet"
    UPI = "UPI"
    OTHERS = "Others"

# Passenger Information
class Passenger(BaseModel):
    """Individual passenger on a booking"""
    name: str = Field(..., min_length=1)
    age: int = Field(..., ge=0, le=125)
    gender: Literal["M", "F", "O"]
    berth_preference: Optional[bool] = None

class RefundDetails(BaseModel):
    """Refund received for a failed or cancelled booking"""
    amount: Decimal = Field(..., ge=0)
    date: dt.date
    method: str
    account_id: Optional[str] = None

# Booking Models
class BookingBase(BaseModel):
    source: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    journey_date: date
    booking_date: date
    user_name: str = Field(..., min_length=1)
    passengers: List[Passenger]
    class_type: TrainClass
    booking_type: BookingType = BookingType.TATKAL
    train_preference: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator('passengers')
    @classmethod
    def validate_passengers(cls, v):
        if not v:
            raise ValueError('At least one passenger is required')
        return v

class BookingCreate(BookingBase):
    """Request to track a new booking"""

class BookingUpdate(BookingBase):
    """Full replacement of the editable booking fields"""

class Booking(BookingBase):
    """A client's reservation request"""
    id: str
    status: BookingStatus = BookingStatus.REQUESTED
    status_reason: Optional[str] = None
    status_handler: Optional[str] = None
    prepared_accounts: Optional[List[str]] = None
    group_id: Optional[str] = None
    refund_details: Optional[RefundDetails] = None
    created_at: datetime
    updated_at: datetime

class BookingStatusUpdate(BaseModel):
    """Explicit status change"""
    status: BookingStatus
    reason: Optional[str] = None
    handler: Optional[str] = None

class PreparedAccountsUpdate(BaseModel):
    """Accounts readied for a booking"""
    prepared_accounts: List[str] = []

# Classification & listing views
class Classification(BaseModel):
    """Bucket and effective status derived at read time"""
    bucket: Bucket
    effective_status: BookingStatus

class ClassifiedBooking(BaseModel):
    """Booking paired with its view-time classification"""
    booking: Booking
    bucket: Bucket
    effective_status: BookingStatus

class BucketedBookings(BaseModel):
    """Pending and completed views of a booking collection"""
    pending: List[ClassifiedBooking] = []
    completed: List[ClassifiedBooking] = []

class DateGroup(BaseModel):
    """Bookings sharing a booking date"""
    booking_date: date
    bookings: List[ClassifiedBooking]

class ClassFamilySplit(BaseModel):
    """Bookings of one date split into AC and non-AC sections"""
    ac: List[Booking] = []
    non_ac: List[Booking] = []

class BookingPage(BaseModel):
    """One page of the created-at feed"""
    bookings: List[Booking]
    next_cursor: Optional[datetime] = None
    has_more: bool = False

class RefundQueueSummary(BaseModel):
    """Headline numbers for the refund queue"""
    count: int
    oldest_created_at: Optional[datetime] = None

# Booking Groups
class BookingGroup(BaseModel):
    """Bookings paid together"""
    id: str
    name: str
    booking_ids: List[str] = []
    created_at: datetime
    updated_at: datetime

class BookingGroupCreate(BaseModel):
    booking_ids: List[str] = Field(..., min_length=1)
    name: Optional[str] = None
