import uuid

from sqlalchemy import Column, String, Date, DateTime, Text, Numeric, JSON, ForeignKey
from sqlalchemy.orm import relationship
from ticketdesk.database import Base
from ticketdesk.timestamps import utcnow, format_calendar_date


def new_id() -> str:
    return uuid.uuid4().hex

# ================================
# Bookings & Groups
# ================================
class BookingGroup(Base):
    __tablename__ = "booking_groups"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    booking_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    bookings = relationship("Booking", back_populates="group")

    def as_document(self) -> dict:
        return {
            "name": self.name,
            "bookingIds": list(self.booking_ids or []),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(32), primary_key=True, default=new_id)
    source = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    journey_date = Column(Date, nullable=False, index=True)
    booking_date = Column(Date, nullable=False, index=True)
    user_name = Column(String(255), nullable=False)
    passengers = Column(JSON, nullable=False, default=list)
    class_type = Column(String(50), nullable=False)
    booking_type = Column(String(20), default="Tatkal")
    train_preference = Column(String(255))
    remarks = Column(Text)
    status = Column(String(50), nullable=False, default="Requested", index=True)
    status_reason = Column(Text)
    status_handler = Column(String(255))
    prepared_accounts = Column(JSON)
    group_id = Column(String(32), ForeignKey("booking_groups.id"), index=True)
    refund_details = Column(JSON)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    group = relationship("BookingGroup", back_populates="bookings")

    def as_document(self) -> dict:
        return {
            "source": self.source,
            "destination": self.destination,
            "journeyDate": format_calendar_date(self.journey_date),
            "bookingDate": format_calendar_date(self.booking_date),
            "userName": self.user_name,
            "passengers": list(self.passengers or []),
            "classType": self.class_type,
            "bookingType": self.booking_type,
            "trainPreference": self.train_preference,
            "remarks": self.remarks,
            "status": self.status,
            "statusReason": self.status_reason,
            "statusHandler": self.status_handler,
            "preparedAccounts": self.prepared_accounts,
            "groupId": self.group_id,
            "refundDetails": self.refund_details,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

# ================================
# Reservation Accounts & Handlers
# ================================
class Account(Base):
    __tablename__ = "accounts"

    id = Column(String(32), primary_key=True, default=new_id)
    username = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    wallet_amount = Column(Numeric(12, 2), nullable=False, default=0)
    last_booked_date = Column(Date)
    previous_last_booked_date = Column(Date)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def as_document(self) -> dict:
        return {
            "username": self.username,
            "password": self.password,
            "walletAmount": self.wallet_amount,
            "lastBookedDate": format_calendar_date(self.last_booked_date),
            "previousLastBookedDate": format_calendar_date(self.previous_last_booked_date),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

class Handler(Base):
    __tablename__ = "handlers"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(255), unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def as_document(self) -> dict:
        return {
            "name": self.name,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

# ================================
# Payment Records
# ================================
class BookingRecord(Base):
    __tablename__ = "booking_records"

    id = Column(String(32), primary_key=True, default=new_id)
    booking_id = Column(String(32), nullable=False, index=True)
    booking_ids = Column(JSON, nullable=False, default=list)
    group_id = Column(String(32), index=True)
    booked_by = Column(String(255), nullable=False, index=True)
    booked_account_username = Column(String(255), nullable=False, index=True)
    amount_charged = Column(Numeric(12, 2), nullable=False, default=0)
    method_used = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def as_document(self) -> dict:
        return {
            "bookingId": self.booking_id,
            "bookingIds": list(self.booking_ids or []),
            "groupId": self.group_id,
            "bookedBy": self.booked_by,
            "bookedAccountUsername": self.booked_account_username,
            "amountCharged": self.amount_charged,
            "methodUsed": self.method_used,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
