from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime, date

from ticketdesk.config import settings
from ticketdesk.database import get_db
from ticketdesk.bookings.schemas import (
    Booking, BookingCreate, BookingUpdate, BookingStatusUpdate, PreparedAccountsUpdate,
    BucketedBookings, BookingPage, RefundDetails, RefundQueueSummary,
    BookingGroup, BookingGroupCreate
)
from ticketdesk.bookings.booking_service import BookingService
from ticketdesk.exceptions import NotFoundError
from ticketdesk.timestamps import utcnow

router = APIRouter()

# ================================
# Views
# ================================
@router.get("", response_model=List[Booking])
def list_bookings(
    q: Optional[str] = Query(None, description="Search passengers, client, route, class and remarks"),
    db: Session = Depends(get_db)
):
    """List bookings, newest first"""
    booking_service = BookingService(db)
    if q:
        return booking_service.search_bookings(q)
    return booking_service.list_bookings()

@router.get("/view", response_model=BucketedBookings)
def get_bookings_view(
    today: Optional[date] = Query(None, description="Reference day (defaults to today in UTC)"),
    q: Optional[str] = Query(None, description="Search query"),
    db: Session = Depends(get_db)
):
    """Pending and completed buckets for the dashboard"""
    booking_service = BookingService(db)
    return booking_service.get_bookings_view(today or utcnow(), q)

@router.get("/feed", response_model=BookingPage)
def get_bookings_feed(
    last_created_at: Optional[datetime] = Query(None, description="Cursor from the previous page"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db)
):
    """Cursor-paginated feed ordered by creation time"""
    booking_service = BookingService(db)
    try:
        return booking_service.get_bookings_page(last_created_at, limit)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.get("/refunds", response_model=List[Booking])
def get_pending_refunds(db: Session = Depends(get_db)):
    """Bookings awaiting a refund"""
    booking_service = BookingService(db)
    return booking_service.get_pending_refunds()

@router.get("/refunds/summary", response_model=RefundQueueSummary)
def get_refund_summary(db: Session = Depends(get_db)):
    booking_service = BookingService(db)
    return booking_service.get_refund_summary()

@router.get("/dates", response_model=List[date])
def get_booking_dates(db: Session = Depends(get_db)):
    """Distinct booking dates, newest first"""
    booking_service = BookingService(db)
    return booking_service.get_booking_dates()

# ================================
# Booking Groups
# ================================
@router.get("/groups", response_model=List[BookingGroup])
def list_groups(db: Session = Depends(get_db)):
    booking_service = BookingService(db)
    return booking_service.list_groups()

@router.post("/groups", response_model=BookingGroup, status_code=status.HTTP_201_CREATED)
def create_group(request: BookingGroupCreate, db: Session = Depends(get_db)):
    """Group bookings that are paid for together"""
    booking_service = BookingService(db)
    try:
        return booking_service.create_group(request)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.post("/groups/{group_id}/bookings/{booking_id}", response_model=BookingGroup)
def add_to_group(group_id: str, booking_id: str, db: Session = Depends(get_db)):
    booking_service = BookingService(db)
    try:
        return booking_service.add_to_group(group_id, booking_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.delete("/groups/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
def ungroup(group_id: str, db: Session = Depends(get_db)):
    """Dissolve a group; its bookings are kept"""
    booking_service = BookingService(db)
    try:
        booking_service.ungroup(group_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

# ================================
# Bookings
# ================================
@router.post("", response_model=Booking, status_code=status.HTTP_201_CREATED)
def create_booking(request: BookingCreate, db: Session = Depends(get_db)):
    """Track a new booking request"""
    booking_service = BookingService(db)
    try:
        return booking_service.create_booking(request)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.get("/{booking_id}", response_model=Booking)
def get_booking(booking_id: str, db: Session = Depends(get_db)):
    booking_service = BookingService(db)
    try:
        return booking_service.get_booking(booking_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.put("/{booking_id}", response_model=Booking)
def update_booking(booking_id: str, request: BookingUpdate, db: Session = Depends(get_db)):
    booking_service = BookingService(db)
    try:
        return booking_service.update_booking(booking_id, request)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking(booking_id: str, db: Session = Depends(get_db)):
    """Delete a booking without a payment record"""
    booking_service = BookingService(db)
    try:
        booking_service.delete_booking(booking_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.patch("/{booking_id}/status", response_model=Booking)
def update_booking_status(booking_id: str, update: BookingStatusUpdate, db: Session = Depends(get_db)):
    """Set status, reason and handler"""
    booking_service = BookingService(db)
    try:
        return booking_service.update_status(booking_id, update)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.put("/{booking_id}/prepared-accounts", response_model=Booking)
def update_prepared_accounts(booking_id: str, update: PreparedAccountsUpdate, db: Session = Depends(get_db)):
    booking_service = BookingService(db)
    try:
        return booking_service.update_prepared_accounts(booking_id, update.prepared_accounts)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.put("/{booking_id}/refund", response_model=Booking)
def set_refund_details(booking_id: str, details: RefundDetails, db: Session = Depends(get_db)):
    """Record a received refund"""
    booking_service = BookingService(db)
    try:
        return booking_service.set_refund_details(booking_id, details)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.delete("/{booking_id}/refund", response_model=Booking)
def clear_refund_details(booking_id: str, db: Session = Depends(get_db)):
    booking_service = BookingService(db)
    try:
        return booking_service.clear_refund_details(booking_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
