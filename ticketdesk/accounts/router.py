from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime

from ticketdesk.database import get_db
from ticketdesk.accounts.schemas import (
    Account, AccountCreate, AccountUpdate, WalletTopUp,
    Handler, HandlerCreate, HandlerUpdate,
    BookingRecord, BookingRecordSave, UsageStats
)
from ticketdesk.accounts.account_service import AccountService
from ticketdesk.exceptions import NotFoundError

router = APIRouter()

# ================================
# Reservation Accounts
# ================================
@router.get("", response_model=List[Account])
def list_accounts(db: Session = Depends(get_db)):
    """List accounts, highest wallet balance first"""
    account_service = AccountService(db)
    return account_service.list_accounts()

@router.get("/stats", response_model=List[UsageStats])
def get_account_stats(
    days: Optional[int] = Query(None, ge=1, le=365, description="Trailing window length in days"),
    db: Session = Depends(get_db)
):
    """Bookings per account over the trailing window"""
    account_service = AccountService(db)
    return account_service.get_account_stats(days=days)

@router.post("", response_model=Account, status_code=status.HTTP_201_CREATED)
def create_account(request: AccountCreate, db: Session = Depends(get_db)):
    account_service = AccountService(db)
    try:
        return account_service.create_account(request)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

# ================================
# Handlers
# ================================
@router.get("/handlers", response_model=List[Handler])
def list_handlers(db: Session = Depends(get_db)):
    account_service = AccountService(db)
    return account_service.list_handlers()

@router.get("/handlers/stats", response_model=List[UsageStats])
def get_handler_stats(
    since: Optional[datetime] = Query(None, description="Count records created on or after this instant"),
    db: Session = Depends(get_db)
):
    """Bookings per handler since the configured epoch"""
    account_service = AccountService(db)
    return account_service.get_handler_stats(since)

@router.post("/handlers", response_model=Handler, status_code=status.HTTP_201_CREATED)
def create_handler(request: HandlerCreate, db: Session = Depends(get_db)):
    account_service = AccountService(db)
    try:
        return account_service.create_handler(request)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.put("/handlers/{handler_id}", response_model=Handler)
def update_handler(handler_id: str, request: HandlerUpdate, db: Session = Depends(get_db)):
    account_service = AccountService(db)
    try:
        return account_service.update_handler(handler_id, request)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.delete("/handlers/{handler_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_handler(handler_id: str, db: Session = Depends(get_db)):
    account_service = AccountService(db)
    try:
        account_service.delete_handler(handler_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

# ================================
# Payment Records
# ================================
@router.get("/records", response_model=List[BookingRecord])
def list_booking_records(db: Session = Depends(get_db)):
    account_service = AccountService(db)
    return account_service.list_booking_records()

@router.get("/records/by-booking/{booking_id}", response_model=BookingRecord)
def get_record_by_booking(booking_id: str, db: Session = Depends(get_db)):
    """Payment record of a booking"""
    account_service = AccountService(db)
    record = account_service.get_record_by_booking(booking_id)
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No payment record for this booking"
        )
    return record

@router.put("/records", response_model=BookingRecord)
def save_booking_record(request: BookingRecordSave, db: Session = Depends(get_db)):
    """Create or replace a booking's payment record, settling wallets"""
    account_service = AccountService(db)
    try:
        return account_service.save_booking_record(request)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.delete("/records/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking_record(record_id: str, db: Session = Depends(get_db)):
    """Remove a payment record, refunding any wallet charge"""
    account_service = AccountService(db)
    try:
        account_service.delete_booking_record(record_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

# ================================
# Single Account
# ================================
@router.get("/{account_id}", response_model=Account)
def get_account(account_id: str, db: Session = Depends(get_db)):
    account_service = AccountService(db)
    try:
        return account_service.get_account(account_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.put("/{account_id}", response_model=Account)
def update_account(account_id: str, request: AccountUpdate, db: Session = Depends(get_db)):
    account_service = AccountService(db)
    try:
        return account_service.update_account(account_id, request)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(account_id: str, db: Session = Depends(get_db)):
    account_service = AccountService(db)
    try:
        account_service.delete_account(account_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.post("/{account_id}/top-up", response_model=Account)
def top_up_wallet(account_id: str, request: WalletTopUp, db: Session = Depends(get_db)):
    """Add funds to an account wallet"""
    account_service = AccountService(db)
    try:
        return account_service.top_up_wallet(account_id, request.amount)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
