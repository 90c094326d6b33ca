from typing import List

from fastapi import APIRouter, Depends, HTTPException

from doctors_portal.api.dependencies import get_booking_manager
from doctors_portal.core.security import TokenPayload, verify_token
from doctors_portal.models.api_models import (
    BookingCreateResponse,
    InsertResult,
    PaymentUpdateRequest,
    PaymentUpdateResponse,
)
from doctors_portal.models.db_models import Booking, Service
from doctors_portal.services.booking_service import BookingManager

router = APIRouter()


@router.get("/service", response_model=List[Service])
async def list_services(manager: BookingManager = Depends(get_booking_manager)):
    return await manager.list_services()


@router.get("/available", response_model=List[Service])
async def available(date: str = "", manager: BookingManager = Depends(get_booking_manager)):
    return await manager.compute_availability(date)


@router.get("/booking", response_model=List[Booking])
async def patient_bookings(
    patient: str = "",
    user: TokenPayload = Depends(verify_token),
    manager: BookingManager = Depends(get_booking_manager),
):
    # Patients may only list their own bookings
    if patient != user.email:
        raise HTTPException(status_code=403, detail="forbidden access")
    return await manager.list_patient_bookings(patient)


@router.post("/booking", response_model=BookingCreateResponse, response_model_exclude_none=True)
async def create_booking(booking: Booking, manager: BookingManager = Depends(get_booking_manager)):
    # A duplicate is a normal answer, not an HTTP error
    outcome = await manager.create_booking(booking.model_copy(update={"id": None}))
    if not outcome.success:
        return BookingCreateResponse(success=False, booking=outcome.booking)
    return BookingCreateResponse(success=True, result=InsertResult(inserted_id=outcome.booking_id))


@router.patch("/booking/{booking_id}", response_model=PaymentUpdateResponse)
async def mark_paid(
    booking_id: str,
    payment: PaymentUpdateRequest,
    user: TokenPayload = Depends(verify_token),
    manager: BookingManager = Depends(get_booking_manager),
):
    outcome = await manager.mark_paid(booking_id, payment.transaction_id)
    return PaymentUpdateResponse(booking=outcome.booking, modified_count=1 if outcome.modified else 0)
