from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
import math

from ...core.database import get_db
from ...core.security import IdentityClaims
from ...api.deps import get_current_claims
from ...models.appointment import AppointmentStatus
from ...services.appointment_service import AppointmentService, appointment_to_response
from ...schemas.appointment import (
    AppointmentCreate, AppointmentListResponse, AppointmentResponse, AppointmentUpdate
)
from ...schemas.doctor import Pagination

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.post("", response_model=AppointmentResponse)
def create_appointment(
    appointment_data: AppointmentCreate,
    claims: IdentityClaims = Depends(get_current_claims),
    db: Session = Depends(get_db)
):
    """Book an appointment with an online doctor (patients only)."""
    appointment = AppointmentService(db).create_appointment(claims, appointment_data)
    return appointment_to_response(appointment)

@router.get("", response_model=AppointmentListResponse)
def list_appointments(
    status: Optional[AppointmentStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    claims: IdentityClaims = Depends(get_current_claims),
    db: Session = Depends(get_db)
):
    """List the caller's appointments; admins see all of them."""
    appointments, total = AppointmentService(db).list_appointments(claims, status, page, limit)
    return AppointmentListResponse(
        appointments=[appointment_to_response(a) for a in appointments],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        ),
    )

@router.put("/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    update_data: AppointmentUpdate,
    claims: IdentityClaims = Depends(get_current_claims),
    db: Session = Depends(get_db)
):
    """Change an appointment's status or notes."""
    appointment = AppointmentService(db).update_appointment(claims, appointment_id, update_data)
    return appointment_to_response(appointment)

@router.delete("/{appointment_id}")
def delete_appointment(
    appointment_id: int,
    claims: IdentityClaims = Depends(get_current_claims),
    db: Session = Depends(get_db)
):
    """Permanently delete an appointment."""
    AppointmentService(db).delete_appointment(claims, appointment_id)
    return {"message": "Appointment deleted successfully"}
