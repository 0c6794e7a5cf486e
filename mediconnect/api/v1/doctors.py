from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import math

from ...core.database import get_db
from ...core.security import IdentityClaims
from ...api.deps import get_availability_notifier, get_current_claims, get_current_doctor
from ...models.doctor import Doctor
from ...services.doctor_service import DoctorService, doctor_to_response
from ...services.notification_service import AvailabilityNotifier
from ...schemas.doctor import (
    DoctorListResponse, DoctorResponse, DoctorStatusUpdate, Pagination
)

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("", response_model=DoctorListResponse)
def list_doctors(
    speciality: Optional[str] = None,
    is_online: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """List doctors, optionally filtered by speciality and availability."""
    doctors, total = DoctorService(db).list_doctors(speciality, is_online, page, limit)
    return DoctorListResponse(
        doctors=[doctor_to_response(doctor) for doctor in doctors],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        ),
    )

@router.get("/online", response_model=List[DoctorResponse])
def list_online_doctors(db: Session = Depends(get_db)):
    """Doctors currently online, most recently online first."""
    return [doctor_to_response(doctor) for doctor in DoctorService(db).online_doctors()]

@router.put("/status", response_model=DoctorResponse)
def update_status(
    status_data: DoctorStatusUpdate,
    background_tasks: BackgroundTasks,
    claims: IdentityClaims = Depends(get_current_claims),
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
    notifier: AvailabilityNotifier = Depends(get_availability_notifier)
):
    """Set the calling doctor online or offline.

    Patients are emailed in the background when the doctor comes online.
    """
    went_online = DoctorService(db).set_availability(claims, doctor, status_data.is_online)
    if went_online:
        background_tasks.add_task(notifier.notify_doctor_online, doctor.id)
    return doctor_to_response(doctor)
