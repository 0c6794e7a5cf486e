from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from ..models.appointment import AppointmentStatus
from .doctor import Pagination

class AppointmentCreate(BaseModel):
    doctor_id: int
    appointment_date: datetime
    notes: Optional[str] = Field(None, max_length=2000)

class AppointmentUpdate(BaseModel):
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = Field(None, max_length=2000)

class AppointmentDoctor(BaseModel):
    id: int
    name: str
    email: str
    speciality: str

class AppointmentPatient(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None

class AppointmentResponse(BaseModel):
    id: int
    doctor_id: int
    patient_id: int
    appointment_date: datetime
    status: AppointmentStatus
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    doctor: AppointmentDoctor
    patient: AppointmentPatient

class AppointmentListResponse(BaseModel):
    appointments: List[AppointmentResponse]
    pagination: Pagination
