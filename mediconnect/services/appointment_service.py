"""
Appointment lifecycle.

    PENDING   -> CONFIRMED | CANCELLED
    CONFIRMED -> COMPLETED | CANCELLED
    CANCELLED, COMPLETED: terminal

Doctors may take any of these transitions on their own appointments.
Patients may only cancel their own.
"""
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Tuple
import logging

from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import (
    AuthorizationError, BadRequestError, DomainConflictError, NotFoundError
)
from ..core.permissions import can_act_on_appointment, can_create_appointment
from ..core.security import IdentityClaims, UserRole
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..schemas.appointment import (
    AppointmentCreate, AppointmentDoctor, AppointmentPatient,
    AppointmentResponse, AppointmentUpdate
)

logger = logging.getLogger(__name__)

TERMINAL_STATUSES: FrozenSet[AppointmentStatus] = frozenset({
    AppointmentStatus.CANCELLED,
    AppointmentStatus.COMPLETED,
})

DOCTOR_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}

PATIENT_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.CANCELLED}),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}


def allowed_transitions(current: AppointmentStatus, role: UserRole) -> FrozenSet[AppointmentStatus]:
    if role == UserRole.DOCTOR:
        return DOCTOR_TRANSITIONS[current]
    if role == UserRole.PATIENT:
        return PATIENT_TRANSITIONS[current]
    return frozenset()


def check_transition(current: AppointmentStatus, target: AppointmentStatus, role: UserRole) -> None:
    """Raise unless `role` may move an appointment from `current` to `target`."""
    if current in TERMINAL_STATUSES:
        raise DomainConflictError(
            f"Appointment is already {current.value.lower()} and cannot be changed"
        )
    if target not in allowed_transitions(current, role):
        raise BadRequestError(
            f"Invalid status transition from {current.value} to {target.value}"
        )


class AppointmentService:
    def __init__(self, db: Session):
        self.db = db

    def create_appointment(self, claims: IdentityClaims, data: AppointmentCreate) -> Appointment:
        """Book an appointment with an online doctor; it starts out PENDING."""
        if not can_create_appointment(claims.role):
            raise AuthorizationError("Only patients can book appointments")

        doctor = self.db.query(Doctor).filter(Doctor.id == data.doctor_id).first()
        if not doctor:
            raise NotFoundError("Doctor not found")

        if not doctor.is_online:
            raise DomainConflictError("Doctor is currently offline")

        patient = self._patient_for(claims)
        if not patient:
            raise NotFoundError("Patient profile not found")

        appointment = Appointment(
            doctor_id=doctor.id,
            patient_id=patient.id,
            appointment_date=data.appointment_date,
            notes=data.notes,
            status=AppointmentStatus.PENDING,
            created_at=datetime.utcnow(),
        )
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)

        logger.info(f"Patient {patient.id} booked appointment {appointment.id} with doctor {doctor.id}")
        return appointment

    def list_appointments(
        self,
        claims: IdentityClaims,
        status: Optional[AppointmentStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Appointment], int]:
        query = self.db.query(Appointment)

        if claims.role == UserRole.DOCTOR:
            doctor = self._doctor_for(claims)
            if not doctor:
                raise NotFoundError("Doctor profile not found")
            query = query.filter(Appointment.doctor_id == doctor.id)
        elif claims.role == UserRole.PATIENT:
            patient = self._patient_for(claims)
            if not patient:
                raise NotFoundError("Patient profile not found")
            query = query.filter(Appointment.patient_id == patient.id)

        if status:
            query = query.filter(Appointment.status == status)

        total = query.count()
        appointments = (
            query.options(
                joinedload(Appointment.doctor).joinedload(Doctor.user),
                joinedload(Appointment.patient).joinedload(Patient.user),
            )
            .order_by(Appointment.appointment_date.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return appointments, total

    def update_appointment(
        self, claims: IdentityClaims, appointment_id: int, data: AppointmentUpdate
    ) -> Appointment:
        """Change the status and/or notes of an appointment the caller owns."""
        appointment = self._get_appointment(appointment_id)
        self._authorize(claims, appointment, data.status)

        if data.status is not None:
            check_transition(appointment.status, data.status, claims.role)
            appointment.status = data.status

        if "notes" in data.model_fields_set:
            appointment.notes = data.notes

        self.db.commit()
        self.db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} updated by user {claims.subject_id}: status={appointment.status.value}")
        return appointment

    def delete_appointment(self, claims: IdentityClaims, appointment_id: int) -> None:
        """Permanently remove an appointment the caller owns."""
        appointment = self._get_appointment(appointment_id)
        self._authorize(claims, appointment)

        self.db.delete(appointment)
        self.db.commit()

        logger.info(f"Appointment {appointment_id} deleted by user {claims.subject_id}")

    def _get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def _authorize(
        self,
        claims: IdentityClaims,
        appointment: Appointment,
        status: Optional[AppointmentStatus] = None,
    ) -> None:
        owned_id = self._owned_profile_id(claims)
        if can_act_on_appointment(claims.role, owned_id, appointment, status):
            return
        if claims.role == UserRole.PATIENT and status not in (None, AppointmentStatus.CANCELLED):
            raise AuthorizationError("Patients can only cancel appointments")
        raise AuthorizationError("Not allowed to modify this appointment")

    def _owned_profile_id(self, claims: IdentityClaims) -> Optional[int]:
        if claims.role == UserRole.DOCTOR:
            doctor = self._doctor_for(claims)
            return doctor.id if doctor else None
        if claims.role == UserRole.PATIENT:
            patient = self._patient_for(claims)
            return patient.id if patient else None
        return None

    def _doctor_for(self, claims: IdentityClaims) -> Optional[Doctor]:
        return self.db.query(Doctor).filter(Doctor.user_id == claims.subject_id).first()

    def _patient_for(self, claims: IdentityClaims) -> Optional[Patient]:
        return self.db.query(Patient).filter(Patient.user_id == claims.subject_id).first()


def appointment_to_response(appointment: Appointment) -> AppointmentResponse:
    doctor = appointment.doctor
    patient = appointment.patient
    return AppointmentResponse(
        id=appointment.id,
        doctor_id=appointment.doctor_id,
        patient_id=appointment.patient_id,
        appointment_date=appointment.appointment_date,
        status=appointment.status,
        notes=appointment.notes,
        created_at=appointment.created_at,
        doctor=AppointmentDoctor(
            id=doctor.id,
            name=doctor.user.name,
            email=doctor.user.email,
            speciality=doctor.speciality,
        ),
        patient=AppointmentPatient(
            id=patient.id,
            name=patient.user.name,
            email=patient.user.email,
            phone=patient.phone,
        ),
    )
