"""
Role-based authorization decisions.

Every function here is pure: callers look up the actor's owned profile id
and the target record, these functions only decide.
"""
from typing import Optional

from .security import ROLE_HIERARCHY, UserRole
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import Doctor


def role_level(role) -> int:
    """Position of a role in the hierarchy; unknown roles are level 0."""
    try:
        return ROLE_HIERARCHY.get(UserRole(role), 0)
    except ValueError:
        return 0


def has_minimum_role(role, minimum_role) -> bool:
    required = role_level(minimum_role)
    return required > 0 and role_level(role) >= required


def can_act_on_appointment(
    actor_role: UserRole,
    actor_owned_id: Optional[int],
    appointment: Appointment,
    status: Optional[AppointmentStatus] = None,
) -> bool:
    """Whether the actor may update or delete the appointment.

    `actor_owned_id` is the id of the actor's doctor or patient profile.
    `status` is the status the actor asks for, if any; patients may only
    ever ask for a cancellation.
    """
    if actor_owned_id is None:
        return False

    if actor_role == UserRole.DOCTOR:
        return actor_owned_id == appointment.doctor_id
    if actor_role == UserRole.PATIENT:
        if status is not None and status != AppointmentStatus.CANCELLED:
            return False
        return actor_owned_id == appointment.patient_id
    if actor_role == UserRole.ADMIN:
        return False
    raise ValueError(f"Unknown role: {actor_role!r}")


def can_create_appointment(actor_role: UserRole) -> bool:
    return actor_role == UserRole.PATIENT


def can_set_availability(actor_role: UserRole, actor_subject_id: int, doctor: Doctor) -> bool:
    return actor_role == UserRole.DOCTOR and doctor.user_id == actor_subject_id
