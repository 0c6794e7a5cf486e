from datetime import datetime
from typing import List, Optional, Tuple
import logging

from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import AuthorizationError
from ..core.permissions import can_set_availability
from ..core.security import IdentityClaims
from ..models.doctor import Doctor
from ..models.user import User
from ..schemas.doctor import DoctorResponse

logger = logging.getLogger(__name__)

class DoctorService:
    def __init__(self, db: Session):
        self.db = db

    def list_doctors(
        self,
        speciality: Optional[str] = None,
        is_online: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Doctor], int]:
        """Filtered page of doctors; online first, then most recently online."""
        query = self.db.query(Doctor).join(User, Doctor.user_id == User.id)

        if speciality:
            query = query.filter(Doctor.speciality.ilike(f"%{speciality}%"))
        if is_online is not None:
            query = query.filter(Doctor.is_online == is_online)

        total = query.count()
        doctors = (
            query.options(joinedload(Doctor.user))
            .order_by(
                Doctor.is_online.desc(),
                Doctor.last_online_at.desc().nullslast(),
                User.name.asc(),
            )
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return doctors, total

    def online_doctors(self) -> List[Doctor]:
        return (
            self.db.query(Doctor)
            .options(joinedload(Doctor.user))
            .filter(Doctor.is_online.is_(True))
            .order_by(Doctor.last_online_at.desc())
            .all()
        )

    def set_availability(self, claims: IdentityClaims, doctor: Doctor, is_online: bool) -> bool:
        """Update a doctor's online flag.

        Returns True only when the doctor went from offline to online, which
        is the one case that must trigger a notification.
        """
        if not can_set_availability(claims.role, claims.subject_id, doctor):
            raise AuthorizationError("Only the doctor can change their availability")

        went_online = is_online and not doctor.is_online
        doctor.is_online = is_online
        if went_online:
            doctor.last_online_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(doctor)

        logger.info(f"Doctor {doctor.id} is now {'online' if is_online else 'offline'}")
        return went_online

def doctor_to_response(doctor: Doctor) -> DoctorResponse:
    return DoctorResponse(
        id=doctor.id,
        name=doctor.user.name,
        email=doctor.user.email,
        speciality=doctor.speciality,
        is_online=doctor.is_online,
        last_online_at=doctor.last_online_at,
    )
