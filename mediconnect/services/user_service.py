from sqlalchemy.orm import Session
import logging

from ..core.exceptions import NotFoundError
from ..core.security import IdentityClaims, UserRole
from ..models.user import User
from ..schemas.user import ProfileUpdate

logger = logging.getLogger(__name__)

class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_profile(self, claims: IdentityClaims) -> User:
        user = self.db.query(User).filter(User.id == claims.subject_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_profile(self, claims: IdentityClaims, data: ProfileUpdate) -> User:
        """Update the name, plus the speciality for doctors or the phone for patients."""
        user = self.get_profile(claims)

        if data.name:
            user.name = data.name
        if claims.role == UserRole.DOCTOR and data.speciality and user.doctor:
            user.doctor.speciality = data.speciality
        if claims.role == UserRole.PATIENT and "phone" in data.model_fields_set and user.patient:
            user.patient.phone = data.phone

        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Profile updated for user {user.id}")
        return user
