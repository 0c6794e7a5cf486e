from sqlalchemy.orm import Session
import logging

from ..models.user import User
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..core.exceptions import AuthenticationError, BadRequestError
from ..core.security import (
    verify_password, get_password_hash, IdentityClaims, TokenService, UserRole
)
from ..schemas.auth import UserLogin, UserRegister, AuthResponse, UserResponse

logger = logging.getLogger(__name__)

DEFAULT_SPECIALITY = "General Medicine"

class AuthService:
    def __init__(self, db: Session, token_service: TokenService):
        self.db = db
        self.token_service = token_service

    def register_user(self, user_data: UserRegister) -> AuthResponse:
        """Register a new user along with their doctor or patient profile."""
        existing_user = self.db.query(User).filter(
            User.email == user_data.email
        ).first()

        if existing_user:
            raise BadRequestError("User already exists")

        new_user = User(
            email=user_data.email,
            name=user_data.name,
            password_hash=get_password_hash(user_data.password),
            role=user_data.role,
        )

        if user_data.role == UserRole.DOCTOR:
            new_user.doctor = Doctor(
                speciality=user_data.speciality or DEFAULT_SPECIALITY,
                is_online=False,
            )
        elif user_data.role == UserRole.PATIENT:
            new_user.patient = Patient(phone=user_data.phone)

        self.db.add(new_user)
        self.db.commit()
        self.db.refresh(new_user)

        logger.info(f"Registered {new_user.role.value} user {new_user.id}")

        return self._auth_response(new_user)

    def authenticate_user(self, login_data: UserLogin) -> AuthResponse:
        """Authenticate user and return a signed token."""
        user = self.db.query(User).filter(
            User.email == login_data.email
        ).first()

        if not user or not verify_password(login_data.password, user.password_hash):
            logger.warning(f"Failed login attempt for {login_data.email}")
            raise AuthenticationError("Invalid credentials")

        return self._auth_response(user)

    def _auth_response(self, user: User) -> AuthResponse:
        token = self.token_service.issue(
            IdentityClaims(subject_id=user.id, email=user.email, role=user.role)
        )
        return AuthResponse(
            user=UserResponse.model_validate(user),
            token=token,
            expires_in=int(self.token_service.expires_delta.total_seconds()),
        )
