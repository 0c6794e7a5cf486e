from fastapi import Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
import logging
import redis

from ..core.database import SessionLocal, get_db, get_redis
from ..core.config import settings
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError
from ..core.permissions import has_minimum_role
from ..core.security import IdentityClaims, TokenService, UserRole
from ..models.doctor import Doctor
from ..services.email_service import EmailSender, get_email_sender
from ..services.notification_service import AvailabilityNotifier

logger = logging.getLogger(__name__)

def get_token_service(request: Request) -> TokenService:
    """Process-wide token service, configured at startup."""
    return request.app.state.token_service

def get_current_claims(request: Request) -> IdentityClaims:
    """Identity published by the authentication middleware."""
    user_id = getattr(request.state, "user_id", None)
    role = getattr(request.state, "user_role", None)
    email = getattr(request.state, "user_email", None)

    if user_id is None or role is None or email is None:
        raise AuthenticationError()

    return IdentityClaims(subject_id=user_id, email=email, role=role)

# Role-based access control dependencies
def require_role(allowed_roles: list):
    """Create a dependency that requires one of the given roles."""
    def role_checker(
        claims: IdentityClaims = Depends(get_current_claims)
    ) -> IdentityClaims:
        if claims.role not in allowed_roles:
            raise AuthorizationError(
                f"Access denied. Required roles: {[role.value for role in allowed_roles]}"
            )
        return claims

    return role_checker

def require_minimum_role(minimum_role: UserRole):
    """Create a dependency that requires at least the given role level."""
    def role_checker(
        claims: IdentityClaims = Depends(get_current_claims)
    ) -> IdentityClaims:
        if not has_minimum_role(claims.role, minimum_role):
            raise AuthorizationError(f"Access denied. Requires {minimum_role.value} or above")
        return claims

    return role_checker

def get_current_doctor(
    claims: IdentityClaims = Depends(require_role([UserRole.DOCTOR])),
    db: Session = Depends(get_db)
) -> Doctor:
    doctor = db.query(Doctor).filter(Doctor.user_id == claims.subject_id).first()
    if not doctor:
        raise NotFoundError("Doctor profile not found")
    return doctor

def get_session_factory():
    """Session factory for work that outlives the request, e.g. background tasks."""
    return SessionLocal

def get_availability_notifier(
    session_factory = Depends(get_session_factory),
    email_sender: EmailSender = Depends(get_email_sender)
) -> AvailabilityNotifier:
    return AvailabilityNotifier(session_factory, email_sender)

# Rate limiting dependency
def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Basic rate limiting for authentication endpoints."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{request.url.path}:{client_ip}"

    try:
        current_requests = redis_client.incr(key)
        if current_requests == 1:
            redis_client.expire(key, settings.RATE_LIMIT_WINDOW_SECONDS)
    except redis.RedisError as e:
        logger.warning(f"Rate limiter unavailable, allowing request: {e}")
        return

    if current_requests > settings.RATE_LIMIT_REQUESTS:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later."
        )
