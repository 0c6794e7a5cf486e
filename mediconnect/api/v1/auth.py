from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.security import IdentityClaims, TokenService
from ...api.deps import get_current_claims, get_token_service, rate_limit_check
from ...services.auth_service import AuthService
from ...services.user_service import UserService
from ...schemas.auth import (
    UserLogin, UserRegister, AuthResponse, UserResponse, TokenVerifyResponse
)

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post("/register", response_model=AuthResponse)
def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
    _: None = Depends(rate_limit_check)
):
    """Register a new doctor or patient and return a token."""
    auth_service = AuthService(db, token_service)
    return auth_service.register_user(user_data)

@router.post("/login", response_model=AuthResponse)
def login(
    login_data: UserLogin,
    db: Session = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
    _: None = Depends(rate_limit_check)
):
    """Authenticate user and return a token."""
    auth_service = AuthService(db, token_service)
    return auth_service.authenticate_user(login_data)

@router.get("/me", response_model=UserResponse)
def get_current_user_info(
    claims: IdentityClaims = Depends(get_current_claims),
    db: Session = Depends(get_db)
):
    """Get current user information."""
    return UserResponse.model_validate(UserService(db).get_profile(claims))

@router.post("/verify-token", response_model=TokenVerifyResponse)
def verify_token_endpoint(
    claims: IdentityClaims = Depends(get_current_claims)
):
    """Verify if token is valid."""
    return TokenVerifyResponse(
        valid=True,
        user_id=claims.subject_id,
        email=claims.email,
        role=claims.role,
    )
