from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.security import IdentityClaims
from ...api.deps import get_current_claims
from ...services.user_service import UserService
from ...schemas.auth import UserResponse
from ...schemas.user import ProfileUpdate

router = APIRouter(prefix="/users", tags=["Users"])

@router.get("/profile", response_model=UserResponse)
def get_profile(
    claims: IdentityClaims = Depends(get_current_claims),
    db: Session = Depends(get_db)
):
    """Profile of the caller, with their doctor or patient details."""
    return UserResponse.model_validate(UserService(db).get_profile(claims))

@router.put("/profile", response_model=UserResponse)
def update_profile(
    profile_data: ProfileUpdate,
    claims: IdentityClaims = Depends(get_current_claims),
    db: Session = Depends(get_db)
):
    return UserResponse.model_validate(UserService(db).update_profile(claims, profile_data))
