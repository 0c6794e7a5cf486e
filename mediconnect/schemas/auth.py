from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime

from ..core.security import UserRole

class DoctorProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    speciality: str
    is_online: bool
    last_online_at: Optional[datetime] = None

class PatientProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    phone: Optional[str] = None

class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    name: str = Field(..., min_length=1, max_length=200)
    role: UserRole
    speciality: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)

    @field_validator("role")
    @classmethod
    def role_must_be_self_registrable(cls, role: UserRole) -> UserRole:
        if role == UserRole.ADMIN:
            raise ValueError("Only doctors and patients can register")
        return role

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    role: UserRole
    created_at: Optional[datetime] = None
    doctor: Optional[DoctorProfile] = None
    patient: Optional[PatientProfile] = None

class AuthResponse(BaseModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"
    expires_in: int

class TokenVerifyResponse(BaseModel):
    valid: bool
    user_id: int
    email: str
    role: UserRole
