from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

class DoctorResponse(BaseModel):
    id: int
    name: str
    email: str
    speciality: str
    is_online: bool
    last_online_at: Optional[datetime] = None

class DoctorStatusUpdate(BaseModel):
    is_online: bool

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int

class DoctorListResponse(BaseModel):
    doctors: List[DoctorResponse]
    pagination: Pagination
