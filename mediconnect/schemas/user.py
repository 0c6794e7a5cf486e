from pydantic import BaseModel, Field
from typing import Optional

class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=20)
    speciality: Optional[str] = Field(None, min_length=1, max_length=100)
