from pydantic import BaseModel
from typing import List

class AnalyticsOverview(BaseModel):
    total_doctors: int
    total_patients: int
    online_doctors: int
    total_appointments: int
    pending_appointments: int
    completed_appointments: int
    recent_notifications: int

class StatusCount(BaseModel):
    status: str
    count: int

class SpecialityCount(BaseModel):
    speciality: str
    count: int

class AnalyticsResponse(BaseModel):
    overview: AnalyticsOverview
    appointment_trends: List[StatusCount]
    speciality_distribution: List[SpecialityCount]
    period: str
