from datetime import datetime, timedelta
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import Doctor
from ..models.notification import Notification
from ..models.patient import Patient
from ..schemas.analytics import (
    AnalyticsOverview, AnalyticsResponse, SpecialityCount, StatusCount
)

logger = logging.getLogger(__name__)

PERIODS = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}
DEFAULT_PERIOD = "7d"

class AnalyticsService:
    def __init__(self, db: Session):
        self.db = db

    def summary(self, period: str = DEFAULT_PERIOD) -> AnalyticsResponse:
        """Platform counters over a trailing window; unknown periods fall back to 7 days."""
        if period not in PERIODS:
            period = DEFAULT_PERIOD
        start_date = datetime.utcnow() - PERIODS[period]

        recent_appointments = self.db.query(Appointment).filter(
            Appointment.created_at >= start_date
        )

        overview = AnalyticsOverview(
            total_doctors=self.db.query(Doctor).count(),
            total_patients=self.db.query(Patient).count(),
            online_doctors=self.db.query(Doctor).filter(Doctor.is_online.is_(True)).count(),
            total_appointments=recent_appointments.count(),
            pending_appointments=recent_appointments.filter(
                Appointment.status == AppointmentStatus.PENDING
            ).count(),
            completed_appointments=recent_appointments.filter(
                Appointment.status == AppointmentStatus.COMPLETED
            ).count(),
            recent_notifications=self.db.query(Notification).filter(
                Notification.sent_at >= start_date
            ).count(),
        )

        trends = (
            self.db.query(Appointment.status, func.count(Appointment.id))
            .filter(Appointment.created_at >= start_date)
            .group_by(Appointment.status)
            .all()
        )

        doctor_count = func.count(Doctor.id)
        specialities = (
            self.db.query(Doctor.speciality, doctor_count)
            .group_by(Doctor.speciality)
            .order_by(doctor_count.desc())
            .all()
        )

        return AnalyticsResponse(
            overview=overview,
            appointment_trends=[
                StatusCount(status=status.value, count=count) for status, count in trends
            ],
            speciality_distribution=[
                SpecialityCount(speciality=speciality, count=count)
                for speciality, count in specialities
            ],
            period=period,
        )
