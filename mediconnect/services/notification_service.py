from datetime import datetime
from typing import Callable, List
import logging

from sqlalchemy.orm import Session

from ..models.doctor import Doctor
from ..models.notification import Notification
from ..models.patient import Patient
from ..models.user import User
from .email_service import EmailSender, doctor_online_email

logger = logging.getLogger(__name__)

DOCTOR_ONLINE = "DOCTOR_ONLINE"

class AvailabilityNotifier:
    """Tells every patient that a doctor has just come online.

    Runs as a background task after the availability change has been
    committed, so it works on its own session. Failures are logged and never
    reach the doctor's request.
    """

    def __init__(self, session_factory: Callable[[], Session], email_sender: EmailSender):
        self.session_factory = session_factory
        self.email_sender = email_sender

    def notify_doctor_online(self, doctor_id: int) -> bool:
        """Send the fan-out for one doctor; True when an audit record was written."""
        db = self.session_factory()
        try:
            return self._notify(db, doctor_id)
        except Exception:
            db.rollback()
            logger.exception(f"Doctor online notification failed for doctor {doctor_id}")
            return False
        finally:
            db.close()

    def _notify(self, db: Session, doctor_id: int) -> bool:
        doctor = db.query(Doctor).filter(Doctor.id == doctor_id).first()
        if doctor is None:
            logger.warning(f"Doctor {doctor_id} vanished before notification")
            return False

        recipients = self._patient_emails(db)
        if not recipients:
            logger.info(f"No patients to notify about doctor {doctor_id}")
            return False

        subject, html = doctor_online_email(doctor.user.name, doctor.speciality)
        if not self.email_sender.send(recipients, subject, html):
            logger.error(
                f"Doctor online email for doctor {doctor_id} was not delivered "
                f"to {len(recipients)} patients"
            )
            return False

        db.add(Notification(
            type=DOCTOR_ONLINE,
            message=f"Dr. {doctor.user.name} is now online",
            sent_to=recipients,
            sent_at=datetime.utcnow(),
        ))
        db.commit()

        logger.info(f"Notified {len(recipients)} patients that doctor {doctor_id} is online")
        return True

    @staticmethod
    def _patient_emails(db: Session) -> List[str]:
        rows = db.query(User.email).join(Patient, Patient.user_id == User.id).all()
        return [email for (email,) in rows]
