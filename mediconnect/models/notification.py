from sqlalchemy import Column, Integer, String, DateTime, Text, JSON
from sqlalchemy.sql import func

from ..core.database import Base

class Notification(Base):
    """Audit trail of notification fan-outs. Written once, never updated."""
    __tablename__ = "notifications"
    
    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(50), nullable=False, index=True)
    message = Column(Text, nullable=False)
    sent_to = Column(JSON, nullable=False, default=list)
    sent_at = Column(DateTime, server_default=func.now(), index=True)
    
    def __repr__(self):
        return f"<Notification(id={self.id}, type='{self.type}', recipients={len(self.sent_to or [])})>"
