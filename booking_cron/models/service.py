from sqlalchemy import Column, String
from booking_cron.database import Base


class Service(Base):
    """Service offered by a provider"""
    __tablename__ = "services"

    id = Column(String(36), primary_key=True)
    provider_id = Column(String(255), index=True)
    title = Column(String(255))
    meeting_platform = Column(String(50), nullable=True)  # e.g. "google_meet"
