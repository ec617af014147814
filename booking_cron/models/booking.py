import enum
import uuid
from datetime import timedelta
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship
from booking_cron.database import Base


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class Booking(Base):
    """Store booking data"""
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    customer_id = Column(String(255), index=True)
    provider_id = Column(String(255), index=True)
    service_id = Column(String(36), ForeignKey("services.id"), index=True, nullable=True)
    customer_phone = Column(String(20), nullable=True)

    status = Column(String(20), default=BookingStatus.PENDING.value, index=True, nullable=False)
    scheduled_at = Column(DateTime, index=True, nullable=False)
    duration_minutes = Column(Integer, default=0, nullable=False)

    is_online = Column(Boolean, default=False)
    meeting_link = Column(Text, nullable=True)
    meeting_id = Column(String(255), nullable=True)  # Calendar event id, needed to delete the meeting
    meeting_platform = Column(String(50), nullable=True)

    # Written by automation or the settlement backend
    completed_at = Column(DateTime, nullable=True)
    auto_status_updated = Column(Boolean, default=False)
    completion_notes = Column(Text, nullable=True)
    completion_tx_hash = Column(String(66), nullable=True)
    reminder_1h_sent = Column(DateTime, nullable=True)  # Never cleared once set

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now())

    service = relationship("Service")

    @property
    def end_time(self):
        """Start time plus duration; not stored"""
        return self.scheduled_at + timedelta(minutes=self.duration_minutes or 0)
