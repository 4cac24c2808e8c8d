"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, text

from booking_backend.database import Base

PENDING = "pending"
APPROVED = "approved"
CANCELLED = "cancelled"
COMPLETED = "completed"
APPOINTMENT_STATUSES = (PENDING, APPROVED, CANCELLED, COMPLETED)


class Appointment(Base):
    """Represents a booked appointment.

    ``end_time`` is fixed when the appointment is booked, so later changes to
    the service duration do not move existing bookings.
    """
    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointments_business_range", "business_id", "start_time", "end_time"),
        Index(
            "uq_appointments_active_slot",
            "business_id",
            "start_time",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"))
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=PENDING)
    notes = Column(String)
    cancellation_reason = Column(String)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)
