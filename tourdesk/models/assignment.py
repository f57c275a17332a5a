from datetime import datetime, timezone

from tourdesk.extensions import db
from tourdesk.models.base import PKType, TimestampMixin


class Assignment(TimestampMixin, db.Model):
    __tablename__ = "assignments"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    booking_id = db.Column(PKType, db.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True)
    driver_id = db.Column(PKType, db.ForeignKey("drivers.id"), nullable=False, index=True)
    vehicle_id = db.Column(PKType, db.ForeignKey("vehicles.id"), nullable=False, index=True)
    assigned_by_id = db.Column(PKType, db.ForeignKey("users.id"), nullable=True)
    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    booking = db.relationship("Booking", back_populates="assignment")
    driver = db.relationship("Driver", back_populates="assignments")
    vehicle = db.relationship("Vehicle", back_populates="assignments")
    assigned_by = db.relationship("User", back_populates="assignments_made")
