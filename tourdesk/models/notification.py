from tourdesk.extensions import db
from tourdesk.models.base import PKType, TimestampMixin


class Notification(TimestampMixin, db.Model):
    __tablename__ = "notifications"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    booking_id = db.Column(PKType, db.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_role = db.Column(db.String(24), nullable=False)
    event_type = db.Column(db.String(64), nullable=False, index=True)
    message = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(24), nullable=False, default="queued", index=True)

    booking = db.relationship("Booking", back_populates="notifications")
