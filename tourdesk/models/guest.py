from tourdesk.extensions import db
from tourdesk.models.base import PKType, TimestampMixin


class Guest(TimestampMixin, db.Model):
    __tablename__ = "guests"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    trip_proposal_id = db.Column(
        PKType, db.ForeignKey("trip_proposals.id", ondelete="CASCADE"), nullable=True, index=True
    )
    booking_id = db.Column(PKType, db.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=True, index=True)
    name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    dietary_restrictions = db.Column(db.String(255), nullable=True)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)

    trip_proposal = db.relationship("TripProposal", back_populates="guests")
    booking = db.relationship("Booking", back_populates="guests")
