from tourdesk.extensions import db
from tourdesk.models.base import PKType, TimestampMixin


class Payment(TimestampMixin, db.Model):
    __tablename__ = "payments"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    booking_id = db.Column(PKType, db.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=True, index=True)
    trip_proposal_id = db.Column(
        PKType, db.ForeignKey("trip_proposals.id", ondelete="CASCADE"), nullable=True, index=True
    )
    receipt_number = db.Column(db.String(32), nullable=False, unique=True, index=True)
    payment_type = db.Column(db.String(24), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="usd")
    payment_intent_ref = db.Column(db.String(120), nullable=True, unique=True, index=True)
    status = db.Column(db.String(24), nullable=False, default="pending", index=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    booking = db.relationship("Booking", back_populates="payments")
    trip_proposal = db.relationship("TripProposal", back_populates="payments")

    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_payment_amount_non_negative"),
        db.CheckConstraint(
            "booking_id IS NOT NULL OR trip_proposal_id IS NOT NULL", name="ck_payment_has_owner"
        ),
    )
