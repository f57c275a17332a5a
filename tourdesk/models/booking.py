from tourdesk.extensions import db
from tourdesk.models.base import PKType, TimestampMixin


class Booking(TimestampMixin, db.Model):
    __tablename__ = "bookings"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    booking_number = db.Column(db.String(32), nullable=False, unique=True, index=True)
    trip_proposal_id = db.Column(PKType, db.ForeignKey("trip_proposals.id"), nullable=True, index=True)

    customer_name = db.Column(db.String(150), nullable=False)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(20), nullable=True)

    tour_date = db.Column(db.Date, nullable=False, index=True)
    end_date = db.Column(db.Date, nullable=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    party_size = db.Column(db.Integer, nullable=False)
    pickup_location = db.Column(db.String(255), nullable=True)
    dropoff_location = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(24), nullable=False, default="pending", index=True)
    base_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    deposit_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    deposit_paid = db.Column(db.Boolean, nullable=False, default=False)
    deposit_paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    final_payment_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    final_payment_paid = db.Column(db.Boolean, nullable=False, default=False)
    final_payment_paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    confirmed_by_override = db.Column(db.Boolean, nullable=False, default=False)

    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancellation_reason = db.Column(db.Text, nullable=True)
    refund_amount = db.Column(db.Numeric(12, 2), nullable=True)

    assignment = db.relationship("Assignment", back_populates="booking", uselist=False, cascade="all, delete-orphan")
    trip_proposal = db.relationship("TripProposal", back_populates="booking")
    days = db.relationship("ItineraryDay", back_populates="booking", order_by="ItineraryDay.day_number")
    guests = db.relationship("Guest", back_populates="booking", order_by="Guest.id")
    payments = db.relationship("Payment", back_populates="booking", lazy="dynamic")
    notifications = db.relationship("Notification", back_populates="booking", lazy="dynamic")

    __table_args__ = (
        db.Index("ix_bookings_date_status", "tour_date", "status"),
        db.CheckConstraint("party_size > 0", name="ck_booking_party_size_positive"),
        db.CheckConstraint("end_time > start_time", name="ck_booking_window"),
    )

    @property
    def last_date(self):
        return self.end_date or self.tour_date
