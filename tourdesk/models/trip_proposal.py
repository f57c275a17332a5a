from tourdesk.extensions import db
from tourdesk.models.base import PKType, TimestampMixin


class TripProposal(TimestampMixin, db.Model):
    __tablename__ = "trip_proposals"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    proposal_number = db.Column(db.String(32), nullable=False, unique=True, index=True)
    # Opaque key for the customer-facing routes; proposal numbers are sequential.
    access_token = db.Column(db.String(96), nullable=False, unique=True, index=True)
    status = db.Column(db.String(24), nullable=False, default="draft", index=True)
    created_by_id = db.Column(PKType, db.ForeignKey("users.id"), nullable=True)

    customer_name = db.Column(db.String(150), nullable=False)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(20), nullable=True)
    trip_type = db.Column(db.String(32), nullable=False, default="wine_tour")
    party_size = db.Column(db.Integer, nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    valid_until = db.Column(db.Date, nullable=False)
    introduction = db.Column(db.Text, nullable=True)
    internal_notes = db.Column(db.Text, nullable=True)

    deposit_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=50)
    gratuity_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    tax_rate = db.Column(db.Numeric(5, 3), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_reason = db.Column(db.String(255), nullable=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    taxes = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    gratuity_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    deposit_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    balance_due = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    deposit_paid = db.Column(db.Boolean, nullable=False, default=False)
    deposit_paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    viewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    view_count = db.Column(db.Integer, nullable=False, default=0)
    accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    accepted_by_name = db.Column(db.String(150), nullable=True)
    expired_at = db.Column(db.DateTime(timezone=True), nullable=True)

    booking = db.relationship("Booking", back_populates="trip_proposal", uselist=False)
    days = db.relationship(
        "ItineraryDay",
        back_populates="trip_proposal",
        order_by="ItineraryDay.day_number",
        cascade="all, delete-orphan",
    )
    guests = db.relationship("Guest", back_populates="trip_proposal", order_by="Guest.id", cascade="all, delete-orphan")
    inclusions = db.relationship(
        "Inclusion",
        back_populates="trip_proposal",
        order_by="Inclusion.sort_order",
        cascade="all, delete-orphan",
    )
    payments = db.relationship("Payment", back_populates="trip_proposal", lazy="dynamic")

    __table_args__ = (
        db.CheckConstraint("party_size > 0", name="ck_proposal_party_size_positive"),
        db.CheckConstraint("end_date >= start_date", name="ck_proposal_date_range"),
        db.CheckConstraint("discount_amount >= 0", name="ck_proposal_discount_non_negative"),
    )
