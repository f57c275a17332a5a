from tourdesk.extensions import db
from tourdesk.models.base import PKType, TimestampMixin


class ItineraryDay(TimestampMixin, db.Model):
    __tablename__ = "itinerary_days"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    trip_proposal_id = db.Column(
        PKType, db.ForeignKey("trip_proposals.id", ondelete="CASCADE"), nullable=True, index=True
    )
    booking_id = db.Column(PKType, db.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=True, index=True)
    day_number = db.Column(db.Integer, nullable=False)
    date = db.Column(db.Date, nullable=False)
    title = db.Column(db.String(160), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    trip_proposal = db.relationship("TripProposal", back_populates="days")
    booking = db.relationship("Booking", back_populates="days")
    stops = db.relationship(
        "ItineraryStop",
        back_populates="day",
        order_by="ItineraryStop.stop_order",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.UniqueConstraint("trip_proposal_id", "day_number", name="uq_itinerary_day_proposal_number"),
        db.CheckConstraint("day_number >= 1", name="ck_itinerary_day_number_positive"),
        db.CheckConstraint(
            "trip_proposal_id IS NOT NULL OR booking_id IS NOT NULL", name="ck_itinerary_day_has_owner"
        ),
    )


class ItineraryStop(TimestampMixin, db.Model):
    __tablename__ = "itinerary_stops"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    day_id = db.Column(PKType, db.ForeignKey("itinerary_days.id", ondelete="CASCADE"), nullable=False, index=True)
    stop_order = db.Column(db.Integer, nullable=False)
    stop_type = db.Column(db.String(24), nullable=False)
    venue_id = db.Column(PKType, db.ForeignKey("venues.id"), nullable=True, index=True)
    custom_name = db.Column(db.String(160), nullable=True)
    custom_address = db.Column(db.String(255), nullable=True)
    scheduled_time = db.Column(db.Time, nullable=True)
    duration_minutes = db.Column(db.Integer, nullable=False, default=60)
    per_person_cost = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    flat_cost = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    reservation_status = db.Column(db.String(16), nullable=False, default="pending")
    notes = db.Column(db.Text, nullable=True)

    day = db.relationship("ItineraryDay", back_populates="stops")
    venue = db.relationship("Venue")

    __table_args__ = (
        db.UniqueConstraint("day_id", "stop_order", name="uq_itinerary_stop_order"),
        db.CheckConstraint("per_person_cost >= 0", name="ck_stop_per_person_cost_non_negative"),
        db.CheckConstraint("flat_cost >= 0", name="ck_stop_flat_cost_non_negative"),
        db.CheckConstraint("duration_minutes > 0", name="ck_stop_duration_positive"),
    )
