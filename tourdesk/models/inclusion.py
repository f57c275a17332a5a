from decimal import Decimal

from tourdesk.extensions import db
from tourdesk.models.base import PKType, TimestampMixin


class Inclusion(TimestampMixin, db.Model):
    __tablename__ = "inclusions"

    TYPES = ("transportation", "chauffeur", "gratuity", "custom")

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    trip_proposal_id = db.Column(
        PKType, db.ForeignKey("trip_proposals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sort_order = db.Column(db.Integer, nullable=False, default=1)
    inclusion_type = db.Column(db.String(24), nullable=False)
    description = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Numeric(8, 2), nullable=False, default=1)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    trip_proposal = db.relationship("TripProposal", back_populates="inclusions")

    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_inclusion_quantity_non_negative"),
        db.CheckConstraint("unit_price >= 0", name="ck_inclusion_unit_price_non_negative"),
    )

    @property
    def total_price(self):
        return (Decimal(self.quantity or 0) * Decimal(self.unit_price or 0)).quantize(Decimal("0.01"))
