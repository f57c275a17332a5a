from tourdesk.extensions import db
from tourdesk.models.base import PKType, TimestampMixin


class Venue(TimestampMixin, db.Model):
    __tablename__ = "venues"

    KINDS = ("winery", "restaurant", "hotel")

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    kind = db.Column(db.String(24), nullable=False, index=True)
    name = db.Column(db.String(160), nullable=False)
    city = db.Column(db.String(120), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    __table_args__ = (
        db.Index("ix_venues_kind_active", "kind", "is_active"),
        db.CheckConstraint("kind IN ('winery', 'restaurant', 'hotel')", name="ck_venue_kind"),
    )
