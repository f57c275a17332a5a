from tourdesk.extensions import db
from tourdesk.models.base import PKType, TimestampMixin


class Driver(TimestampMixin, db.Model):
    __tablename__ = "drivers"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    full_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=True, unique=True)
    phone = db.Column(db.String(20), nullable=False, default="")
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    assignments = db.relationship("Assignment", back_populates="driver", lazy="dynamic")
