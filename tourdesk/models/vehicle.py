from tourdesk.extensions import db
from tourdesk.models.base import PKType, TimestampMixin


class Vehicle(TimestampMixin, db.Model):
    __tablename__ = "vehicles"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    make = db.Column(db.String(80), nullable=False)
    model = db.Column(db.String(80), nullable=False)
    vehicle_number = db.Column(db.String(32), nullable=False, unique=True, index=True)
    capacity = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    assignments = db.relationship("Assignment", back_populates="vehicle", lazy="dynamic")

    __table_args__ = (db.CheckConstraint("capacity > 0", name="ck_vehicle_capacity_positive"),)

    @property
    def label(self):
        return f"{self.make} {self.model} ({self.vehicle_number})"
