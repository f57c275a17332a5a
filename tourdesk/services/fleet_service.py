from sqlalchemy.exc import IntegrityError

from tourdesk.errors import AppError, NotFoundError, ValidationError
from tourdesk.extensions import db
from tourdesk.models import Driver, Vehicle


class FleetService:
    @staticmethod
    def create_driver(payload):
        full_name = (payload.get("full_name") or "").strip()
        if not full_name:
            raise ValidationError("Driver name is required.", field="full_name")
        driver = Driver(
            full_name=full_name,
            email=(payload.get("email") or "").strip().lower() or None,
            phone=(payload.get("phone") or "").strip(),
            is_active=bool(payload.get("is_active", True)),
        )
        try:
            db.session.add(driver)
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise AppError("A driver with this email already exists.", 409) from exc
        return driver

    @staticmethod
    def create_vehicle(payload):
        make = (payload.get("make") or "").strip()
        model = (payload.get("model") or "").strip()
        vehicle_number = (payload.get("vehicle_number") or "").strip().upper()
        if not make or not model or not vehicle_number:
            raise ValidationError("Make, model and vehicle number are required.", field="vehicle_number")
        try:
            capacity = int(payload.get("capacity"))
            if capacity <= 0:
                raise ValueError
        except (TypeError, ValueError) as exc:
            raise ValidationError("Capacity must be a positive whole number.", field="capacity") from exc

        vehicle = Vehicle(
            make=make,
            model=model,
            vehicle_number=vehicle_number,
            capacity=capacity,
            is_active=bool(payload.get("is_active", True)),
        )
        try:
            db.session.add(vehicle)
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise AppError("A vehicle with this number already exists.", 409) from exc
        return vehicle

    @staticmethod
    def set_active(model, resource_id, is_active):
        resource = db.session.get(model, resource_id)
        if not resource:
            raise NotFoundError(f"{model.__name__} not found.")
        resource.is_active = bool(is_active)
        db.session.commit()
        return resource

    @staticmethod
    def list_drivers(include_inactive=False):
        query = Driver.query.order_by(Driver.full_name)
        if not include_inactive:
            query = query.filter_by(is_active=True)
        return query.all()

    @staticmethod
    def list_vehicles(include_inactive=False):
        query = Vehicle.query.order_by(Vehicle.capacity, Vehicle.id)
        if not include_inactive:
            query = query.filter_by(is_active=True)
        return query.all()
