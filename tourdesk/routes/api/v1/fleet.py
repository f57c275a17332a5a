from flask import Blueprint, jsonify, request
from flask_login import login_required

from tourdesk.decorators import role_required
from tourdesk.models import Driver, Vehicle
from tourdesk.services import FleetService

api_fleet_bp = Blueprint("api_fleet", __name__)


def _driver_json(driver):
    return {
        "id": driver.id,
        "full_name": driver.full_name,
        "email": driver.email,
        "phone": driver.phone,
        "is_active": driver.is_active,
    }


def _vehicle_json(vehicle):
    return {
        "id": vehicle.id,
        "label": vehicle.label,
        "make": vehicle.make,
        "model": vehicle.model,
        "vehicle_number": vehicle.vehicle_number,
        "capacity": vehicle.capacity,
        "is_active": vehicle.is_active,
    }


@api_fleet_bp.get("/drivers")
@login_required
@role_required("admin", "staff")
def list_drivers():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    return jsonify([_driver_json(d) for d in FleetService.list_drivers(include_inactive=include_inactive)])


@api_fleet_bp.post("/drivers")
@login_required
@role_required("admin")
def create_driver():
    driver = FleetService.create_driver(request.get_json(silent=True) or {})
    return jsonify(_driver_json(driver)), 201


@api_fleet_bp.patch("/drivers/<int:driver_id>/active")
@login_required
@role_required("admin")
def set_driver_active(driver_id):
    payload = request.get_json(silent=True) or {}
    driver = FleetService.set_active(Driver, driver_id, payload.get("is_active", True))
    return jsonify(_driver_json(driver))


@api_fleet_bp.get("/vehicles")
@login_required
@role_required("admin", "staff")
def list_vehicles():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    return jsonify([_vehicle_json(v) for v in FleetService.list_vehicles(include_inactive=include_inactive)])


@api_fleet_bp.post("/vehicles")
@login_required
@role_required("admin")
def create_vehicle():
    vehicle = FleetService.create_vehicle(request.get_json(silent=True) or {})
    return jsonify(_vehicle_json(vehicle)), 201


@api_fleet_bp.patch("/vehicles/<int:vehicle_id>/active")
@login_required
@role_required("admin")
def set_vehicle_active(vehicle_id):
    payload = request.get_json(silent=True) or {}
    vehicle = FleetService.set_active(Vehicle, vehicle_id, payload.get("is_active", True))
    return jsonify(_vehicle_json(vehicle))
