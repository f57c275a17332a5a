from flask import Blueprint, jsonify, request
from flask_login import login_required

from tourdesk.decorators import role_required
from tourdesk.services import AvailabilityService

api_availability_bp = Blueprint("api_availability", __name__)


@api_availability_bp.post("")
@login_required
@role_required("admin", "staff")
def find_available():
    payload = request.get_json(silent=True) or {}
    result = AvailabilityService.find_available(
        payload.get("date"),
        payload.get("start_time"),
        payload.get("duration_hours"),
        payload.get("party_size"),
        exclude_booking_id=payload.get("exclude_booking_id"),
    )
    return jsonify(
        {
            "drivers": [c.to_dict() for c in result["drivers"]],
            "vehicles": [c.to_dict() for c in result["vehicles"]],
        }
    )
