from flask import Blueprint, jsonify, request
from flask_login import login_required

from tourdesk.decorators import role_required
from tourdesk.services import VenueService

api_venue_bp = Blueprint("api_venue", __name__)


@api_venue_bp.get("")
def list_venues():
    kind = (request.args.get("kind") or "winery").strip().lower()
    return jsonify({"kind": kind, "items": VenueService.directory(kind)})


@api_venue_bp.post("")
@login_required
@role_required("admin", "staff")
def create_venue():
    payload = request.get_json(silent=True) or {}
    venue = VenueService.create_venue(
        (payload.get("kind") or "").strip().lower(),
        payload.get("name"),
        city=payload.get("city"),
        address=payload.get("address"),
    )
    return jsonify({"id": venue.id, "kind": venue.kind, "name": venue.name}), 201
