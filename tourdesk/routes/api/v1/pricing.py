from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from tourdesk.decorators import role_required
from tourdesk.services import ItineraryBuilder, PlatformService, PricingService
from tourdesk.services.platform_service import RATE_SETTINGS
from tourdesk.utils import parse_decimal

api_pricing_bp = Blueprint("api_pricing", __name__)


@api_pricing_bp.post("/preview")
@login_required
@role_required("admin", "staff")
def preview():
    payload = request.get_json(silent=True) or {}
    draft = ItineraryBuilder.from_payload(payload, max_party_size=current_app.config["MAX_PARTY_SIZE"]).build()
    rates = {
        key: payload.get(key) if payload.get(key) is not None else PlatformService.rate(key)
        for key in RATE_SETTINGS
    }
    totals = PricingService.compute_totals(
        stops=draft.stops,
        inclusions=draft.inclusions,
        party_size=draft.party_size,
        discount_amount=payload.get("discount_amount") or 0,
        tax_rate_pct=rates["tax_rate"],
        gratuity_pct=rates["gratuity_percentage"],
        deposit_pct=rates["deposit_percentage"],
    )
    return jsonify(
        {
            "days": len(draft.days),
            "party_size": draft.party_size,
            "rates": {key: str(value) for key, value in rates.items()},
            "totals": totals.to_dict(),
        }
    )


@api_pricing_bp.get("/settings")
@login_required
@role_required("admin", "staff")
def get_settings():
    return jsonify({key: str(PlatformService.rate(key)) for key in RATE_SETTINGS})


@api_pricing_bp.put("/settings")
@login_required
@role_required("admin")
def update_settings():
    payload = request.get_json(silent=True) or {}
    for key in RATE_SETTINGS:
        if payload.get(key) is None:
            continue
        maximum = parse_decimal("100", key) if key == "deposit_percentage" else None
        PlatformService.set_setting(key, parse_decimal(payload[key], key, maximum=maximum))
    return jsonify({key: str(PlatformService.rate(key)) for key in RATE_SETTINGS})
