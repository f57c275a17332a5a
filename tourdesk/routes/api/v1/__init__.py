from flask import Blueprint

from tourdesk.extensions import csrf
from tourdesk.routes.api.v1.auth import api_auth_bp
from tourdesk.routes.api.v1.availability import api_availability_bp
from tourdesk.routes.api.v1.bookings import api_booking_bp
from tourdesk.routes.api.v1.fleet import api_fleet_bp
from tourdesk.routes.api.v1.payments import api_payment_bp
from tourdesk.routes.api.v1.pricing import api_pricing_bp
from tourdesk.routes.api.v1.proposals import api_proposal_bp
from tourdesk.routes.api.v1.venues import api_venue_bp

api_v1_bp = Blueprint("api_v1", __name__)
api_v1_bp.register_blueprint(api_auth_bp, url_prefix="/auth")
api_v1_bp.register_blueprint(api_venue_bp, url_prefix="/venues")
api_v1_bp.register_blueprint(api_fleet_bp, url_prefix="/fleet")
api_v1_bp.register_blueprint(api_pricing_bp, url_prefix="/pricing")
api_v1_bp.register_blueprint(api_availability_bp, url_prefix="/availability")
api_v1_bp.register_blueprint(api_booking_bp, url_prefix="/bookings")
api_v1_bp.register_blueprint(api_proposal_bp, url_prefix="/proposals")
api_v1_bp.register_blueprint(api_payment_bp, url_prefix="/payments")

csrf.exempt(api_v1_bp)
