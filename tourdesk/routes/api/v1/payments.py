from flask import Blueprint, jsonify, request
from flask_login import login_required

from tourdesk.decorators import role_required
from tourdesk.errors import ValidationError
from tourdesk.extensions import db
from tourdesk.models import Booking, TripProposal
from tourdesk.services import PaymentService

api_payment_bp = Blueprint("api_payment", __name__)


def _payment_json(payment):
    return {
        "id": payment.id,
        "receipt_number": payment.receipt_number,
        "payment_type": payment.payment_type,
        "amount": str(payment.amount),
        "currency": payment.currency,
        "payment_intent_ref": payment.payment_intent_ref,
        "status": payment.status,
        "booking_id": payment.booking_id,
        "trip_proposal_id": payment.trip_proposal_id,
    }


@api_payment_bp.post("/intents")
@login_required
@role_required("admin", "staff")
def create_intent():
    payload = request.get_json(silent=True) or {}
    payment_type = (payload.get("payment_type") or "deposit").strip().lower()
    if payment_type == "final_payment":
        booking = db.get_or_404(Booking, payload.get("booking_id"))
        payment = PaymentService.create_final_payment_intent(booking)
    elif payment_type == "deposit":
        if payload.get("booking_id"):
            payment = PaymentService.create_deposit_intent(booking=db.get_or_404(Booking, payload["booking_id"]))
        elif payload.get("proposal_id"):
            payment = PaymentService.create_deposit_intent(
                proposal=db.get_or_404(TripProposal, payload["proposal_id"])
            )
        else:
            raise ValidationError("A booking or proposal is required.", field="booking_id")
    else:
        raise ValidationError("Payment type must be deposit or final_payment.", field="payment_type")
    return jsonify(_payment_json(payment)), 201


@api_payment_bp.post("/confirm")
@login_required
@role_required("admin", "staff")
def confirm():
    payload = request.get_json(silent=True) or {}
    payment = PaymentService.confirm_payment(payload.get("payment_intent_ref"))
    return jsonify(_payment_json(payment))


@api_payment_bp.post("/events")
@login_required
@role_required("admin", "staff")
def events():
    payment = PaymentService.handle_event(request.get_json(silent=True) or {})
    return jsonify({"handled": payment is not None, "payment": _payment_json(payment) if payment else None})
