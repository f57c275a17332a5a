from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from tourdesk.decorators import role_required
from tourdesk.extensions import db, limiter
from tourdesk.models import TripProposal
from tourdesk.services import PaymentService, ProposalService

api_proposal_bp = Blueprint("api_proposal", __name__)


def _stop_json(stop):
    return {
        "stop_order": stop.stop_order,
        "stop_type": stop.stop_type,
        "venue_id": stop.venue_id,
        "venue_name": stop.venue.name if stop.venue else None,
        "custom_name": stop.custom_name,
        "custom_address": stop.custom_address,
        "scheduled_time": stop.scheduled_time.strftime("%H:%M") if stop.scheduled_time else None,
        "duration_minutes": stop.duration_minutes,
        "per_person_cost": str(stop.per_person_cost),
        "flat_cost": str(stop.flat_cost),
        "reservation_status": stop.reservation_status,
    }


def _proposal_json(proposal, internal=True):
    payload = {
        "id": proposal.id,
        "proposal_number": proposal.proposal_number,
        "status": proposal.status,
        "customer_name": proposal.customer_name,
        "trip_type": proposal.trip_type,
        "party_size": proposal.party_size,
        "start_date": proposal.start_date.isoformat(),
        "end_date": proposal.end_date.isoformat(),
        "valid_until": proposal.valid_until.isoformat(),
        "introduction": proposal.introduction,
        "days": [
            {
                "day_number": day.day_number,
                "date": day.date.isoformat(),
                "title": day.title,
                "notes": day.notes,
                "stops": [_stop_json(stop) for stop in day.stops],
            }
            for day in proposal.days
        ],
        "inclusions": [
            {
                "inclusion_type": item.inclusion_type,
                "description": item.description,
                "quantity": str(item.quantity),
                "unit_price": str(item.unit_price),
                "total_price": str(item.total_price),
            }
            for item in proposal.inclusions
        ],
        "totals": {
            "subtotal": str(proposal.subtotal),
            "discount_amount": str(proposal.discount_amount),
            "taxes": str(proposal.taxes),
            "gratuity_amount": str(proposal.gratuity_amount),
            "total": str(proposal.total),
            "deposit_amount": str(proposal.deposit_amount),
            "balance_due": str(proposal.balance_due),
        },
        "deposit_paid": proposal.deposit_paid,
        "booking_id": proposal.booking.id if proposal.booking else None,
    }
    if internal:
        payload["access_token"] = proposal.access_token
        payload["customer_email"] = proposal.customer_email
        payload["internal_notes"] = proposal.internal_notes
        payload["view_count"] = proposal.view_count
        payload["guests"] = [{"name": g.name, "email": g.email, "is_primary": g.is_primary} for g in proposal.guests]
    return payload


@api_proposal_bp.post("")
@login_required
@role_required("admin", "staff")
def create_proposal():
    proposal, totals = ProposalService.create_proposal(request.get_json(silent=True) or {}, actor=current_user)
    payload = _proposal_json(proposal)
    payload["warnings"] = list(totals.warnings)
    return jsonify(payload), 201


@api_proposal_bp.get("/<int:proposal_id>")
@login_required
@role_required("admin", "staff")
def get_proposal(proposal_id):
    return jsonify(_proposal_json(db.get_or_404(TripProposal, proposal_id)))


@api_proposal_bp.put("/<int:proposal_id>/itinerary")
@login_required
@role_required("admin", "staff")
def update_itinerary(proposal_id):
    proposal = db.get_or_404(TripProposal, proposal_id)
    proposal, totals = ProposalService.update_itinerary(proposal, request.get_json(silent=True) or {})
    payload = _proposal_json(proposal)
    payload["warnings"] = list(totals.warnings)
    return jsonify(payload)


@api_proposal_bp.post("/<int:proposal_id>/send")
@login_required
@role_required("admin", "staff")
def send_proposal(proposal_id):
    proposal = ProposalService.send(db.get_or_404(TripProposal, proposal_id))
    return jsonify({"id": proposal.id, "status": proposal.status, "sent_at": proposal.sent_at.isoformat()})


@api_proposal_bp.post("/<int:proposal_id>/expire")
@login_required
@role_required("admin", "staff")
def expire_proposal(proposal_id):
    proposal = ProposalService.expire(db.get_or_404(TripProposal, proposal_id))
    return jsonify({"id": proposal.id, "status": proposal.status})


@api_proposal_bp.post("/expire-stale")
@login_required
@role_required("admin", "staff")
def expire_stale():
    return jsonify({"expired": ProposalService.expire_stale()})


@api_proposal_bp.get("/public/<access_token>")
@limiter.limit("60 per minute")
def view_proposal(access_token):
    proposal = ProposalService.record_view(ProposalService.get_by_token(access_token))
    return jsonify(_proposal_json(proposal, internal=False))


@api_proposal_bp.post("/public/<access_token>/accept")
@limiter.limit("15 per minute")
def accept_proposal(access_token):
    payload = request.get_json(silent=True) or {}
    proposal = ProposalService.accept(ProposalService.get_by_token(access_token), payload.get("accepted_by_name"))
    return jsonify({"proposal_number": proposal.proposal_number, "status": proposal.status})


@api_proposal_bp.post("/public/<access_token>/deposit")
@limiter.limit("15 per minute")
def proposal_deposit(access_token):
    payment = PaymentService.create_deposit_intent(proposal=ProposalService.get_by_token(access_token))
    return jsonify(
        {
            "payment_intent_ref": payment.payment_intent_ref,
            "receipt_number": payment.receipt_number,
            "amount": str(payment.amount),
            "currency": payment.currency,
        }
    ), 201
