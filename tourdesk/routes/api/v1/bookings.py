from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from tourdesk.decorators import role_required
from tourdesk.extensions import db
from tourdesk.models import Booking
from tourdesk.services import AssignmentService, BookingService, NotificationService

api_booking_bp = Blueprint("api_booking", __name__)


def _booking_json(booking):
    assignment = booking.assignment
    return {
        "id": booking.id,
        "booking_number": booking.booking_number,
        "status": booking.status,
        "customer_name": booking.customer_name,
        "customer_email": booking.customer_email,
        "tour_date": booking.tour_date.isoformat(),
        "end_date": booking.end_date.isoformat() if booking.end_date else None,
        "start_time": booking.start_time.strftime("%H:%M"),
        "end_time": booking.end_time.strftime("%H:%M"),
        "party_size": booking.party_size,
        "pickup_location": booking.pickup_location,
        "total_price": str(booking.total_price),
        "deposit_amount": str(booking.deposit_amount),
        "deposit_paid": booking.deposit_paid,
        "final_payment_amount": str(booking.final_payment_amount),
        "final_payment_paid": booking.final_payment_paid,
        "confirmed_by_override": booking.confirmed_by_override,
        "refund_amount": str(booking.refund_amount) if booking.refund_amount is not None else None,
        "trip_proposal_id": booking.trip_proposal_id,
        "assignment": (
            {
                "driver_id": assignment.driver_id,
                "driver_name": assignment.driver.full_name,
                "vehicle_id": assignment.vehicle_id,
                "vehicle": assignment.vehicle.label,
                "assigned_at": assignment.assigned_at.isoformat(),
            }
            if assignment
            else None
        ),
    }


@api_booking_bp.post("")
@login_required
@role_required("admin", "staff")
def create_booking():
    booking = BookingService.create_booking(request.get_json(silent=True) or {})
    return jsonify(_booking_json(booking)), 201


@api_booking_bp.get("/<int:booking_id>")
@login_required
@role_required("admin", "staff")
def get_booking(booking_id):
    return jsonify(_booking_json(db.get_or_404(Booking, booking_id)))


@api_booking_bp.patch("/<int:booking_id>/pricing")
@login_required
@role_required("admin", "staff")
def update_pricing(booking_id):
    payload = request.get_json(silent=True) or {}
    booking = db.get_or_404(Booking, booking_id)
    booking = BookingService.update_pricing(
        booking, base_price=payload.get("base_price"), total_price=payload.get("total_price")
    )
    return jsonify(_booking_json(booking))


@api_booking_bp.patch("/<int:booking_id>/status")
@login_required
@role_required("admin", "staff")
def update_status(booking_id):
    payload = request.get_json(silent=True) or {}
    booking = db.get_or_404(Booking, booking_id)
    booking = BookingService.transition_booking(booking, payload.get("status"))
    return jsonify({"id": booking.id, "status": booking.status})


@api_booking_bp.post("/<int:booking_id>/confirm")
@login_required
@role_required("admin", "staff")
def confirm_booking(booking_id):
    payload = request.get_json(silent=True) or {}
    booking = db.get_or_404(Booking, booking_id)
    booking = BookingService.confirm_booking(booking, override=bool(payload.get("override")))
    return jsonify({"id": booking.id, "status": booking.status, "confirmed_by_override": booking.confirmed_by_override})


@api_booking_bp.put("/<int:booking_id>/assignment")
@login_required
@role_required("admin", "staff")
def assign(booking_id):
    payload = request.get_json(silent=True) or {}
    booking = db.get_or_404(Booking, booking_id)
    assignment = AssignmentService.assign(
        booking, payload.get("driver_id"), payload.get("vehicle_id"), actor=current_user
    )
    return jsonify(
        {
            "booking_id": assignment.booking_id,
            "driver_id": assignment.driver_id,
            "vehicle_id": assignment.vehicle_id,
            "status": assignment.booking.status,
        }
    )


@api_booking_bp.delete("/<int:booking_id>/assignment")
@login_required
@role_required("admin", "staff")
def unassign(booking_id):
    booking = AssignmentService.unassign(db.get_or_404(Booking, booking_id))
    return jsonify({"id": booking.id, "status": booking.status})


@api_booking_bp.post("/<int:booking_id>/cancel")
@login_required
@role_required("admin", "staff")
def cancel(booking_id):
    payload = request.get_json(silent=True) or {}
    booking = db.get_or_404(Booking, booking_id)
    quote = BookingService.cancel_booking(booking, reason=payload.get("reason"))
    return jsonify({"id": booking.id, "status": booking.status, "refund": quote.to_dict()})


@api_booking_bp.get("/<int:booking_id>/refund-quote")
@login_required
@role_required("admin", "staff")
def refund_quote(booking_id):
    booking = db.get_or_404(Booking, booking_id)
    return jsonify(BookingService.refund_quote(booking).to_dict())


@api_booking_bp.get("/<int:booking_id>/final-payment")
@login_required
@role_required("admin", "staff")
def final_payment(booking_id):
    booking = db.get_or_404(Booking, booking_id)
    return jsonify(BookingService.final_payment_window(booking).to_dict())


@api_booking_bp.get("/<int:booking_id>/notifications")
@login_required
@role_required("admin", "staff")
def notifications(booking_id):
    booking = db.get_or_404(Booking, booking_id)
    return jsonify(
        [
            {
                "id": n.id,
                "recipient_role": n.recipient_role,
                "event_type": n.event_type,
                "message": n.message,
                "status": n.status,
                "created_at": n.created_at.isoformat(),
            }
            for n in NotificationService.queued_for_booking(booking.id)
        ]
    )
