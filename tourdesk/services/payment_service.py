import secrets

from flask import current_app

from tourdesk.errors import AppError, InvalidStateError, NotFoundError, ValidationError
from tourdesk.extensions import db
from tourdesk.models import Payment
from tourdesk.services.booking_service import TERMINAL_STATUSES, BookingService
from tourdesk.services.notification_service import NotificationService
from tourdesk.services.proposal_service import ProposalService
from tourdesk.utils import cents_to_decimal, generate_document_number, to_cents, utcnow

RECEIPT_CODES = {
    "deposit": "DP",
    "final_payment": "FP",
    "refund": "RF",
}


class PaymentGateway:
    """Boundary to the card processor; only opaque references cross it."""

    def create_deposit(self, amount_cents, currency):
        raise NotImplementedError

    def confirm_payment(self, payment_intent_ref):
        raise NotImplementedError


class ManualPaymentGateway(PaymentGateway):
    """Payments recorded by staff (cash, check, card terminal)."""

    def create_deposit(self, amount_cents, currency):
        return f"pi_{secrets.token_hex(12)}"

    def confirm_payment(self, payment_intent_ref):
        return "succeeded"


class PaymentService:
    gateway = ManualPaymentGateway()

    @staticmethod
    def _by_ref(payment_intent_ref):
        payment = Payment.query.filter_by(payment_intent_ref=(payment_intent_ref or "").strip()).first()
        if not payment:
            raise NotFoundError("Payment not found.")
        return payment

    @staticmethod
    def _open_intent(payment_type, booking=None, proposal=None):
        query = Payment.query.filter_by(payment_type=payment_type, status="pending")
        if booking is not None:
            query = query.filter_by(booking_id=booking.id)
        else:
            query = query.filter_by(trip_proposal_id=proposal.id)
        return query.filter(Payment.payment_intent_ref.isnot(None)).first()

    @staticmethod
    def _create_intent(payment_type, amount_cents, booking=None, proposal=None):
        if amount_cents <= 0:
            raise ValidationError("There is nothing to pay.", field="amount")
        existing = PaymentService._open_intent(payment_type, booking=booking, proposal=proposal)
        if existing:
            return existing

        currency = current_app.config["CURRENCY"]
        payment = Payment(
            booking_id=getattr(booking, "id", None),
            trip_proposal_id=getattr(proposal, "id", None),
            receipt_number=generate_document_number(Payment.receipt_number, RECEIPT_CODES[payment_type]),
            payment_type=payment_type,
            amount=cents_to_decimal(amount_cents),
            currency=currency,
            payment_intent_ref=PaymentService.gateway.create_deposit(amount_cents, currency),
            status="pending",
        )
        db.session.add(payment)
        db.session.commit()
        return payment

    @staticmethod
    def create_deposit_intent(booking=None, proposal=None):
        if (booking is None) == (proposal is None):
            raise ValidationError("Pay a deposit for either a booking or a proposal.", field="booking_id")
        if booking is not None:
            if booking.status in TERMINAL_STATUSES:
                raise InvalidStateError(f"A {booking.status} booking cannot take a deposit.")
            if booking.deposit_paid:
                raise InvalidStateError("The deposit for this booking is already paid.")
            return PaymentService._create_intent("deposit", to_cents(booking.deposit_amount), booking=booking)

        if proposal.status != "accepted":
            raise InvalidStateError("Only accepted proposals can take a deposit.")
        if proposal.deposit_paid:
            raise InvalidStateError("The deposit for this proposal is already paid.")
        return PaymentService._create_intent("deposit", to_cents(proposal.deposit_amount), proposal=proposal)

    @staticmethod
    def create_final_payment_intent(booking, now=None):
        if booking.status == "cancelled":
            raise InvalidStateError("A cancelled booking has no balance due.")
        if not booking.deposit_paid:
            raise InvalidStateError("The deposit must be paid before the balance.")
        window = BookingService.final_payment_window(booking, now)
        if window.is_paid:
            raise InvalidStateError("The balance for this booking is already paid.")
        return PaymentService._create_intent("final_payment", window.amount_due, booking=booking)

    @staticmethod
    def _apply(payment, now):
        if payment.payment_type == "deposit" and payment.booking_id and payment.trip_proposal_id is None:
            booking = payment.booking
            booking.deposit_paid = True
            booking.deposit_paid_at = now
            if booking.status == "pending":
                booking.status = "confirmed"
                booking.confirmed_at = now
            return booking
        if payment.payment_type == "deposit":
            proposal = payment.trip_proposal
            proposal.deposit_paid = True
            proposal.deposit_paid_at = now
            booking = ProposalService.convert_to_booking(proposal, now=now, commit=False)
            payment.booking = booking
            return booking
        if payment.payment_type == "final_payment":
            booking = payment.booking
            booking.final_payment_paid = True
            booking.final_payment_paid_at = now
            return booking
        raise InvalidStateError(f"A {payment.payment_type} payment cannot be confirmed.")

    @staticmethod
    def confirm_payment(payment_intent_ref, now=None):
        """Settle a payment intent; confirming an already settled intent changes nothing."""
        now = now or utcnow()
        payment = PaymentService._by_ref(payment_intent_ref)
        if payment.status == "succeeded":
            return payment
        if payment.status != "pending":
            raise InvalidStateError(f"A {payment.status} payment cannot be confirmed.")

        outcome = PaymentService.gateway.confirm_payment(payment.payment_intent_ref)
        if outcome != "succeeded":
            PaymentService.mark_failed(payment.payment_intent_ref)
            raise AppError("The payment was declined.", 402)

        was_pending = payment.booking is not None and payment.booking.status == "pending"
        try:
            payment.status = "succeeded"
            payment.paid_at = now
            booking = PaymentService._apply(payment, now)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(
            "Payment %s (%s, %s) settled for booking %s",
            payment.receipt_number,
            payment.payment_type,
            payment.amount,
            booking.booking_number,
        )
        NotificationService.notify_safely("customer", booking, "payment_received")
        if was_pending and booking.status == "confirmed":
            NotificationService.notify_safely("customer", booking, "booking_confirmed")
        return payment

    @staticmethod
    def mark_failed(payment_intent_ref):
        payment = PaymentService._by_ref(payment_intent_ref)
        if payment.status == "succeeded":
            raise InvalidStateError("A settled payment cannot fail.")
        payment.status = "failed"
        db.session.commit()
        current_app.logger.warning("Payment %s failed", payment.receipt_number)
        return payment

    @staticmethod
    def mark_refunded(payment_intent_ref):
        payment = PaymentService._by_ref(payment_intent_ref)
        if payment.status == "refunded":
            return payment
        if payment.status != "succeeded":
            raise InvalidStateError("Only settled payments can be refunded.")
        payment.status = "refunded"
        db.session.commit()
        current_app.logger.info("Payment %s refunded", payment.receipt_number)
        return payment

    @staticmethod
    def handle_event(event):
        """Apply a processor webhook event; unknown event types are ignored."""
        event_type = (event or {}).get("type")
        ref = (((event or {}).get("data") or {}).get("object") or {}).get("id")
        if not event_type or not ref:
            raise ValidationError("Event type and payment reference are required.", field="type")
        if event_type == "payment_intent.succeeded":
            return PaymentService.confirm_payment(ref)
        if event_type == "payment_intent.payment_failed":
            return PaymentService.mark_failed(ref)
        if event_type == "charge.refunded":
            return PaymentService.mark_refunded(ref)
        current_app.logger.info("Ignoring payment event %s", event_type)
        return None
