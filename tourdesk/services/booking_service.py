from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app

from tourdesk.errors import InvalidStateError, ValidationError
from tourdesk.extensions import db
from tourdesk.models import Booking, Guest, Payment
from tourdesk.services.itinerary_service import InclusionDraft
from tourdesk.services.notification_service import NotificationService
from tourdesk.services.platform_service import PlatformService
from tourdesk.services.pricing_service import PricingService
from tourdesk.utils import (
    cents_to_decimal,
    format_currency,
    generate_document_number,
    local_date,
    localize,
    parse_date,
    parse_decimal,
    parse_party_size,
    parse_time,
    percent_of,
    to_cents,
    utcnow,
)

BOOKING_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"assigned", "cancelled"},
    "assigned": {"confirmed", "in_progress", "cancelled"},
    "in_progress": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}
TERMINAL_STATUSES = {"completed", "cancelled"}

# (minimum days before the tour, percent of the paid deposit refunded, policy label)
REFUND_TIERS = (
    (45, 100, "Full refund (45 or more days before the tour)"),
    (21, 50, "50% refund (21 to 44 days before the tour)"),
)
NO_REFUND_POLICY = "No refund (less than 21 days before the tour)"


@dataclass(frozen=True)
class RefundQuote:
    days_before: int
    percentage: int
    refund_amount: int
    policy_applied: str

    def to_dict(self):
        return {
            "days_before": self.days_before,
            "refund_percentage": self.percentage,
            "refund_amount": str(cents_to_decimal(self.refund_amount)),
            "policy_applied": self.policy_applied,
        }


@dataclass(frozen=True)
class FinalPaymentWindow:
    opens_at: datetime
    tour_starts_at: datetime
    amount_due: int
    is_paid: bool
    is_open: bool

    def to_dict(self):
        return {
            "opens_at": self.opens_at.isoformat(),
            "tour_starts_at": self.tour_starts_at.isoformat(),
            "amount_due": str(cents_to_decimal(self.amount_due)),
            "amount_due_display": format_currency(self.amount_due),
            "is_paid": self.is_paid,
            "is_open": self.is_open,
        }


def refund_percentage(days_before):
    for minimum_days, percentage, _label in REFUND_TIERS:
        if days_before >= minimum_days:
            return percentage
    return 0


def refund_policy(days_before):
    for minimum_days, _percentage, label in REFUND_TIERS:
        if days_before >= minimum_days:
            return label
    return NO_REFUND_POLICY


class BookingService:
    @staticmethod
    def _timezone():
        return current_app.config["BUSINESS_TIMEZONE"]

    @staticmethod
    def _ensure_transition(booking, new_status):
        if new_status not in BOOKING_TRANSITIONS.get(booking.status, set()):
            raise InvalidStateError(f"Booking cannot move from {booking.status} to {new_status}.")

    @staticmethod
    def _price(base_price, party_size):
        inclusion = InclusionDraft(inclusion_type="transportation", description="Tour", unit_price=base_price)
        return PricingService.compute_totals(
            stops=[],
            inclusions=[inclusion],
            party_size=party_size,
            tax_rate_pct=PlatformService.rate("tax_rate"),
            gratuity_pct=PlatformService.rate("gratuity_percentage"),
            deposit_pct=PlatformService.rate("deposit_percentage"),
        )

    @staticmethod
    def apply_totals(booking, total_cents, deposit_cents):
        if deposit_cents > total_cents:
            raise ValidationError("Deposit cannot exceed the trip total.", field="deposit_amount")
        booking.total_price = cents_to_decimal(total_cents)
        booking.deposit_amount = cents_to_decimal(deposit_cents)
        booking.final_payment_amount = cents_to_decimal(total_cents - deposit_cents)

    @staticmethod
    def _parse_guests(raw_guests):
        guests = []
        for raw_guest in raw_guests:
            name = (raw_guest.get("name") or "").strip()
            if not name:
                raise ValidationError("Guest name is required.", field="guests")
            guests.append(
                Guest(
                    name=name,
                    email=(raw_guest.get("email") or "").strip().lower() or None,
                    phone=(raw_guest.get("phone") or "").strip() or None,
                    is_primary=bool(raw_guest.get("is_primary")),
                )
            )
        if sum(1 for guest in guests if guest.is_primary) > 1:
            raise ValidationError("Only one guest can be the primary contact.", field="guests")
        return guests

    @staticmethod
    def create_booking(payload, now=None):
        now = now or utcnow()
        customer_name = (payload.get("customer_name") or "").strip()
        if not customer_name:
            raise ValidationError("Customer name is required.", field="customer_name")

        tour_date = parse_date(payload.get("tour_date"), "tour_date")
        if tour_date < local_date(now, BookingService._timezone()):
            raise ValidationError("Tour date cannot be in the past.", field="tour_date")
        end_date = parse_date(payload["end_date"], "end_date") if payload.get("end_date") else None
        if end_date is not None and end_date < tour_date:
            raise ValidationError("End date cannot be before the tour date.", field="end_date")

        start_time = parse_time(payload.get("start_time"), "start_time")
        end_time = parse_time(payload.get("end_time"), "end_time")
        if end_time <= start_time:
            raise ValidationError("End time must be after start time.", field="end_time")

        party_size = parse_party_size(payload.get("party_size"), maximum=current_app.config["MAX_PARTY_SIZE"])
        guests = BookingService._parse_guests(payload.get("guests") or [])
        base_price = parse_decimal(payload.get("base_price"), "base_price", default="0")
        totals = BookingService._price(base_price, party_size)

        booking = Booking(
            booking_number=generate_document_number(Booking.booking_number, "BK"),
            customer_name=customer_name,
            customer_email=(payload.get("customer_email") or "").strip().lower() or None,
            customer_phone=(payload.get("customer_phone") or "").strip() or None,
            tour_date=tour_date,
            end_date=end_date if end_date != tour_date else None,
            start_time=start_time,
            end_time=end_time,
            party_size=party_size,
            pickup_location=(payload.get("pickup_location") or "").strip() or None,
            dropoff_location=(payload.get("dropoff_location") or "").strip() or None,
            status="pending",
            base_price=base_price,
        )
        BookingService.apply_totals(booking, totals.total, totals.deposit)
        booking.guests.extend(guests)
        db.session.add(booking)
        db.session.commit()
        return booking

    @staticmethod
    def update_pricing(booking, base_price=None, total_price=None, now=None):
        """Re-price a booking before its tour and recompute the balance owed."""
        now = now or utcnow()
        if booking.status in TERMINAL_STATUSES:
            raise InvalidStateError(f"A {booking.status} booking cannot be re-priced.")
        if booking.final_payment_paid:
            raise InvalidStateError("The balance for this booking has already been paid.")
        if now >= localize(booking.tour_date, booking.start_time, BookingService._timezone()):
            raise InvalidStateError("Pricing cannot change after the tour has started.")

        if base_price is not None:
            base_price = parse_decimal(base_price, "base_price")
            totals = BookingService._price(base_price, booking.party_size)
            booking.base_price = base_price
            total_cents = totals.total
            deposit_cents = to_cents(booking.deposit_amount) if booking.deposit_paid else totals.deposit
        elif total_price is not None:
            total_cents = to_cents(parse_decimal(total_price, "total_price"))
            deposit_pct = PlatformService.rate("deposit_percentage")
            deposit_cents = to_cents(booking.deposit_amount) if booking.deposit_paid else percent_of(
                total_cents, deposit_pct
            )
        else:
            raise ValidationError("Provide a base price or a total price.", field="base_price")

        BookingService.apply_totals(booking, total_cents, deposit_cents)
        db.session.commit()
        return booking

    @staticmethod
    def confirm_booking(booking, override=False, now=None):
        BookingService._ensure_transition(booking, "confirmed")
        if booking.status != "pending":
            raise InvalidStateError("Only pending bookings can be confirmed.")
        if not booking.deposit_paid and not override:
            raise InvalidStateError("The deposit must be paid before the booking is confirmed.")
        booking.status = "confirmed"
        booking.confirmed_by_override = bool(override and not booking.deposit_paid)
        booking.confirmed_at = now or utcnow()
        db.session.commit()
        NotificationService.notify_safely("customer", booking, "booking_confirmed")
        return booking

    @staticmethod
    def transition_booking(booking, new_status, now=None):
        new_status = (new_status or "").strip().lower()
        if new_status == "confirmed" and booking.status == "pending":
            return BookingService.confirm_booking(booking, now=now)
        if new_status == "cancelled":
            raise InvalidStateError("Use the cancellation flow to cancel a booking.")
        if new_status == "assigned" or (new_status == "confirmed" and booking.status == "assigned"):
            raise InvalidStateError("Assign or unassign a driver and vehicle to change this status.")

        BookingService._ensure_transition(booking, new_status)
        now = now or utcnow()
        booking.status = new_status
        if new_status == "in_progress":
            booking.started_at = now
        elif new_status == "completed":
            booking.completed_at = now
        db.session.commit()
        return booking

    @staticmethod
    def days_before_tour(booking, now):
        return (booking.tour_date - local_date(now, BookingService._timezone())).days

    @staticmethod
    def refund_quote(booking, now=None):
        """Refund owed if the booking were cancelled at ``now``; never cached."""
        now = now or utcnow()
        days_before = BookingService.days_before_tour(booking, now)
        if not booking.deposit_paid:
            return RefundQuote(days_before, 0, 0, "No deposit paid")
        percentage = refund_percentage(days_before)
        amount = percent_of(to_cents(booking.deposit_amount), Decimal(percentage))
        return RefundQuote(days_before, percentage, amount, refund_policy(days_before))

    @staticmethod
    def cancel_booking(booking, reason=None, now=None):
        now = now or utcnow()
        if booking.status in TERMINAL_STATUSES:
            raise InvalidStateError(f"A {booking.status} booking cannot be cancelled.")
        BookingService._ensure_transition(booking, "cancelled")

        quote = BookingService.refund_quote(booking, now)
        had_assignment = booking.assignment is not None
        booking.status = "cancelled"
        booking.cancelled_at = now
        booking.cancellation_reason = (reason or "").strip() or None
        booking.refund_amount = cents_to_decimal(quote.refund_amount)
        booking.assignment = None

        if quote.refund_amount > 0:
            db.session.add(
                Payment(
                    booking_id=booking.id,
                    receipt_number=generate_document_number(Payment.receipt_number, "RF"),
                    payment_type="refund",
                    amount=cents_to_decimal(quote.refund_amount),
                    currency=current_app.config["CURRENCY"],
                    status="pending",
                )
            )
        db.session.commit()
        current_app.logger.info(
            "Booking %s cancelled %s days out: %s", booking.booking_number, quote.days_before, quote.policy_applied
        )

        NotificationService.notify_safely("customer", booking, "booking_cancelled")
        if had_assignment:
            NotificationService.notify_safely("driver", booking, "booking_cancelled")
        return quote

    @staticmethod
    def final_payment_window(booking, now=None):
        now = now or utcnow()
        tour_starts_at = localize(booking.tour_date, booking.start_time, BookingService._timezone())
        opens_at = tour_starts_at - timedelta(hours=current_app.config["FINAL_PAYMENT_WINDOW_HOURS"])
        amount_due = to_cents(booking.total_price) - to_cents(booking.deposit_amount)
        is_open = (
            not booking.final_payment_paid
            and booking.status not in TERMINAL_STATUSES
            and now >= opens_at
        )
        return FinalPaymentWindow(
            opens_at=opens_at,
            tour_starts_at=tour_starts_at,
            amount_due=amount_due,
            is_paid=bool(booking.final_payment_paid),
            is_open=is_open,
        )
