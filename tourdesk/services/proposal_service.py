import secrets
from datetime import timedelta

from flask import current_app

from tourdesk.errors import InvalidStateError, NotFoundError, ValidationError
from tourdesk.extensions import db
from tourdesk.models import Booking, Guest, Inclusion, ItineraryDay, ItineraryStop, TripProposal
from tourdesk.services.booking_service import BookingService
from tourdesk.services.itinerary_service import (
    DayDraft,
    GuestDraft,
    InclusionDraft,
    ItineraryBuilder,
    StopDraft,
)
from tourdesk.services.platform_service import PlatformService
from tourdesk.services.pricing_service import PricingService
from tourdesk.services.venue_service import VenueService
from tourdesk.utils import (
    add_minutes,
    cents_to_decimal,
    generate_document_number,
    local_date,
    parse_date,
    parse_decimal,
    parse_party_size,
    parse_time,
    to_cents,
    utcnow,
)

PROPOSAL_TRANSITIONS = {
    "draft": {"sent", "expired"},
    "sent": {"viewed", "accepted", "expired"},
    "viewed": {"accepted", "expired"},
    "accepted": {"expired"},
    "expired": set(),
}
EDITABLE_STATUSES = {"draft", "sent", "viewed"}
TRIP_TYPES = {"wine_tour", "bachelorette", "corporate", "family", "romantic", "birthday", "anniversary", "other"}


class ProposalService:
    @staticmethod
    def _timezone():
        return current_app.config["BUSINESS_TIMEZONE"]

    @staticmethod
    def _today(now):
        return local_date(now, ProposalService._timezone())

    @staticmethod
    def _ensure_transition(proposal, new_status):
        if new_status not in PROPOSAL_TRANSITIONS.get(proposal.status, set()):
            raise InvalidStateError(f"Proposal cannot move from {proposal.status} to {new_status}.")

    @staticmethod
    def get_by_token(access_token):
        access_token = (access_token or "").strip()
        proposal = None
        if len(access_token) >= 32:
            proposal = TripProposal.query.filter_by(access_token=access_token).first()
        if not proposal:
            raise NotFoundError("Proposal not found.")
        return proposal

    @staticmethod
    def _rates(payload, proposal=None):
        def pick(key, maximum=None):
            if payload.get(key) is not None:
                return parse_decimal(payload.get(key), key, maximum=maximum)
            if proposal is not None:
                return getattr(proposal, key)
            return PlatformService.rate(key)

        return {
            "tax_rate": pick("tax_rate"),
            "gratuity_percentage": pick("gratuity_percentage"),
            "deposit_percentage": pick("deposit_percentage", maximum=parse_decimal("100", "deposit_percentage")),
        }

    @staticmethod
    def _check_venues(draft):
        for day in draft.days:
            for stop in day.stops:
                if stop.is_venue_stop:
                    VenueService.get_venue(stop.stop_type, stop.venue_id)

    @staticmethod
    def compute(proposal):
        return PricingService.compute_totals(
            stops=PricingService.stops_of(proposal.days),
            inclusions=proposal.inclusions,
            party_size=proposal.party_size,
            discount_amount=proposal.discount_amount,
            tax_rate_pct=proposal.tax_rate,
            gratuity_pct=proposal.gratuity_percentage,
            deposit_pct=proposal.deposit_percentage,
        )

    @staticmethod
    def _apply_totals(proposal, totals):
        amounts = totals.amounts()
        proposal.subtotal = amounts["subtotal"]
        proposal.taxes = amounts["taxes"]
        proposal.gratuity_amount = amounts["gratuity"]
        proposal.total = amounts["total"]
        proposal.deposit_amount = amounts["deposit"]
        proposal.balance_due = amounts["balance"]
        for warning in totals.warnings:
            current_app.logger.warning("Proposal %s: %s", proposal.proposal_number, warning)

    @staticmethod
    def _persist_itinerary(proposal, draft):
        proposal.start_date = draft.start_date
        proposal.end_date = draft.end_date
        proposal.party_size = draft.party_size
        proposal.days = [
            ItineraryDay(
                day_number=day.day_number,
                date=day.date,
                title=day.title,
                notes=day.notes,
                stops=[
                    ItineraryStop(
                        stop_order=stop.stop_order,
                        stop_type=stop.stop_type,
                        venue_id=stop.venue_id,
                        custom_name=stop.custom_name,
                        custom_address=stop.custom_address,
                        scheduled_time=stop.scheduled_time,
                        duration_minutes=stop.duration_minutes,
                        per_person_cost=stop.per_person_cost,
                        flat_cost=stop.flat_cost,
                        reservation_status=stop.reservation_status,
                        notes=stop.notes,
                    )
                    for stop in day.stops
                ],
            )
            for day in draft.days
        ]
        proposal.guests = [
            Guest(
                name=guest.name,
                email=guest.email,
                phone=guest.phone,
                dietary_restrictions=guest.dietary_restrictions,
                is_primary=guest.is_primary,
            )
            for guest in draft.guests
        ]
        proposal.inclusions = [
            Inclusion(
                sort_order=position,
                inclusion_type=item.inclusion_type,
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for position, item in enumerate(draft.inclusions, start=1)
        ]

    @staticmethod
    def drafts_for(proposal):
        """Snapshot the stored itinerary as value objects."""
        days = tuple(
            DayDraft(
                day_number=day.day_number,
                date=day.date,
                title=day.title,
                notes=day.notes,
                stops=tuple(
                    StopDraft(
                        stop_type=stop.stop_type,
                        stop_order=stop.stop_order,
                        venue_id=stop.venue_id,
                        custom_name=stop.custom_name,
                        custom_address=stop.custom_address,
                        scheduled_time=stop.scheduled_time,
                        duration_minutes=stop.duration_minutes,
                        per_person_cost=stop.per_person_cost,
                        flat_cost=stop.flat_cost,
                        reservation_status=stop.reservation_status,
                        notes=stop.notes,
                    )
                    for stop in day.stops
                ),
            )
            for day in proposal.days
        )
        guests = [
            GuestDraft(
                name=g.name,
                email=g.email,
                phone=g.phone,
                dietary_restrictions=g.dietary_restrictions,
                is_primary=g.is_primary,
            )
            for g in proposal.guests
        ]
        inclusions = [
            InclusionDraft(
                inclusion_type=i.inclusion_type,
                description=i.description,
                quantity=i.quantity,
                unit_price=i.unit_price,
            )
            for i in proposal.inclusions
        ]
        return days, guests, inclusions

    @staticmethod
    def create_proposal(payload, actor=None, now=None):
        """Create a proposal with its whole itinerary in one transaction."""
        now = now or utcnow()
        customer_name = (payload.get("customer_name") or "").strip()
        if not customer_name:
            raise ValidationError("Customer name is required.", field="customer_name")
        trip_type = (payload.get("trip_type") or "wine_tour").strip().lower()
        if trip_type not in TRIP_TYPES:
            raise ValidationError("Invalid trip type.", field="trip_type")

        draft = ItineraryBuilder.from_payload(payload, max_party_size=current_app.config["MAX_PARTY_SIZE"]).build()
        ProposalService._check_venues(draft)
        rates = ProposalService._rates(payload)
        if payload.get("valid_until"):
            valid_until = parse_date(payload["valid_until"], "valid_until")
        else:
            valid_until = ProposalService._today(now) + timedelta(days=current_app.config["PROPOSAL_VALID_DAYS"])

        try:
            proposal = TripProposal(
                proposal_number=generate_document_number(TripProposal.proposal_number, "TP"),
                access_token=secrets.token_urlsafe(48),
                status="draft",
                created_by_id=getattr(actor, "id", None),
                customer_name=customer_name,
                customer_email=(payload.get("customer_email") or "").strip().lower() or None,
                customer_phone=(payload.get("customer_phone") or "").strip() or None,
                trip_type=trip_type,
                valid_until=valid_until,
                introduction=(payload.get("introduction") or "").strip() or None,
                internal_notes=(payload.get("internal_notes") or "").strip() or None,
                discount_amount=parse_decimal(payload.get("discount_amount"), "discount_amount", default="0"),
                discount_reason=(payload.get("discount_reason") or "").strip() or None,
                **rates,
            )
            ProposalService._persist_itinerary(proposal, draft)
            totals = ProposalService.compute(proposal)
            ProposalService._apply_totals(proposal, totals)
            db.session.add(proposal)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return proposal, totals

    @staticmethod
    def update_itinerary(proposal, payload):
        """Revise dates, days, guests, inclusions or rates and re-price, all or nothing."""
        if proposal.status not in EDITABLE_STATUSES:
            raise InvalidStateError(f"A {proposal.status} proposal can no longer be edited.")

        days, guests, inclusions = ProposalService.drafts_for(proposal)
        merged = {
            key: payload[key] if key in payload else getattr(proposal, key)
            for key in ("start_date", "end_date", "party_size")
        }
        # Keys present in the payload are validated as sent, even when empty.
        merged["start_date"] = parse_date(merged["start_date"], "start_date")
        merged["end_date"] = parse_date(merged["end_date"], "end_date")
        merged["party_size"] = parse_party_size(merged["party_size"], maximum=current_app.config["MAX_PARTY_SIZE"])
        if "days" in payload:
            builder = ItineraryBuilder.from_payload(
                {**merged, "days": payload["days"], "inclusions": []},
                max_party_size=current_app.config["MAX_PARTY_SIZE"],
            )
        else:
            builder = ItineraryBuilder(
                merged["start_date"],
                merged["end_date"],
                merged["party_size"],
                max_party_size=current_app.config["MAX_PARTY_SIZE"],
            )
            builder.use_days(days)

        if "guests" in payload:
            for raw_guest in payload["guests"] or []:
                builder.add_guest(
                    raw_guest.get("name"),
                    email=raw_guest.get("email"),
                    phone=raw_guest.get("phone"),
                    dietary_restrictions=raw_guest.get("dietary_restrictions"),
                    is_primary=raw_guest.get("is_primary", False),
                )
        else:
            builder.guests = list(guests)

        if "inclusions" in payload:
            for raw_inclusion in payload["inclusions"] or []:
                builder.add_inclusion(
                    raw_inclusion.get("inclusion_type") or "custom",
                    raw_inclusion.get("description"),
                    quantity=raw_inclusion.get("quantity", 1),
                    unit_price=raw_inclusion.get("unit_price", 0),
                )
        else:
            builder.inclusions = list(inclusions)

        draft = builder.build()
        ProposalService._check_venues(draft)
        rates = ProposalService._rates(payload, proposal)

        try:
            # Old rows go first so day numbers and stop orders can be reused.
            proposal.days = []
            proposal.guests = []
            proposal.inclusions = []
            db.session.flush()
            ProposalService._persist_itinerary(proposal, draft)
            for key, value in rates.items():
                setattr(proposal, key, value)
            if payload.get("discount_amount") is not None:
                proposal.discount_amount = parse_decimal(payload["discount_amount"], "discount_amount")
            if "discount_reason" in payload:
                proposal.discount_reason = (payload.get("discount_reason") or "").strip() or None
            if payload.get("valid_until"):
                proposal.valid_until = parse_date(payload["valid_until"], "valid_until")
            totals = ProposalService.compute(proposal)
            ProposalService._apply_totals(proposal, totals)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return proposal, totals

    @staticmethod
    def reprice(proposal):
        totals = ProposalService.compute(proposal)
        ProposalService._apply_totals(proposal, totals)
        db.session.commit()
        return totals

    @staticmethod
    def send(proposal, now=None):
        now = now or utcnow()
        ProposalService._ensure_transition(proposal, "sent")
        if ProposalService._today(now) > proposal.valid_until:
            raise InvalidStateError("This proposal has passed its valid-until date.")
        proposal.status = "sent"
        proposal.sent_at = now
        db.session.commit()
        return proposal

    @staticmethod
    def record_view(proposal, now=None):
        now = now or utcnow()
        if proposal.status == "sent":
            proposal.status = "viewed"
            proposal.viewed_at = now
        if proposal.status in {"sent", "viewed"}:
            proposal.view_count = (proposal.view_count or 0) + 1
            db.session.commit()
        return proposal

    @staticmethod
    def accept(proposal, accepted_by_name=None, now=None):
        now = now or utcnow()
        if ProposalService._today(now) > proposal.valid_until:
            raise InvalidStateError("This proposal has expired and can no longer be accepted.")
        if proposal.status not in {"sent", "viewed"}:
            raise InvalidStateError(f"A {proposal.status} proposal cannot be accepted.")
        proposal.status = "accepted"
        proposal.accepted_at = now
        proposal.accepted_by_name = (accepted_by_name or "").strip() or proposal.customer_name
        db.session.commit()
        return proposal

    @staticmethod
    def expire(proposal, now=None):
        ProposalService._ensure_transition(proposal, "expired")
        if proposal.deposit_paid:
            raise InvalidStateError("A proposal with a paid deposit cannot expire.")
        proposal.status = "expired"
        proposal.expired_at = now or utcnow()
        db.session.commit()
        return proposal

    @staticmethod
    def expire_stale(now=None):
        now = now or utcnow()
        stale = (
            TripProposal.query.filter(TripProposal.status.in_(["draft", "sent", "viewed", "accepted"]))
            .filter(TripProposal.valid_until < ProposalService._today(now))
            .filter(TripProposal.deposit_paid.is_(False))
            .all()
        )
        for proposal in stale:
            proposal.status = "expired"
            proposal.expired_at = now
        db.session.commit()
        return len(stale)

    @staticmethod
    def _tour_window(proposal):
        first_day = proposal.days[0] if proposal.days else None
        timed = [stop for stop in (first_day.stops if first_day else []) if stop.scheduled_time]
        if not timed:
            return (
                parse_time(current_app.config["DEFAULT_TOUR_START"], "start_time"),
                parse_time(current_app.config["DEFAULT_TOUR_END"], "end_time"),
            )
        start = min(stop.scheduled_time for stop in timed)
        end = max(add_minutes(stop.scheduled_time, stop.duration_minutes) for stop in timed)
        if end <= start:
            end = parse_time(current_app.config["DEFAULT_TOUR_END"], "end_time")
        return start, end

    @staticmethod
    def convert_to_booking(proposal, now=None, commit=True):
        """Turn an accepted proposal with a paid deposit into a confirmed booking."""
        if proposal.booking is not None:
            return proposal.booking
        if proposal.status != "accepted" or not proposal.deposit_paid:
            raise InvalidStateError("Only accepted proposals with a paid deposit become bookings.")
        now = now or utcnow()
        start_time, end_time = ProposalService._tour_window(proposal)
        booking = Booking(
            booking_number=generate_document_number(Booking.booking_number, "BK"),
            customer_name=proposal.customer_name,
            customer_email=proposal.customer_email,
            customer_phone=proposal.customer_phone,
            tour_date=proposal.start_date,
            end_date=proposal.end_date if proposal.end_date != proposal.start_date else None,
            start_time=start_time,
            end_time=end_time,
            party_size=proposal.party_size,
            status="confirmed",
            base_price=proposal.subtotal,
            deposit_paid=True,
            deposit_paid_at=proposal.deposit_paid_at or now,
            confirmed_at=now,
        )
        BookingService.apply_totals(booking, to_cents(proposal.total), to_cents(proposal.deposit_amount))
        booking.trip_proposal = proposal
        for day in proposal.days:
            day.booking = booking
        for guest in proposal.guests:
            guest.booking = booking
        first_stop = proposal.days[0].stops[0] if proposal.days and proposal.days[0].stops else None
        if first_stop is not None and first_stop.stop_type == "pickup":
            booking.pickup_location = first_stop.custom_address or first_stop.custom_name
        db.session.add(booking)
        if commit:
            db.session.commit()
        current_app.logger.info(
            "Proposal %s converted to booking %s (%s due later)",
            proposal.proposal_number,
            booking.booking_number,
            cents_to_decimal(to_cents(booking.final_payment_amount)),
        )
        return booking
