from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from tourdesk.errors import InvalidStateError, ValidationError
from tourdesk.models import Assignment, Booking, Payment
from tourdesk.services import AssignmentService, BookingService, NotificationService
from tourdesk.services.booking_service import refund_percentage

# 05:00 in the business time zone, so the local date is June 1st.
NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)
TODAY = date(2026, 6, 1)


def booking_payload(**overrides):
    payload = {
        "customer_name": "Jordan Lee",
        "customer_email": "Jordan@Example.com",
        "tour_date": "2026-07-15",
        "start_time": "10:00",
        "end_time": "16:00",
        "party_size": 6,
        "base_price": "100",
        "guests": [{"name": "Jordan Lee", "is_primary": True}, {"name": "Casey Lee"}],
    }
    payload.update(overrides)
    return payload


@pytest.mark.parametrize("days,percentage", [(60, 100), (45, 100), (44, 50), (21, 50), (20, 0), (0, 0), (-3, 0)])
def test_refund_tiers(days, percentage):
    assert refund_percentage(days) == percentage


@pytest.mark.parametrize("days,expected", [(45, "300.00"), (44, "150.00"), (20, "0.00")])
def test_cancellation_refund_by_days_before(db, make_booking, days, expected):
    booking = make_booking(tour_date=TODAY + timedelta(days=days), deposit="300.00")

    quote = BookingService.cancel_booking(booking, reason="Change of plans", now=NOW)

    assert quote.days_before == days
    assert quote.to_dict()["refund_amount"] == expected
    booking = db.session.get(Booking, booking.id)
    assert booking.status == "cancelled"
    assert booking.refund_amount == Decimal(expected)
    refunds = Payment.query.filter_by(booking_id=booking.id, payment_type="refund").all()
    assert len(refunds) == (1 if Decimal(expected) > 0 else 0)


def test_refund_quote_without_deposit_is_zero(make_booking):
    booking = make_booking(tour_date=TODAY + timedelta(days=60), deposit_paid=False, status="pending")
    quote = BookingService.refund_quote(booking, now=NOW)
    assert quote.refund_amount == 0
    assert quote.policy_applied == "No deposit paid"


def test_cancel_releases_assignment(db, make_booking, make_driver, make_vehicle):
    booking = make_booking(tour_date=TODAY + timedelta(days=30))
    AssignmentService.assign(booking, make_driver().id, make_vehicle().id)

    BookingService.cancel_booking(db.session.get(Booking, booking.id), now=NOW)

    assert Assignment.query.count() == 0
    roles = {(n.recipient_role, n.event_type) for n in NotificationService.queued_for_booking(booking.id)}
    assert ("driver", "booking_cancelled") in roles
    assert ("customer", "booking_cancelled") in roles


@pytest.mark.parametrize("status", ["completed", "cancelled"])
def test_terminal_bookings_cannot_be_cancelled(make_booking, status):
    with pytest.raises(InvalidStateError):
        BookingService.cancel_booking(make_booking(status=status), now=NOW)


def test_create_booking_prices_and_stays_pending(app):
    booking = BookingService.create_booking(booking_payload(), now=NOW)

    assert booking.status == "pending"
    assert booking.booking_number.startswith("BK-")
    assert booking.customer_email == "jordan@example.com"
    assert booking.total_price == Decimal("108.90")
    assert booking.deposit_amount == Decimal("54.45")
    assert booking.final_payment_amount == Decimal("54.45")
    assert [g.name for g in booking.guests] == ["Jordan Lee", "Casey Lee"]


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"tour_date": "2026-05-31"}, "tour_date"),
        ({"end_time": "09:00"}, "end_time"),
        ({"party_size": 0}, "party_size"),
        ({"end_date": "2026-07-14"}, "end_date"),
        ({"guests": [{"name": "A", "is_primary": True}, {"name": "B", "is_primary": True}]}, "guests"),
    ],
)
def test_create_booking_validation(app, overrides, field):
    with pytest.raises(ValidationError) as exc:
        BookingService.create_booking(booking_payload(**overrides), now=NOW)
    assert exc.value.field == field
    assert Booking.query.count() == 0


def test_confirm_requires_deposit_or_override(make_booking):
    booking = make_booking(status="pending", deposit_paid=False)
    with pytest.raises(InvalidStateError):
        BookingService.confirm_booking(booking)

    BookingService.confirm_booking(booking, override=True)
    assert booking.status == "confirmed"
    assert booking.confirmed_by_override is True
    assert NotificationService.queued_for_booking(booking.id)[0].event_type == "booking_confirmed"


def test_confirm_with_paid_deposit_is_not_an_override(make_booking):
    booking = make_booking(status="pending", deposit_paid=True)
    BookingService.confirm_booking(booking, override=True)
    assert booking.confirmed_by_override is False


def test_tour_runs_through_in_progress_to_completed(make_booking, hold, make_driver, make_vehicle):
    booking = hold(make_booking(), make_driver(), make_vehicle())

    BookingService.transition_booking(booking, "in_progress", now=NOW)
    assert booking.started_at is not None
    BookingService.transition_booking(booking, "completed", now=NOW)
    assert booking.status == "completed"

    with pytest.raises(InvalidStateError):
        BookingService.transition_booking(booking, "in_progress")


@pytest.mark.parametrize(
    "status,target",
    [("confirmed", "in_progress"), ("confirmed", "assigned"), ("pending", "completed"), ("confirmed", "cancelled")],
)
def test_illegal_transitions(make_booking, status, target):
    with pytest.raises(InvalidStateError):
        BookingService.transition_booking(make_booking(status=status), target)


def test_final_payment_window_opens_48_hours_before(make_booking):
    booking = make_booking(tour_date=date(2026, 7, 15), start="10:00", total="600.00", deposit="300.00")
    # 10:00 on July 15th Pacific daylight time is 17:00 UTC.
    before = BookingService.final_payment_window(booking, now=datetime(2026, 7, 13, 16, 59, tzinfo=timezone.utc))
    at = BookingService.final_payment_window(booking, now=datetime(2026, 7, 13, 17, 0, tzinfo=timezone.utc))

    assert not before.is_open
    assert at.is_open
    assert at.amount_due == 30000
    assert at.to_dict()["amount_due_display"] == "$300.00"


def test_final_payment_window_closed_once_paid(db, make_booking):
    booking = make_booking(tour_date=date(2026, 7, 15))
    booking.final_payment_paid = True
    db.session.commit()
    window = BookingService.final_payment_window(booking, now=datetime(2026, 7, 14, tzinfo=timezone.utc))
    assert window.is_paid
    assert not window.is_open


def test_repricing_keeps_paid_deposit(make_booking):
    booking = make_booking(tour_date=date(2026, 7, 15), total="600.00", deposit="300.00")

    BookingService.update_pricing(booking, base_price="1000", now=NOW)

    assert booking.total_price == Decimal("1089.00")
    assert booking.deposit_amount == Decimal("300.00")
    assert booking.final_payment_amount == Decimal("789.00")


def test_repricing_after_tour_start_is_rejected(make_booking):
    booking = make_booking(tour_date=date(2026, 5, 20))
    with pytest.raises(InvalidStateError):
        BookingService.update_pricing(booking, total_price="700", now=NOW)
