from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from tourdesk.errors import CapacityError, ConflictError, InvalidStateError, NotFoundError
from tourdesk.extensions import db
from tourdesk.models import Assignment, Booking, Driver, Vehicle
from tourdesk.services.availability_service import CAPACITY, AvailabilityService
from tourdesk.services.notification_service import NotificationService
from tourdesk.utils import date_range, hours_between, utcnow, week_bounds

REASON_MESSAGES = {
    "schedule_conflict": "is already assigned to an overlapping trip",
    "daily_hours_cap": "would exceed the daily hours limit",
    "weekly_hours_cap": "would exceed the weekly hours limit",
    "inactive": "is not active",
}


class AssignmentService:
    @staticmethod
    def _locked(model, resource_id, label):
        # Serializes concurrent assignments of the same driver or vehicle.
        resource = (
            db.session.query(model)
            .filter(model.id == resource_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not resource:
            raise NotFoundError(f"{label} not found.")
        return resource

    @staticmethod
    def assign(booking, driver_id, vehicle_id, actor=None):
        """Bind a driver and vehicle to a confirmed booking.

        Availability is checked again here, inside the write transaction, for
        every date the trip runs; a candidate list fetched earlier is never
        trusted.
        """
        booking = AssignmentService._locked(Booking, booking.id, "Booking")
        if booking.status != "confirmed":
            raise InvalidStateError(f"Only confirmed bookings can be assigned (booking is {booking.status}).")
        driver = AssignmentService._locked(Driver, driver_id, "Driver")
        vehicle = AssignmentService._locked(Vehicle, vehicle_id, "Vehicle")

        if vehicle.capacity < booking.party_size:
            deficit = booking.party_size - vehicle.capacity
            db.session.rollback()
            raise CapacityError(
                f"{vehicle.label} seats {vehicle.capacity}, {deficit} short of a party of {booking.party_size}.",
                resource=f"vehicle:{vehicle.id}",
                deficit=deficit,
            )

        duration = hours_between(booking.start_time, booking.end_time)
        # Hours this trip already adds to each week, keyed by week start.
        trip_week_hours = {}
        for day in date_range(booking.tour_date, booking.last_date):
            week_start = week_bounds(day)[0]
            driver_check, vehicle_check = AvailabilityService.check_pair(
                driver,
                vehicle,
                day,
                booking.start_time,
                duration,
                booking.party_size,
                exclude_booking_id=booking.id,
                extra_week_hours=trip_week_hours.get(week_start, Decimal("0")),
            )
            if not driver_check.is_available:
                reason = driver_check.reasons[0]
                db.session.rollback()
                raise ConflictError(
                    f"{driver.full_name} {REASON_MESSAGES[reason]} on {day.isoformat()}.",
                    resource=f"driver:{driver.id}",
                    reason=reason,
                )
            blocking = [reason for reason in vehicle_check.reasons if reason != CAPACITY]
            if blocking:
                db.session.rollback()
                raise ConflictError(
                    f"{vehicle.label} {REASON_MESSAGES[blocking[0]]} on {day.isoformat()}.",
                    resource=f"vehicle:{vehicle.id}",
                    reason=blocking[0],
                )
            trip_week_hours[week_start] = trip_week_hours.get(week_start, Decimal("0")) + duration

        assignment = Assignment(
            booking_id=booking.id,
            driver_id=driver.id,
            vehicle_id=vehicle.id,
            assigned_by_id=getattr(actor, "id", None),
            assigned_at=utcnow(),
        )
        booking.status = "assigned"
        db.session.add(assignment)
        try:
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise ConflictError(
                "The booking was assigned by someone else in the meantime.",
                resource=f"booking:{booking.id}",
                reason="schedule_conflict",
            ) from exc

        current_app.logger.info(
            "Booking %s assigned to driver %s and vehicle %s", booking.booking_number, driver.id, vehicle.id
        )
        NotificationService.notify_safely("driver", booking, "assignment_created")
        NotificationService.notify_safely("customer", booking, "assignment_created")
        return assignment

    @staticmethod
    def unassign(booking):
        if booking.status != "assigned" or booking.assignment is None:
            raise InvalidStateError("This booking has no driver and vehicle assignment to remove.")
        booking.assignment = None
        booking.status = "confirmed"
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        NotificationService.notify_safely("driver", booking, "assignment_removed")
        return booking
