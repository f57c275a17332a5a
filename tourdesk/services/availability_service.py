from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from tourdesk.errors import ValidationError
from tourdesk.extensions import db
from tourdesk.models import Assignment, Booking, Driver, Vehicle
from tourdesk.utils import (
    hours_between,
    parse_date,
    parse_decimal,
    parse_party_size,
    parse_time,
    time_window,
    week_bounds,
    windows_overlap,
)

# Bookings in these states hold their driver and vehicle.
ACTIVE_ASSIGNMENT_STATUSES = ("assigned", "in_progress", "completed")

CONFLICT = "schedule_conflict"
DAILY_CAP = "daily_hours_cap"
WEEKLY_CAP = "weekly_hours_cap"
CAPACITY = "capacity"
INACTIVE = "inactive"


@dataclass(frozen=True)
class DriverCandidate:
    driver_id: int
    name: str
    hours_today: Decimal
    hours_this_week: Decimal
    reasons: tuple = ()

    @property
    def is_available(self):
        return not self.reasons

    def to_dict(self):
        return {
            "id": self.driver_id,
            "name": self.name,
            "hours_today": float(self.hours_today),
            "hours_this_week": float(self.hours_this_week),
            "is_available": self.is_available,
            "reasons": list(self.reasons),
        }


@dataclass(frozen=True)
class VehicleCandidate:
    vehicle_id: int
    label: str
    capacity: int
    capacity_deficit: int = 0
    reasons: tuple = ()

    @property
    def is_available(self):
        return not self.reasons

    def to_dict(self):
        return {
            "id": self.vehicle_id,
            "label": self.label,
            "capacity": self.capacity,
            "capacity_deficit": self.capacity_deficit,
            "is_available": self.is_available,
            "reasons": list(self.reasons),
        }


class AvailabilityService:
    @staticmethod
    def driver_blockers(hours_today, hours_this_week, duration_hours, has_conflict, daily_cap=10, weekly_cap=60):
        duration = Decimal(str(duration_hours))
        reasons = []
        if has_conflict:
            reasons.append(CONFLICT)
        if Decimal(str(hours_today)) + duration > Decimal(str(daily_cap)):
            reasons.append(DAILY_CAP)
        if Decimal(str(hours_this_week)) + duration > Decimal(str(weekly_cap)):
            reasons.append(WEEKLY_CAP)
        return reasons

    @staticmethod
    def vehicle_blockers(capacity, party_size, has_conflict):
        reasons = []
        if capacity < party_size:
            reasons.append(CAPACITY)
        if has_conflict:
            reasons.append(CONFLICT)
        return reasons

    @staticmethod
    def booking_window(booking, on_date):
        """Daily window a booking occupies on ``on_date``, or None when the trip does not run that day."""
        if not booking.tour_date <= on_date <= booking.last_date:
            return None
        return datetime.combine(on_date, booking.start_time), datetime.combine(on_date, booking.end_time)

    @staticmethod
    def _held_assignments(first_date, last_date, exclude_booking_id=None):
        query = (
            db.session.query(Assignment, Booking)
            .join(Booking, Booking.id == Assignment.booking_id)
            .filter(Booking.status.in_(ACTIVE_ASSIGNMENT_STATUSES))
            .filter(Booking.tour_date <= last_date)
            .filter(func.coalesce(Booking.end_date, Booking.tour_date) >= first_date)
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)
        return query.all()

    @staticmethod
    def _caps():
        return (
            Decimal(str(current_app.config.get("DRIVER_DAILY_HOURS_CAP", "10"))),
            Decimal(str(current_app.config.get("DRIVER_WEEKLY_HOURS_CAP", "60"))),
        )

    @staticmethod
    def _driver_candidate(driver, held, on_date, window, duration, caps, extra_week_hours=0):
        week_start, week_end = week_bounds(on_date)
        hours_today = Decimal("0")
        hours_this_week = Decimal(str(extra_week_hours))
        has_conflict = False
        for assignment, booking in held:
            if assignment.driver_id != driver.id:
                continue
            daily_hours = hours_between(booking.start_time, booking.end_time)
            day = max(booking.tour_date, week_start)
            while day <= min(booking.last_date, week_end):
                hours_this_week += daily_hours
                if day == on_date:
                    hours_today += daily_hours
                    busy_start, busy_end = AvailabilityService.booking_window(booking, day)
                    has_conflict = has_conflict or windows_overlap(window[0], window[1], busy_start, busy_end)
                day += timedelta(days=1)

        reasons = AvailabilityService.driver_blockers(
            hours_today, hours_this_week, duration, has_conflict, daily_cap=caps[0], weekly_cap=caps[1]
        )
        if not driver.is_active:
            reasons.insert(0, INACTIVE)
        return DriverCandidate(
            driver_id=driver.id,
            name=driver.full_name,
            hours_today=hours_today,
            hours_this_week=hours_this_week,
            reasons=tuple(reasons),
        )

    @staticmethod
    def _vehicle_candidate(vehicle, held, on_date, window, party_size):
        has_conflict = False
        for assignment, booking in held:
            if assignment.vehicle_id != vehicle.id:
                continue
            busy = AvailabilityService.booking_window(booking, on_date)
            if busy and windows_overlap(window[0], window[1], busy[0], busy[1]):
                has_conflict = True
                break
        reasons = AvailabilityService.vehicle_blockers(vehicle.capacity, party_size, has_conflict)
        if not vehicle.is_active:
            reasons.insert(0, INACTIVE)
        return VehicleCandidate(
            vehicle_id=vehicle.id,
            label=vehicle.label,
            capacity=vehicle.capacity,
            capacity_deficit=max(0, party_size - vehicle.capacity),
            reasons=tuple(reasons),
        )

    @staticmethod
    def _normalize(on_date, start_time, duration_hours, party_size):
        on_date = parse_date(on_date, "date")
        start_time = parse_time(start_time, "start_time")
        duration = parse_decimal(duration_hours, "duration_hours")
        if duration <= 0:
            raise ValidationError("Duration must be positive.", field="duration_hours")
        return on_date, start_time, duration, parse_party_size(party_size)

    @staticmethod
    def find_available(on_date, start_time, duration_hours, party_size, exclude_booking_id=None):
        """Every active driver and vehicle, each marked available or not with the blocking reasons."""
        on_date, start_time, duration, party_size = AvailabilityService._normalize(
            on_date, start_time, duration_hours, party_size
        )
        window = time_window(on_date, start_time, duration)
        week_start, week_end = week_bounds(on_date)
        held = AvailabilityService._held_assignments(week_start, week_end, exclude_booking_id)
        caps = AvailabilityService._caps()

        drivers = Driver.query.filter_by(is_active=True).order_by(Driver.full_name).all()
        vehicles = Vehicle.query.filter_by(is_active=True).order_by(Vehicle.capacity, Vehicle.id).all()
        return {
            "drivers": [
                AvailabilityService._driver_candidate(driver, held, on_date, window, duration, caps)
                for driver in drivers
            ],
            "vehicles": [
                AvailabilityService._vehicle_candidate(vehicle, held, on_date, window, party_size)
                for vehicle in vehicles
            ],
        }

    @staticmethod
    def check_pair(
        driver, vehicle, on_date, start_time, duration_hours, party_size, exclude_booking_id=None, extra_week_hours=0
    ):
        """Check one date of a trip. ``extra_week_hours`` counts the trip's own earlier dates in the same week."""
        on_date, start_time, duration, party_size = AvailabilityService._normalize(
            on_date, start_time, duration_hours, party_size
        )
        window = time_window(on_date, start_time, duration)
        week_start, week_end = week_bounds(on_date)
        held = AvailabilityService._held_assignments(week_start, week_end, exclude_booking_id)
        return (
            AvailabilityService._driver_candidate(
                driver, held, on_date, window, duration, AvailabilityService._caps(), extra_week_hours
            ),
            AvailabilityService._vehicle_candidate(vehicle, held, on_date, window, party_size),
        )
