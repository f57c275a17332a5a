from datetime import date
from decimal import Decimal

from tourdesk.services.availability_service import (
    CAPACITY,
    CONFLICT,
    DAILY_CAP,
    WEEKLY_CAP,
    AvailabilityService,
)

TOUR_DAY = date(2026, 7, 15)  # a Wednesday


def by_id(candidates, resource_id, attr):
    return next(c for c in candidates if getattr(c, attr) == resource_id)


def test_daily_cap_is_inclusive():
    assert DAILY_CAP in AvailabilityService.driver_blockers(Decimal("9.5"), Decimal("9.5"), Decimal("1"), False)
    assert AvailabilityService.driver_blockers(Decimal("8"), Decimal("8"), Decimal("2"), False) == []


def test_weekly_cap_is_inclusive():
    assert AvailabilityService.driver_blockers(0, 55, 5, False) == []
    assert AvailabilityService.driver_blockers(0, 55, 6, False) == [WEEKLY_CAP]


def test_vehicle_blockers():
    assert AvailabilityService.vehicle_blockers(14, 6, False) == []
    assert AvailabilityService.vehicle_blockers(4, 6, True) == [CAPACITY, CONFLICT]


def test_idle_fleet_is_available(make_driver, make_vehicle):
    driver = make_driver()
    vehicle = make_vehicle(capacity=14)
    result = AvailabilityService.find_available(TOUR_DAY, "10:00", "6", 6)
    assert result["drivers"][0].driver_id == driver.id
    assert result["drivers"][0].is_available
    assert result["vehicles"][0].vehicle_id == vehicle.id
    assert result["vehicles"][0].is_available


def test_driver_near_daily_cap_is_blocked(make_driver, make_vehicle, make_booking, hold):
    driver = make_driver()
    vehicle = make_vehicle()
    hold(make_booking(tour_date=TOUR_DAY, start="06:00", end="15:30"), driver, vehicle)

    blocked = AvailabilityService.find_available(TOUR_DAY, "16:00", "1", 4)
    candidate = by_id(blocked["drivers"], driver.id, "driver_id")
    assert candidate.hours_today == Decimal("9.5")
    assert candidate.reasons == (DAILY_CAP,)


def test_driver_exactly_at_daily_cap_is_available(make_driver, make_vehicle, make_booking, hold):
    driver = make_driver()
    vehicle = make_vehicle()
    hold(make_booking(tour_date=TOUR_DAY, start="08:00", end="16:00"), driver, vehicle)

    result = AvailabilityService.find_available(TOUR_DAY, "16:00", "2", 4)
    candidate = by_id(result["drivers"], driver.id, "driver_id")
    assert candidate.hours_today == Decimal("8")
    assert candidate.is_available


def test_adjacent_trip_is_not_a_conflict(make_driver, make_vehicle, make_booking, hold):
    driver = make_driver()
    vehicle = make_vehicle()
    hold(make_booking(tour_date=TOUR_DAY, start="10:00", end="16:00"), driver, vehicle)

    result = AvailabilityService.find_available(TOUR_DAY, "16:00", "2", 4)
    assert by_id(result["vehicles"], vehicle.id, "vehicle_id").is_available
    assert CONFLICT not in by_id(result["drivers"], driver.id, "driver_id").reasons


def test_overlapping_trip_is_a_conflict(make_driver, make_vehicle, make_booking, hold):
    driver = make_driver()
    vehicle = make_vehicle()
    hold(make_booking(tour_date=TOUR_DAY, start="10:00", end="16:01"), driver, vehicle)

    result = AvailabilityService.find_available(TOUR_DAY, "16:00", "2", 4)
    assert CONFLICT in by_id(result["drivers"], driver.id, "driver_id").reasons
    assert by_id(result["vehicles"], vehicle.id, "vehicle_id").reasons == (CONFLICT,)


def test_cancelled_bookings_hold_nothing(make_driver, make_vehicle, make_booking, hold):
    driver = make_driver()
    vehicle = make_vehicle()
    hold(make_booking(tour_date=TOUR_DAY), driver, vehicle, status="cancelled")

    result = AvailabilityService.find_available(TOUR_DAY, "10:00", "6", 4)
    assert by_id(result["drivers"], driver.id, "driver_id").is_available
    assert by_id(result["vehicles"], vehicle.id, "vehicle_id").is_available


def test_weekly_hours_count_the_whole_week(make_driver, make_vehicle, make_booking, hold):
    driver = make_driver()
    for day in range(13, 18):
        hold(make_booking(tour_date=date(2026, 7, day), start="06:00", end="17:00"), driver, make_vehicle())
    # Five 11-hour days, Monday to Friday, leave 5 hours for the week.
    result = AvailabilityService.find_available(date(2026, 7, 18), "08:00", "5", 2)
    candidate = by_id(result["drivers"], driver.id, "driver_id")
    assert candidate.hours_this_week == Decimal("55")
    assert candidate.is_available

    result = AvailabilityService.find_available(date(2026, 7, 18), "08:00", "6", 2)
    assert by_id(result["drivers"], driver.id, "driver_id").reasons == (WEEKLY_CAP,)


def test_previous_week_does_not_count(make_driver, make_vehicle, make_booking, hold):
    driver = make_driver()
    hold(make_booking(tour_date=date(2026, 7, 12), start="06:00", end="16:00"), driver, make_vehicle())
    result = AvailabilityService.find_available(date(2026, 7, 13), "06:00", "10", 2)
    candidate = by_id(result["drivers"], driver.id, "driver_id")
    assert candidate.hours_this_week == Decimal("0")
    assert candidate.is_available


def test_multi_day_booking_occupies_each_day(make_driver, make_vehicle, make_booking, hold):
    driver = make_driver()
    vehicle = make_vehicle()
    hold(
        make_booking(tour_date=TOUR_DAY, end_date=date(2026, 7, 17), start="10:00", end="16:00"),
        driver,
        vehicle,
    )
    result = AvailabilityService.find_available(date(2026, 7, 16), "12:00", "2", 4)
    assert CONFLICT in by_id(result["drivers"], driver.id, "driver_id").reasons
    assert CONFLICT in by_id(result["vehicles"], vehicle.id, "vehicle_id").reasons


def test_small_vehicle_reports_deficit(make_vehicle):
    van = make_vehicle(capacity=4)
    candidate = by_id(AvailabilityService.find_available(TOUR_DAY, "10:00", "6", 6)["vehicles"], van.id, "vehicle_id")
    assert candidate.reasons == (CAPACITY,)
    assert candidate.capacity_deficit == 2
    assert candidate.to_dict()["is_available"] is False


def test_inactive_resources_are_not_offered(make_driver, make_vehicle):
    make_driver(is_active=False)
    make_vehicle(is_active=False)
    result = AvailabilityService.find_available(TOUR_DAY, "10:00", "6", 6)
    assert result == {"drivers": [], "vehicles": []}


def test_booking_is_excluded_from_its_own_check(make_driver, make_vehicle, make_booking, hold):
    driver = make_driver()
    vehicle = make_vehicle()
    booking = hold(make_booking(tour_date=TOUR_DAY), driver, vehicle)
    result = AvailabilityService.find_available(TOUR_DAY, "10:00", "6", 6, exclude_booking_id=booking.id)
    assert by_id(result["drivers"], driver.id, "driver_id").is_available
    assert by_id(result["vehicles"], vehicle.id, "vehicle_id").is_available
