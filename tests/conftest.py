from datetime import date, time
from decimal import Decimal

import pytest

from tourdesk import create_app
from tourdesk.extensions import db as _db
from tourdesk.models import Assignment, Booking, Driver, Vehicle, Venue
from tourdesk.services import AuthService

PASSWORD = "correct-horse-1"


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def staff_user(app):
    return AuthService.register_user("Dana Reyes", "dana@example.com", PASSWORD, "staff")


@pytest.fixture
def admin_user(app):
    return AuthService.register_user("Sam Ortiz", "sam@example.com", PASSWORD, "admin")


@pytest.fixture
def login(client):
    def _login(user):
        response = client.post("/api/v1/auth/login", json={"email": user.email, "password": PASSWORD})
        assert response.status_code == 200
        return response

    return _login


@pytest.fixture
def make_driver(db):
    def _make(full_name="Alex Driver", is_active=True):
        driver = Driver(full_name=full_name, is_active=is_active)
        db.session.add(driver)
        db.session.commit()
        return driver

    return _make


@pytest.fixture
def make_vehicle(db):
    counter = {"n": 0}

    def _make(capacity=14, is_active=True):
        counter["n"] += 1
        vehicle = Vehicle(
            make="Mercedes",
            model="Sprinter",
            vehicle_number=f"WT-{counter['n']:03d}",
            capacity=capacity,
            is_active=is_active,
        )
        db.session.add(vehicle)
        db.session.commit()
        return vehicle

    return _make


@pytest.fixture
def make_venue(db):
    def _make(kind="winery", name="Leonetti Cellar"):
        venue = Venue(kind=kind, name=name, city="Walla Walla")
        db.session.add(venue)
        db.session.commit()
        return venue

    return _make


@pytest.fixture
def make_booking(db):
    counter = {"n": 0}

    def _make(
        tour_date=date(2026, 7, 15),
        start="10:00",
        end="16:00",
        party_size=6,
        status="confirmed",
        end_date=None,
        total="600.00",
        deposit="300.00",
        deposit_paid=True,
    ):
        counter["n"] += 1
        booking = Booking(
            booking_number=f"BK-TEST-{counter['n']:04d}",
            customer_name="Jordan Lee",
            customer_email="jordan@example.com",
            tour_date=tour_date,
            end_date=end_date,
            start_time=time.fromisoformat(start),
            end_time=time.fromisoformat(end),
            party_size=party_size,
            status=status,
            total_price=Decimal(total),
            deposit_amount=Decimal(deposit),
            final_payment_amount=Decimal(total) - Decimal(deposit),
            deposit_paid=deposit_paid,
        )
        db.session.add(booking)
        db.session.commit()
        return booking

    return _make


@pytest.fixture
def hold(db):
    """Record an existing assignment directly, as if assigned earlier."""

    def _hold(booking, driver, vehicle, status="assigned"):
        db.session.add(Assignment(booking_id=booking.id, driver_id=driver.id, vehicle_id=vehicle.id))
        booking.status = status
        db.session.commit()
        return booking

    return _hold
