from decimal import Decimal

import jwt
import pytest
from fastapi.testclient import TestClient

from geobus.api.routes.routes import get_db
from geobus.application.booking_service import BookingService
from geobus.infrastructure.db.models import Bus, User
from geobus.infrastructure.db.session import Database
from geobus.main import app

JWT_SECRET = "test-secret"


def make_token(user_id: str, secret: str = JWT_SECRET, **claims) -> str:
    return jwt.encode({"sub": user_id, **claims}, secret, algorithm="HS256")


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'geobus.db'}")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def session(database):
    db = database.create_session()
    yield db
    db.close()


@pytest.fixture
def make_user(session):
    def _make(name="Asha Verma", email="asha@example.com", mobile="9876543210") -> User:
        user = User(name=name, email=email, mobile=mobile)
        session.add(user)
        session.commit()
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def other_user(make_user):
    return make_user(name="Rahul Nair", email="rahul@example.com", mobile="9123456780")


@pytest.fixture
def make_bus(session):
    def _make(**overrides) -> Bus:
        fields = {
            "bus_name": "Deccan Express",
            "bus_number": "KA-01-F-1234",
            "from_location": "Bangalore",
            "to_location": "Chennai",
            "departure_date": None,
            "departure_time": "09:00 AM",
            "arrival_time": "03:30 PM",
            "price": Decimal("250.00"),
            "available_seats": 0,
            "is_active": True,
        }
        fields.update(overrides)
        bus = Bus(**fields)
        session.add(bus)
        session.commit()
        return bus

    return _make


@pytest.fixture
def bus(make_bus, session):
    bus = make_bus()
    BookingService(session).initialize_seats(bus.id)
    return bus


@pytest.fixture
def client(database, monkeypatch):
    monkeypatch.setenv("JWT_SECRET", JWT_SECRET)

    def override_get_db():
        db = database.create_session()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def token_for():
    return make_token


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {make_token(user.id)}"}
