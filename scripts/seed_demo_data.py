from datetime import date, timedelta
from decimal import Decimal
import logging

from sqlalchemy import select

from geobus.application.booking_service import BookingService
from geobus.domain.date_window import DateWindow
from geobus.infrastructure.db.models import Bus, User
from geobus.infrastructure.db.session import get_database

logger = logging.getLogger(__name__)


def _days_from_today(days: int, date_window: DateWindow | None = None) -> date:
    # Same "today" as the booking window: the UTC calendar date.
    return (date_window or DateWindow()).today() + timedelta(days=days)


def seed_users(db) -> None:
    user_defs = [
        {"name": "Asha Verma", "email": "asha@example.com", "mobile": "9876543210"},
        {"name": "Rahul Nair", "email": "rahul@example.com", "mobile": "9123456780"},
    ]

    for item in user_defs:
        existing = db.execute(
            select(User).where(User.email == item["email"])
        ).scalar_one_or_none()
        if existing:
            existing.name = item["name"]
            existing.mobile = item["mobile"]
            continue
        db.add(User(**item))


def seed_buses(db, date_window: DateWindow | None = None) -> list[str]:
    bus_defs = [
        {
            "bus_name": "Deccan Express",
            "bus_number": "KA-01-F-1234",
            "from_location": "Bangalore",
            "to_location": "Chennai",
            "departure_date": None,
            "departure_time": "09:00 AM",
            "arrival_time": "03:30 PM",
            "price": Decimal("650.00"),
            "image": "buses/deccan-express.png",
        },
        {
            "bus_name": "Night Rider Sleeper",
            "bus_number": "KA-05-AB-7788",
            "from_location": "Bangalore",
            "to_location": "Chennai",
            "departure_date": None,
            "departure_time": "11:30 PM",
            "arrival_time": "05:45 AM",
            "price": Decimal("900.00"),
            "image": None,
        },
        {
            "bus_name": "Coastal Link",
            "bus_number": "TN-09-C-4410",
            "from_location": "Chennai",
            "to_location": "Pondicherry",
            "departure_date": _days_from_today(7, date_window),
            "departure_time": "12:30 PM",
            "arrival_time": "03:30 PM",
            "price": Decimal("320.00"),
            "image": None,
        },
    ]

    bus_ids = []
    for item in bus_defs:
        existing = db.execute(
            select(Bus).where(Bus.bus_number == item["bus_number"])
        ).scalar_one_or_none()
        if existing:
            # Fare and timetable edits never touch existing bookings.
            existing.bus_name = item["bus_name"]
            existing.from_location = item["from_location"]
            existing.to_location = item["to_location"]
            existing.departure_date = item["departure_date"]
            existing.departure_time = item["departure_time"]
            existing.arrival_time = item["arrival_time"]
            existing.price = item["price"]
            existing.image = item["image"]
            existing.is_active = True
            bus_ids.append(existing.id)
            continue

        bus = Bus(available_seats=0, is_active=True, **item)
        db.add(bus)
        db.flush()
        bus_ids.append(bus.id)

    return bus_ids


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    database = get_database()
    database.create_all()

    with database.session_scope() as db:
        seed_users(db)
        bus_ids = seed_buses(db)

    with database.session_scope() as db:
        service = BookingService(db)
        for bus_id in bus_ids:
            service.initialize_seats(bus_id)

    logger.info("Seed complete: %s buses, demo users added.", len(bus_ids))


if __name__ == "__main__":
    main()
