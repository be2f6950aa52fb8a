from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from geobus.domain.date_window import DateWindow
from geobus.domain.departure_time import departure_sort_key
from geobus.domain.exceptions import InvalidDateError, NotFoundError
from geobus.infrastructure.db.models import Bus
from geobus.infrastructure.repositories.bus_repository import BusRepository

MAX_SUGGESTIONS = 10


@dataclass(frozen=True)
class TripDetail:
    bus: Bus
    departure_date_iso: str | None


class CatalogService:
    """Read-only queries over scheduled trips."""

    def __init__(self, db: Session, date_window: DateWindow | None = None):
        self.db = db
        self.bus_repository = BusRepository(db)
        self.date_window = date_window or DateWindow()

    def search(
        self,
        from_text: str | None,
        to_text: str | None,
        travel_date: str | date | None,
    ) -> list[Bus]:
        requested = self.date_window.validate(travel_date)

        origin = (from_text or "").strip()
        destination = (to_text or "").strip()
        if not origin or not destination:
            return []

        buses = self.bus_repository.search(origin, destination, requested)
        return sorted(buses, key=lambda bus: departure_sort_key(bus.departure_time))

    def route_suggestions(
        self,
        query: str | None,
        direction: str | None = None,
    ) -> list[str]:
        text = (query or "").strip()
        if not text:
            return []

        if direction in ("from", "to"):
            locations = set(self.bus_repository.distinct_locations(direction, text))
        else:
            locations = set(self.bus_repository.distinct_locations("from", text))
            locations.update(self.bus_repository.distinct_locations("to", text))

        return sorted(locations)[:MAX_SUGGESTIONS]

    def get_trip(self, bus_id: str, travel_date: str | None = None) -> TripDetail:
        bus = self.bus_repository.get_by_id(bus_id)
        if not bus:
            raise NotFoundError("Bus not found")

        journey = bus.departure_date
        if travel_date:
            try:
                journey = DateWindow.normalize(travel_date)
            except InvalidDateError:
                # unparseable: keep the bus date
                journey = bus.departure_date

        return TripDetail(
            bus=bus,
            departure_date_iso=journey.isoformat() if journey else None,
        )
