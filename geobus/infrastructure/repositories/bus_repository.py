# geobus/infrastructure/repositories/bus_repository.py

from datetime import date

from sqlalchemy.orm import Session
from sqlalchemy import select, or_, func

from geobus.infrastructure.db.models import Bus


class BusRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, bus_id: str) -> Bus | None:
        stmt = select(Bus).where(Bus.id == bus_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def lock_bus(self, bus_id: str) -> Bus | None:
        """
        SELECT ... FOR UPDATE
        Serializes writers on one bus where the database supports row locks;
        the version counter covers the rest.
        """

        stmt = (
            select(Bus)
            .where(Bus.id == bus_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def search(
        self,
        from_text: str,
        to_text: str,
        travel_date: date,
    ) -> list[Bus]:

        stmt = (
            select(Bus)
            .where(Bus.is_active.is_(True))
            .where(func.lower(Bus.from_location).contains(from_text.lower(), autoescape=True))
            .where(func.lower(Bus.to_location).contains(to_text.lower(), autoescape=True))
            .where(
                or_(
                    Bus.departure_date == travel_date,
                    Bus.departure_date.is_(None),
                )
            )
            .order_by(Bus.created_at, Bus.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def distinct_locations(self, direction: str, query: str) -> list[str]:
        column = Bus.from_location if direction == "from" else Bus.to_location
        stmt = (
            select(column)
            .where(Bus.is_active.is_(True))
            .where(func.lower(column).contains(query.lower(), autoescape=True))
            .distinct()
        )
        return list(self.db.execute(stmt).scalars().all())
