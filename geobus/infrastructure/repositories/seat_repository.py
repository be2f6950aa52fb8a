# geobus/infrastructure/repositories/seat_repository.py

from sqlalchemy.orm import Session

from geobus.infrastructure.db.models import Bus, Seat
from geobus.domain.value_objects import SeatConflict

DEFAULT_SEAT_COUNT = 40


def seat_label(position: int) -> str:
    return f"S{position:02d}"


class SeatRepository:
    """
    Seat map of a single bus. Callers must hold the bus (see
    BusRepository.lock_bus) so that the counter and the seat rows
    move together inside one transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_conflict(
        self,
        bus: Bus,
        seat_numbers: list[str],
    ) -> SeatConflict | None:

        seats_by_number = {seat.seat_number: seat for seat in bus.seats}
        for seat_number in seat_numbers:
            seat = seats_by_number.get(seat_number)
            if seat is None:
                return SeatConflict(seat_number, "not available on this bus")
            if seat.is_booked:
                return SeatConflict(seat_number, "already booked")
        return None

    def initialize_seats(
        self,
        bus: Bus,
        seat_count: int = DEFAULT_SEAT_COUNT,
    ) -> int:
        # Idempotent: an existing seat map is never touched.
        if bus.seats:
            return 0

        for position in range(1, seat_count + 1):
            bus.seats.append(
                Seat(seat_number=seat_label(position), is_booked=False)
            )
        bus.available_seats = seat_count
        return seat_count

    def reserve(
        self,
        bus: Bus,
        seat_numbers: list[str],
        user_id: str,
    ) -> None:

        wanted = set(seat_numbers)
        for seat in bus.seats:
            if seat.seat_number in wanted:
                seat.is_booked = True
                seat.booked_by = user_id
        bus.available_seats -= len(wanted)

    def release(
        self,
        bus: Bus,
        seat_numbers: list[str],
    ) -> int:

        wanted = set(seat_numbers)
        released = 0
        for seat in bus.seats:
            if seat.seat_number in wanted and seat.is_booked:
                seat.is_booked = False
                seat.booked_by = None
                released += 1
        bus.available_seats += released
        return released
