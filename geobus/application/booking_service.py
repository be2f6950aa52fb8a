from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, TypeVar
import logging
import os

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from geobus.domain.date_window import DateWindow
from geobus.domain.exceptions import (
    AlreadyCancelledError,
    ConcurrentModificationError,
    NotFoundError,
    SeatUnavailableError,
    ValidationError,
)
from geobus.domain.state_machine import (
    BookingStateMachine,
    BookingStatus,
    PaymentMethod,
)
from geobus.domain.ticket_ids import generate_ticket_id
from geobus.domain.validators import is_valid_email, is_valid_upi
from geobus.domain.value_objects import PassengerDetails, SeatConflict, SeatSelection
from geobus.infrastructure.db.models import Booking, User
from geobus.infrastructure.repositories.booking_repository import BookingRepository
from geobus.infrastructure.repositories.bus_repository import BusRepository
from geobus.infrastructure.repositories.seat_repository import SeatRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

REFUND_RATE = Decimal("0.8")
_CENTS = Decimal("0.01")


def refund_for(total_amount: Decimal) -> Decimal:
    return (Decimal(total_amount) * REFUND_RATE).quantize(_CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CancellationResult:
    ticket_id: str
    refund_amount: Decimal
    cancellation_date: datetime
    released_seats: int


@dataclass(frozen=True)
class SeatInitializationResult:
    bus_id: str
    created: bool
    seat_count: int


class BookingService:
    """
    Seat reservation engine.

    Every write runs as one transaction: the bus row is locked, checked and
    mutated together with the booking row. The bus and booking version
    counters make a concurrent writer fail at flush time, in which case the
    whole unit is rolled back and replayed against fresh state.
    """

    def __init__(self, db: Session):
        self.db = db
        self.booking_repository = BookingRepository(db)
        self.bus_repository = BusRepository(db)
        self.seat_repository = SeatRepository(db)
        self.max_attempts = max(1, int(os.getenv("BOOKING_COMMIT_ATTEMPTS", "3")))

    def check_availability(
        self,
        bus_id: str,
        seat_numbers: list[str],
    ) -> SeatConflict | None:
        bus = self.bus_repository.get_by_id(bus_id)
        if not bus:
            raise NotFoundError("Bus not found")
        return self.seat_repository.find_conflict(bus, seat_numbers)

    def book(
        self,
        bus_id: str,
        user_id: str,
        seats: list[SeatSelection],
        passenger: PassengerDetails | None = None,
        payment_method: str = PaymentMethod.UPI.value,
        journey_date: str | date | None = None,
        upi_id: str | None = None,
    ) -> Booking:
        passenger = passenger or PassengerDetails()
        method, upi_id = self._validate_request(seats, passenger, payment_method, upi_id)
        requested_date = DateWindow.normalize(journey_date) if journey_date else None
        seat_numbers = [seat.seat_number for seat in seats]

        if self.db.get(User, user_id) is None:
            raise NotFoundError("User not found")

        def reserve() -> Booking:
            bus = self.bus_repository.lock_bus(bus_id)
            if not bus:
                raise NotFoundError("Bus not found")

            conflict = self.seat_repository.find_conflict(bus, seat_numbers)
            if conflict:
                raise SeatUnavailableError(conflict.seat_number, conflict.reason)

            booking = self.booking_repository.create_booking(
                ticket_id=generate_ticket_id(),
                user_id=user_id,
                bus_id=bus.id,
                seats=seats,
                passenger=passenger,
                total_amount=bus.price * len(seats),
                payment_method=method.value,
                upi_id=upi_id,
                journey_date=requested_date or bus.departure_date,
                departure_time=bus.departure_time,
                arrival_time=bus.arrival_time,
            )
            self.seat_repository.reserve(bus, seat_numbers, user_id)
            self.db.flush()
            return booking

        booking = self._commit_with_retry(reserve, f"book bus={bus_id}")
        logger.info(
            "Booking confirmed. ticket_id=%s bus_id=%s user_id=%s seats=%s total=%s",
            booking.ticket_id,
            bus_id,
            user_id,
            ",".join(seat_numbers),
            booking.total_amount,
        )
        return booking

    def cancel(self, ticket_id: str, user_id: str) -> CancellationResult:

        def release() -> CancellationResult:
            booking = self.booking_repository.get_for_user(ticket_id, user_id, lock=True)
            if not booking:
                raise NotFoundError("Booking not found")
            if booking.is_cancelled:
                raise AlreadyCancelledError(ticket_id)

            self._transition(booking, BookingStatus.CANCELLED)
            booking.is_cancelled = True
            booking.refund_amount = refund_for(booking.total_amount)
            booking.cancellation_date = datetime.now(timezone.utc)

            released = 0
            bus = self.bus_repository.lock_bus(booking.bus_id)
            if bus is not None:
                released = self.seat_repository.release(bus, booking.seat_numbers)
            else:
                logger.warning("Bus %s missing while cancelling %s", booking.bus_id, ticket_id)

            self.db.flush()
            return CancellationResult(
                ticket_id=booking.ticket_id,
                refund_amount=booking.refund_amount,
                cancellation_date=booking.cancellation_date,
                released_seats=released,
            )

        result = self._commit_with_retry(release, f"cancel ticket={ticket_id}")
        logger.info(
            "Ticket cancelled. ticket_id=%s refund=%s released_seats=%s",
            result.ticket_id,
            result.refund_amount,
            result.released_seats,
        )
        return result

    def initialize_seats(self, bus_id: str) -> SeatInitializationResult:

        def initialize() -> SeatInitializationResult:
            bus = self.bus_repository.lock_bus(bus_id)
            if not bus:
                raise NotFoundError("Bus not found")
            created = self.seat_repository.initialize_seats(bus)
            self.db.flush()
            return SeatInitializationResult(
                bus_id=bus.id,
                created=created > 0,
                seat_count=len(bus.seats),
            )

        result = self._commit_with_retry(initialize, f"initialize seats bus={bus_id}")
        if result.created:
            logger.info("Initialized %s seats for bus %s", result.seat_count, bus_id)
        return result

    def list_bookings(self, user_id: str) -> list[Booking]:
        return self.booking_repository.list_for_user(user_id)

    def get_booking(self, ticket_id: str, user_id: str) -> Booking:
        booking = self.booking_repository.get_for_user(ticket_id, user_id)
        if not booking:
            raise NotFoundError("Ticket not found")
        return booking

    def _validate_request(
        self,
        seats: list[SeatSelection],
        passenger: PassengerDetails,
        payment_method: str,
        upi_id: str | None,
    ) -> tuple[PaymentMethod, str | None]:
        if not seats:
            raise ValidationError("Select at least one seat")

        seat_numbers = [seat.seat_number for seat in seats]
        if len(set(seat_numbers)) != len(seat_numbers):
            raise ValidationError("Each seat can only be selected once")

        if passenger.email and not is_valid_email(passenger.email):
            raise ValidationError(
                "Please enter a valid email address (e.g., user@example.com)"
            )

        try:
            method = PaymentMethod(str(payment_method).strip().lower())
        except ValueError as exc:
            raise ValidationError(f"Unsupported payment method: {payment_method}") from exc

        if method is PaymentMethod.UPI:
            if not upi_id or not upi_id.strip():
                raise ValidationError("UPI ID is required for UPI payment")
            if not is_valid_upi(upi_id):
                raise ValidationError(
                    "Please enter a valid UPI ID (e.g., yourname@upi, yourname@paytm, yourname@okaxis)"
                )
            return method, upi_id.strip()

        return method, None

    def _commit_with_retry(self, operation: Callable[[], T], description: str) -> T:
        attempt = 1
        while True:
            try:
                result = operation()
                self.db.commit()
                return result
            except (StaleDataError, IntegrityError) as exc:
                # Lost a race on the version counter or on a unique key.
                self.db.rollback()
                if attempt >= self.max_attempts:
                    raise ConcurrentModificationError(
                        "Seat map changed while saving. Please try again."
                    ) from exc
                logger.warning(
                    "Concurrent update during %s (attempt %s/%s). Retrying.",
                    description,
                    attempt,
                    self.max_attempts,
                )
                attempt += 1
            except Exception:
                self.db.rollback()
                raise

    def _transition(self, booking: Booking, to_status: BookingStatus) -> None:
        payment_status = BookingStateMachine.validate_transition(booking.status, to_status)
        self.booking_repository.update_status(booking, to_status, payment_status)
