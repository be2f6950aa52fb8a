# geobus/infrastructure/repositories/booking_repository.py

from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select

from geobus.infrastructure.db.models import Booking, BookingSeat
from geobus.domain.state_machine import BookingStateMachine, BookingStatus, PaymentStatus
from geobus.domain.value_objects import PassengerDetails, SeatSelection


class BookingRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_for_user(
        self,
        ticket_id: str,
        user_id: str,
        lock: bool = False,
    ) -> Booking | None:

        stmt = (
            select(Booking)
            .where(Booking.ticket_id == ticket_id)
            .where(Booking.user_id == user_id)
        )
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_for_user(self, user_id: str) -> list[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.user_id == user_id)
            .options(selectinload(Booking.bus), selectinload(Booking.seats))
            .order_by(Booking.booking_date.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def create_booking(
        self,
        ticket_id: str,
        user_id: str,
        bus_id: str,
        seats: list[SeatSelection],
        passenger: PassengerDetails,
        total_amount: Decimal,
        payment_method: str,
        upi_id: str | None,
        journey_date: date | None,
        departure_time: str | None,
        arrival_time: str | None,
    ) -> Booking:

        booking = Booking(
            ticket_id=ticket_id,
            user_id=user_id,
            bus_id=bus_id,
            total_amount=total_amount,
            payment_method=payment_method,
            upi_id=upi_id,
            payment_status=BookingStateMachine.payment_status_for(BookingStatus.CONFIRMED),
            status=BookingStatus.CONFIRMED,
            is_cancelled=False,
            passenger_name=passenger.name,
            passenger_email=passenger.email,
            passenger_mobile=passenger.mobile,
            journey_date=journey_date,
            departure_time_snapshot=departure_time,
            arrival_time_snapshot=arrival_time,
            seats=[
                BookingSeat(
                    seat_number=seat.seat_number,
                    passenger_name=seat.passenger_name,
                    passenger_age=seat.passenger_age,
                )
                for seat in seats
            ],
        )

        self.db.add(booking)
        return booking

    def update_status(
        self,
        booking: Booking,
        new_status: BookingStatus,
        payment_status: PaymentStatus,
    ) -> None:

        booking.status = new_status
        booking.payment_status = payment_status
