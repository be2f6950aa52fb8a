# geobus/infrastructure/db/models.py

from sqlalchemy import (
    String,
    Integer,
    Boolean,
    Date,
    DateTime,
    Enum,
    Numeric,
    UniqueConstraint,
    CheckConstraint,
    ForeignKey,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from geobus.infrastructure.db.session import Base
from geobus.domain.state_machine import BookingStatus, PaymentStatus


def _uuid() -> str:
    return str(uuid4())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    Read-only projection of the account owned by the auth service.
    Only the fields printed on a ticket are kept here.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    mobile: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class Bus(Base):
    """
    One scheduled trip. A NULL departure_date marks a recurring trip
    that runs every day. version_id is bumped on every UPDATE so two
    writers racing on the same seat map cannot both commit.
    """

    __tablename__ = "buses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    bus_name: Mapped[str] = mapped_column(String(128), nullable=False)
    bus_number: Mapped[str] = mapped_column(String(32), nullable=False)
    from_location: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    to_location: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    departure_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    departure_time: Mapped[str] = mapped_column(String(16), nullable=False)
    arrival_time: Mapped[str] = mapped_column(String(16), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    image: Mapped[str | None] = mapped_column(String(255), nullable=True)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    seats: Mapped[list["Seat"]] = relationship(
        back_populates="bus",
        order_by="Seat.seat_number",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_bus_price_nonnegative"),
        CheckConstraint("available_seats >= 0", name="ck_bus_available_seats_nonnegative"),
    )


class Seat(Base):
    __tablename__ = "seats"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    bus_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("buses.id"),
        nullable=False,
    )
    seat_number: Mapped[str] = mapped_column(String(8), nullable=False)
    is_booked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    booked_by: Mapped[str | None] = mapped_column(String(36), nullable=True)

    bus: Mapped[Bus] = relationship(back_populates="seats")

    __table_args__ = (
        UniqueConstraint("bus_id", "seat_number", name="uq_bus_seat_number"),
    )


class Booking(Base):
    """
    A confirmed or cancelled reservation. Fare and journey facts are
    captured at creation and never rewritten; cancellation only touches
    the refund fields.
    """

    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    ticket_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    bus_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("buses.id"),
        nullable=False,
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(16), nullable=False)
    upi_id: Mapped[str | None] = mapped_column(String(330), nullable=True)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status"),
        nullable=False,
        default=PaymentStatus.COMPLETED,
    )
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status"),
        nullable=False,
        default=BookingStatus.CONFIRMED,
    )
    is_cancelled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    refund_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    cancellation_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    passenger_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    passenger_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    passenger_mobile: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # journey snapshot
    journey_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    departure_time_snapshot: Mapped[str | None] = mapped_column(String(16), nullable=True)
    arrival_time_snapshot: Mapped[str | None] = mapped_column(String(16), nullable=True)

    booking_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utc_now,
        nullable=False,
    )
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    bus: Mapped[Bus] = relationship()
    user: Mapped[User] = relationship()
    seats: Mapped[list["BookingSeat"]] = relationship(
        back_populates="booking",
        order_by="BookingSeat.seat_number",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        UniqueConstraint(
            "ticket_id",
            name="uq_booking_ticket_id",
        ),
        CheckConstraint(
            "total_amount >= 0",
            name="ck_booking_total_nonnegative",
        ),
    )

    @property
    def seat_numbers(self) -> list[str]:
        return [seat.seat_number for seat in self.seats]


class BookingSeat(Base):
    __tablename__ = "booking_seats"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    booking_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("bookings.id"),
        nullable=False,
    )
    seat_number: Mapped[str] = mapped_column(String(8), nullable=False)
    passenger_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    passenger_age: Mapped[int | None] = mapped_column(Integer, nullable=True)

    booking: Mapped[Booking] = relationship(back_populates="seats")

    __table_args__ = (
        UniqueConstraint("booking_id", "seat_number", name="uq_booking_seat_number"),
        CheckConstraint("passenger_age IS NULL OR passenger_age >= 0", name="ck_passenger_age_nonnegative"),
    )
