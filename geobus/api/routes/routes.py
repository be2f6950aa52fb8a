from contextlib import contextmanager
from typing import Literal
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import OperationalError, TimeoutError as SQLAlchemyTimeoutError

from geobus.infrastructure.db.session import get_database
from geobus.infrastructure.db.models import Booking, Bus
from geobus.application.booking_service import BookingService
from geobus.application.catalog_service import CatalogService, TripDetail
from geobus.application.ticket_renderer import TicketRenderer
from geobus.api.auth import get_current_user_id, get_ticket_user_id
from geobus.api.schemas.schemas import (
    AvailabilityResponse,
    BookedSeatResponse,
    BookingCreatedResponse,
    BookingRequest,
    BookingResponse,
    CancellationResponse,
    SeatInitializationResponse,
    SeatResponse,
    TripDetailResponse,
    TripSummaryResponse,
)
from geobus.domain.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
)
from geobus.domain.value_objects import PassengerDetails, SeatSelection


router = APIRouter()
logger = logging.getLogger(__name__)


def get_db():
    db = get_database().create_session()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_ticket_renderer() -> TicketRenderer:
    return TicketRenderer()


@contextmanager
def _translate_errors():
    try:
        yield
    except NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except ConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except (OperationalError, SQLAlchemyTimeoutError) as exc:
        logger.warning("Database unavailable: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database is currently unavailable. Please retry after some time.",
        ) from exc


def _trip_summary(bus: Bus) -> TripSummaryResponse:
    return TripSummaryResponse(
        id=bus.id,
        bus_name=bus.bus_name,
        bus_number=bus.bus_number,
        from_location=bus.from_location,
        to_location=bus.to_location,
        departure_date=bus.departure_date.isoformat() if bus.departure_date else None,
        departure_time=bus.departure_time,
        arrival_time=bus.arrival_time,
        price=float(bus.price),
        available_seats=bus.available_seats,
        is_active=bus.is_active,
    )


def _trip_detail(detail: TripDetail) -> TripDetailResponse:
    summary = _trip_summary(detail.bus)
    return TripDetailResponse(
        **summary.model_dump(),
        departure_date_iso=detail.departure_date_iso,
        seats=[
            SeatResponse(seat_number=seat.seat_number, is_booked=seat.is_booked)
            for seat in detail.bus.seats
        ],
    )


def _booking_response(booking: Booking, include_bus: bool = False) -> BookingResponse:
    return BookingResponse(
        ticket_id=booking.ticket_id,
        bus_id=booking.bus_id,
        seats=[
            BookedSeatResponse(
                seat_number=seat.seat_number,
                passenger_name=seat.passenger_name,
                passenger_age=seat.passenger_age,
            )
            for seat in booking.seats
        ],
        total_amount=float(booking.total_amount),
        payment_method=booking.payment_method,
        payment_status=booking.payment_status.value,
        status=booking.status.value,
        is_cancelled=booking.is_cancelled,
        refund_amount=float(booking.refund_amount) if booking.refund_amount is not None else None,
        cancellation_date=booking.cancellation_date,
        booking_date=booking.booking_date,
        journey_date=booking.journey_date.isoformat() if booking.journey_date else None,
        departure_time_snapshot=booking.departure_time_snapshot,
        arrival_time_snapshot=booking.arrival_time_snapshot,
        bus=_trip_summary(booking.bus) if include_bus and booking.bus else None,
    )


@router.get("/health")
def health():
    return {"message": "Geobus booking engine is running"}


@router.get("/trips/search", response_model=list[TripSummaryResponse])
def search_trips(
    from_location: str | None = Query(default=None, alias="from"),
    to_location: str | None = Query(default=None, alias="to"),
    date: str | None = None,
    db: Session = Depends(get_db),
):
    with _translate_errors():
        buses = CatalogService(db).search(from_location, to_location, date)
    return [_trip_summary(bus) for bus in buses]


@router.get("/trips/route-suggestions", response_model=list[str])
def route_suggestions(
    q: str | None = None,
    direction: str | None = Query(default=None, alias="type"),
    db: Session = Depends(get_db),
):
    with _translate_errors():
        return CatalogService(db).route_suggestions(q, direction)


@router.get("/trips/{bus_id}", response_model=TripDetailResponse)
def get_trip(
    bus_id: str,
    date: str | None = None,
    db: Session = Depends(get_db),
):
    with _translate_errors():
        detail = CatalogService(db).get_trip(bus_id, date)
    return _trip_detail(detail)


@router.get("/trips/{bus_id}/availability", response_model=AvailabilityResponse)
def check_availability(
    bus_id: str,
    seats: str = Query(..., description="Comma separated seat numbers, e.g. S01,S02"),
    db: Session = Depends(get_db),
):
    seat_numbers = [seat.strip() for seat in seats.split(",") if seat.strip()]
    if not seat_numbers:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide at least one seat number.",
        )

    with _translate_errors():
        conflict = BookingService(db).check_availability(bus_id, seat_numbers)

    if conflict:
        return AvailabilityResponse(
            bus_id=bus_id,
            available=False,
            seat_number=conflict.seat_number,
            reason=conflict.reason,
        )
    return AvailabilityResponse(bus_id=bus_id, available=True)


@router.post("/trips/{bus_id}/initialize-seats", response_model=SeatInitializationResponse)
def initialize_seats(
    bus_id: str,
    db: Session = Depends(get_db),
):
    with _translate_errors():
        result = BookingService(db).initialize_seats(bus_id)
    return SeatInitializationResponse(
        message="Bus seats initialized",
        bus_id=result.bus_id,
        created=result.created,
        seat_count=result.seat_count,
    )


@router.post(
    "/bookings",
    response_model=BookingCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
def book_seats(
    request: BookingRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    with _translate_errors():
        booking = BookingService(db).book(
            bus_id=request.bus_id,
            user_id=user_id,
            seats=[
                SeatSelection(
                    seat_number=seat.seat_number,
                    passenger_name=seat.passenger_name,
                    passenger_age=seat.passenger_age,
                )
                for seat in request.seats
            ],
            passenger=PassengerDetails(
                name=request.passenger_details.name,
                email=request.passenger_details.email,
                mobile=request.passenger_details.mobile,
            ),
            payment_method=request.payment_method,
            journey_date=request.journey_date,
            upi_id=request.upi_id,
        )

    return BookingCreatedResponse(
        message="Booking successful",
        ticket_id=booking.ticket_id,
        booking=_booking_response(booking),
    )


@router.get("/bookings/me", response_model=list[BookingResponse])
def list_my_bookings(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    with _translate_errors():
        bookings = BookingService(db).list_bookings(user_id)
    return [_booking_response(booking, include_bus=True) for booking in bookings]


@router.post("/bookings/{ticket_id}/cancel", response_model=CancellationResponse)
def cancel_ticket(
    ticket_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    with _translate_errors():
        result = BookingService(db).cancel(ticket_id, user_id)
    return CancellationResponse(
        message="Ticket cancelled successfully",
        ticket_id=result.ticket_id,
        refund_amount=float(result.refund_amount),
        cancellation_date=result.cancellation_date,
    )


@router.get("/bookings/{ticket_id}/ticket")
def render_ticket(
    ticket_id: str,
    output_format: Literal["pdf", "html"] = Query(default="pdf", alias="format"),
    user_id: str = Depends(get_ticket_user_id),
    db: Session = Depends(get_db),
    renderer: TicketRenderer = Depends(get_ticket_renderer),
):
    with _translate_errors():
        booking = BookingService(db).get_booking(ticket_id, user_id)
        rendered = renderer.render(booking, booking.bus, booking.user, output_format=output_format)

    disposition = "attachment" if output_format == "pdf" else "inline"
    return Response(
        content=rendered.content,
        media_type=rendered.media_type,
        headers={"Content-Disposition": f'{disposition}; filename="{rendered.filename}"'},
    )
