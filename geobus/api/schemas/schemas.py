from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field


class SeatSelectionRequest(BaseModel):
    seat_number: str = Field(min_length=1, max_length=8)
    passenger_name: str | None = None
    passenger_age: int | None = Field(default=None, ge=0, le=150)


class PassengerDetailsRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    mobile: str | None = None


class BookingRequest(BaseModel):
    bus_id: str
    seats: list[SeatSelectionRequest] = Field(min_length=1)
    passenger_details: PassengerDetailsRequest = Field(default_factory=PassengerDetailsRequest)
    payment_method: Literal["upi", "qr", "card"]
    journey_date: str | None = None
    upi_id: str | None = None


class SeatResponse(BaseModel):
    seat_number: str
    is_booked: bool


class TripSummaryResponse(BaseModel):
    id: str
    bus_name: str
    bus_number: str
    from_location: str
    to_location: str
    departure_date: str | None = None
    departure_time: str
    arrival_time: str
    price: float
    available_seats: int
    is_active: bool


class TripDetailResponse(TripSummaryResponse):
    departure_date_iso: str | None = None
    seats: list[SeatResponse]


class AvailabilityResponse(BaseModel):
    bus_id: str
    available: bool
    seat_number: str | None = None
    reason: str | None = None


class SeatInitializationResponse(BaseModel):
    message: str
    bus_id: str
    created: bool
    seat_count: int


class BookedSeatResponse(BaseModel):
    seat_number: str
    passenger_name: str | None = None
    passenger_age: int | None = None


class BookingResponse(BaseModel):
    ticket_id: str
    bus_id: str
    seats: list[BookedSeatResponse]
    total_amount: float
    payment_method: str
    payment_status: str
    status: str
    is_cancelled: bool
    refund_amount: float | None = None
    cancellation_date: datetime | None = None
    booking_date: datetime
    journey_date: str | None = None
    departure_time_snapshot: str | None = None
    arrival_time_snapshot: str | None = None
    bus: TripSummaryResponse | None = None


class BookingCreatedResponse(BaseModel):
    message: str
    ticket_id: str
    booking: BookingResponse


class CancellationResponse(BaseModel):
    message: str
    ticket_id: str
    refund_amount: float
    cancellation_date: datetime
