from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SeatSelection:
    seat_number: str
    passenger_name: Optional[str] = None
    passenger_age: Optional[int] = None


@dataclass(frozen=True)
class PassengerDetails:
    name: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None


@dataclass(frozen=True)
class SeatConflict:
    seat_number: str
    reason: str
