class GeobusError(Exception):
    """
    Base exception for all domain-level errors
    inside the Geobus booking engine.
    """


class ValidationError(GeobusError):
    """Raised when a request is malformed. No state is changed."""


class InvalidDateError(ValidationError):
    """Raised when a travel date cannot be parsed or is outside the booking window."""


class NotFoundError(GeobusError):
    """Raised when a trip, booking, or a booking's linked bus/user is missing."""


class ConflictError(GeobusError):
    """Raised when a request conflicts with current state. Nothing is persisted."""


class SeatUnavailableError(ConflictError):
    """Raised when a requested seat is already booked or does not exist."""

    def __init__(self, seat_number: str, reason: str = "already booked"):
        self.seat_number = seat_number
        self.reason = reason
        super().__init__(f"Seat {seat_number} is {reason}")


class AlreadyCancelledError(ConflictError):
    """Raised when cancelling a ticket that is already cancelled."""

    def __init__(self, ticket_id: str):
        self.ticket_id = ticket_id
        super().__init__("Ticket already cancelled")


class InvalidStateTransitionError(ConflictError):
    """
    Raised when an illegal booking state transition is attempted.
    """

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state

        message = (
            f"Illegal state transition attempted: "
            f"{from_state} -> {to_state}"
        )
        super().__init__(message)


class ConcurrentModificationError(ConflictError):
    """Raised when a commit keeps losing the race on a contended bus or booking."""
