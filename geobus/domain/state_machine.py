# geobus/domain/state_machine.py

from enum import Enum
from typing import Dict, FrozenSet

from geobus.domain.exceptions import InvalidStateTransitionError


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    COMPLETED = "completed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    UPI = "upi"
    QR = "qr"
    CARD = "card"


def _require_status(status) -> BookingStatus:
    if not isinstance(status, BookingStatus):
        raise TypeError(f"Expected BookingStatus, got {type(status)}")
    return status


class BookingStateMachine:
    """
    Ticket lifecycle.

    A booking is created confirmed with its payment completed. Cancelling
    is the only move and it is final: the payment flips to refunded and
    the seats go back on sale.
    """

    _NEXT: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
        BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
        BookingStatus.CANCELLED: frozenset(),
    }

    _PAYMENT_FOR: Dict[BookingStatus, PaymentStatus] = {
        BookingStatus.CONFIRMED: PaymentStatus.COMPLETED,
        BookingStatus.CANCELLED: PaymentStatus.REFUNDED,
    }

    @classmethod
    def can_transition(cls, current: BookingStatus, target: BookingStatus) -> bool:
        return _require_status(target) in cls._NEXT[_require_status(current)]

    @classmethod
    def validate_transition(
        cls,
        current: BookingStatus,
        target: BookingStatus,
    ) -> PaymentStatus:
        """
        Returns the payment status that goes with `target`, or raises
        InvalidStateTransitionError.
        """
        if not cls.can_transition(current, target):
            raise InvalidStateTransitionError(
                from_state=current.value,
                to_state=target.value,
            )
        return cls._PAYMENT_FOR[target]

    @classmethod
    def is_terminal(cls, status: BookingStatus) -> bool:
        return not cls._NEXT[_require_status(status)]

    @classmethod
    def payment_status_for(cls, status: BookingStatus) -> PaymentStatus:
        return cls._PAYMENT_FOR[_require_status(status)]
