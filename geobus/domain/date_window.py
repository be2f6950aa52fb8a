# geobus/domain/date_window.py

from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

from geobus.domain.exceptions import InvalidDateError

BOOKING_HORIZON_DAYS = 90


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _utc_date(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()


class DateWindow:
    """
    Sliding booking horizon.

    Travel dates are plain calendar dates. A requested date is valid when it
    falls in the closed interval [tomorrow, tomorrow + horizon_days], where
    "today" is the UTC calendar date of the current instant.
    """

    def __init__(
        self,
        horizon_days: int = BOOKING_HORIZON_DAYS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.horizon_days = horizon_days
        self._clock = clock or _utc_now

    def today(self) -> date:
        return _utc_date(self._clock())

    @staticmethod
    def normalize(value: str | date | None) -> date:
        """
        Parses `YYYY-MM-DD` or a full ISO-8601 timestamp into a calendar date.
        Timestamps with an offset are moved to UTC before the date is taken;
        naive timestamps keep their own date.
        """
        if isinstance(value, datetime):
            return _utc_date(value)
        if isinstance(value, date):
            return value
        if value is None or not str(value).strip():
            raise InvalidDateError("Date is required. Use YYYY-MM-DD or ISO date.")

        text = str(value).strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return _utc_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError as exc:
            raise InvalidDateError(
                "Invalid date format. Use YYYY-MM-DD or ISO date."
            ) from exc

    def bounds(self) -> tuple[date, date]:
        tomorrow = self.today() + timedelta(days=1)
        return tomorrow, tomorrow + timedelta(days=self.horizon_days)

    def validate(self, value: str | date | None) -> date:
        travel_date = self.normalize(value)
        earliest, latest = self.bounds()

        if travel_date < earliest:
            raise InvalidDateError("Please select a date from tomorrow onwards")
        if travel_date > latest:
            raise InvalidDateError(
                f"Booking is only allowed for dates within {self.horizon_days} days from tomorrow"
            )
        return travel_date
