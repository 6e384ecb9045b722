import datetime
from typing import Tuple
from zoneinfo import ZoneInfo

DateRange = Tuple[datetime.datetime, datetime.datetime]


class LogCalendar:
    """Normalize timestamps to calendar days in a fixed time zone.

    Every key into the draft cache and every workout lookup goes through
    :meth:`normalize`, so two timestamps on the same local day always map to
    the same start-of-day instant.
    """

    def __init__(self, timezone: str = "UTC", first_weekday: int = 0) -> None:
        if not 0 <= first_weekday <= 6:
            raise ValueError("first_weekday must be between 0 (Monday) and 6 (Sunday)")
        self.timezone = timezone
        self.tz = ZoneInfo(timezone)
        self.first_weekday = first_weekday

    def __repr__(self) -> str:
        return f"LogCalendar(timezone={self.timezone!r}, first_weekday={self.first_weekday})"

    def _midnight(self, day: datetime.date) -> datetime.datetime:
        return datetime.datetime.combine(day, datetime.time(0), tzinfo=self.tz)

    def local_date(self, value: datetime.datetime | datetime.date) -> datetime.date:
        """Return the calendar day ``value`` falls on in this time zone."""
        if isinstance(value, datetime.datetime):
            if value.tzinfo is None:
                return value.date()
            return value.astimezone(self.tz).date()
        return value

    def normalize(self, value: datetime.datetime | datetime.date) -> datetime.datetime:
        """Return the start of the day containing ``value``.

        Naive datetimes are read as wall-clock time in this calendar's zone.
        The result is idempotent: ``normalize(normalize(t)) == normalize(t)``.
        """
        return self._midnight(self.local_date(value))

    def now(self) -> datetime.datetime:
        return datetime.datetime.now(self.tz)

    def today(self) -> datetime.datetime:
        return self.normalize(self.now())

    def add_days(self, value: datetime.datetime | datetime.date, days: int) -> datetime.datetime:
        return self._midnight(self.local_date(value) + datetime.timedelta(days=days))

    def day_range(self, value: datetime.datetime | datetime.date) -> DateRange:
        start = self.normalize(value)
        return start, self.add_days(start, 1)

    def month_start(self, value: datetime.datetime | datetime.date) -> datetime.datetime:
        day = self.local_date(value)
        return self._midnight(day.replace(day=1))

    def month_range(self, year: int, month: int) -> DateRange:
        if not 1 <= month <= 12:
            raise ValueError("month must be between 1 and 12")
        start = datetime.date(year, month, 1)
        if month == 12:
            end = datetime.date(year + 1, 1, 1)
        else:
            end = datetime.date(year, month + 1, 1)
        return self._midnight(start), self._midnight(end)

    def month_range_for(self, value: datetime.datetime | datetime.date) -> DateRange:
        day = self.local_date(value)
        return self.month_range(day.year, day.month)

    def year_range(self, year: int) -> DateRange:
        return (
            self._midnight(datetime.date(year, 1, 1)),
            self._midnight(datetime.date(year + 1, 1, 1)),
        )

    @staticmethod
    def total_days_in_year(year: int) -> int:
        return (datetime.date(year + 1, 1, 1) - datetime.date(year, 1, 1)).days

    def start_of_week(self, value: datetime.datetime | datetime.date) -> datetime.datetime:
        day = self.local_date(value)
        offset = (day.weekday() - self.first_weekday) % 7
        return self._midnight(day - datetime.timedelta(days=offset))

    def day_key(self, value: datetime.datetime | datetime.date) -> str:
        """ISO date string (``YYYY-MM-DD``) of the local day."""
        return self.local_date(value).isoformat()

    def parse_day(self, text: str) -> datetime.datetime:
        """Parse an ISO date or datetime string into a normalized day."""
        try:
            if len(text) == 10:
                return self.normalize(datetime.date.fromisoformat(text))
            return self.normalize(datetime.datetime.fromisoformat(text))
        except ValueError:
            raise ValueError(f"invalid date: {text!r}")

    def label(self, value: datetime.datetime | datetime.date) -> str:
        return self.local_date(value).strftime("%Y-%m-%d (%a)")


def normalized(value: datetime.datetime | datetime.date, calendar: LogCalendar | None = None) -> datetime.datetime:
    """Shortcut for ``calendar.normalize(value)`` using UTC by default."""
    return (calendar or LogCalendar()).normalize(value)
