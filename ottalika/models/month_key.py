"""Calendar-month key used for billing months.

Months are compared as (year, month) pairs instead of truncating dates inside
queries. In the database a month is stored as its first-of-month DATE.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy import Date
from sqlalchemy.types import TypeDecorator

_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})(?:-(\d{1,2}))?$")


@dataclass(frozen=True, order=True)
class MonthKey:
    """A billing month identified by year and month number."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be in 1..12, got {self.month}")
        if not 1 <= self.year <= 9999:
            raise ValueError(f"Year out of range: {self.year}")

    @classmethod
    def parse(cls, value: "MonthKey | date | str") -> "MonthKey":
        """Build a MonthKey from a MonthKey, a date/datetime, or 'YYYY-MM[-DD]'.

        The day component, when present, is ignored.

        Raises:
            ValueError: If the value cannot be interpreted as a month
        """
        if isinstance(value, MonthKey):
            return value
        if isinstance(value, (date, datetime)):
            return cls(value.year, value.month)
        if isinstance(value, str):
            match = _MONTH_RE.match(value.strip())
            if match:
                return cls(int(match.group(1)), int(match.group(2)))
        raise ValueError(f"Invalid month value: {value!r} (expected YYYY-MM)")

    @classmethod
    def current(cls, today: date | None = None) -> "MonthKey":
        today = today or date.today()
        return cls(today.year, today.month)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    def due_date(self, grace_days: int) -> date:
        """Rent due date: first day of the month plus the grace period."""
        return self.first_day + timedelta(days=grace_days)

    def shift(self, months: int) -> "MonthKey":
        """Return the month `months` away (negative goes back in time)."""
        index = self.year * 12 + (self.month - 1) + months
        return MonthKey(index // 12, index % 12 + 1)

    def label(self) -> str:
        """Human-readable label, e.g. 'January 2024'."""
        return self.first_day.strftime("%B %Y")

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


class MonthKeyType(TypeDecorator):
    """Persist a MonthKey as the first-of-month DATE."""

    impl = Date
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return MonthKey.parse(value).first_day

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return MonthKey.parse(value)


__all__ = ["MonthKey", "MonthKeyType"]
