"""
Calendar windows in the fixed business timezone.

Every function takes an explicit ``offset_hours`` so results do not depend
on the host's locale or timezone. Ranges are inclusive: a window ends at
23:59:59.999 on its last day.
"""

import calendar
import logging
import re
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date, datetime, time, timedelta, timezone, tzinfo
from typing import Any

from .config import BUSINESS_TZ, BUSINESS_UTC_OFFSET_HOURS, MONTH_LABELS
from .utils import normalise_instant

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59, 999000)

_MONTH_KEY = re.compile(r"^\s*(\d{4})-(\d{1,2})\s*$")


def business_tz(offset_hours: float = BUSINESS_UTC_OFFSET_HOURS) -> tzinfo:
    if offset_hours == BUSINESS_UTC_OFFSET_HOURS:
        return BUSINESS_TZ
    return timezone(timedelta(hours=offset_hours))


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Range start {self.start} is after end {self.end}")

    @classmethod
    def from_calendar(
        cls,
        year: int | None = None,
        month: int | None = None,
        week_anchor: date | None = None,
        tz: tzinfo = BUSINESS_TZ,
    ) -> "DateRange":
        """Build a window from calendar components.

        - week_anchor given: the Monday-Sunday week containing it.
        - month given: day 1 through the month's last day.
        - otherwise: Jan 1 through Dec 31 of `year`.
        """
        if week_anchor is not None:
            # Sunday-first weekday (0=Sun..6=Sat) shifted so Monday is 0;
            # plain "weekday - 1" would put Sunday in the following week.
            sunday_first = week_anchor.isoweekday() % 7
            days_since_monday = (sunday_first + 6) % 7
            first = week_anchor - timedelta(days=days_since_monday)
            last = first + timedelta(days=6)
        elif year is None:
            raise ValueError("A year or a week anchor is required")
        elif month is not None:
            first = date(year, month, 1)
            last = date(year, month, calendar.monthrange(year, month)[1])
        else:
            first = date(year, 1, 1)
            last = date(year, 12, 31)

        return cls(
            start=datetime.combine(first, time.min, tzinfo=tz),
            end=datetime.combine(last, END_OF_DAY, tzinfo=tz),
        )

    @property
    def start_date(self) -> str:
        return self.start.date().isoformat()

    @property
    def end_date(self) -> str:
        return self.end.date().isoformat()

    def contains(self, instant: Any) -> bool:
        moment = normalise_instant(instant, self.start.tzinfo)
        if moment is None:
            return False
        return self.start <= moment <= self.end


@dataclass(frozen=True)
class MonthWindow:
    range: DateRange
    year: int
    month: int
    month_name: str

    @property
    def month_key(self) -> str:
        return f"{self.year}-{self.month:02d}"


def business_now(
    now: datetime | None = None,
    offset_hours: float = BUSINESS_UTC_OFFSET_HOURS,
) -> datetime:
    """Return the reference instant shifted into business time.

    A naive `now` is read as UTC.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(business_tz(offset_hours))


def business_today(
    now: datetime | None = None,
    offset_hours: float = BUSINESS_UTC_OFFSET_HOURS,
) -> date:
    """Calendar date in business time, used as the default date filter."""
    return business_now(now, offset_hours).date()


def _month_window(year: int, month: int, tz: tzinfo) -> MonthWindow:
    return MonthWindow(
        range=DateRange.from_calendar(year, month, tz=tz),
        year=year,
        month=month,
        month_name=calendar.month_name[month],
    )


def current_month_range(
    now: datetime | None = None,
    offset_hours: float = BUSINESS_UTC_OFFSET_HOURS,
) -> MonthWindow:
    """Window covering the business-time month that contains `now`."""
    local = business_now(now, offset_hours)
    return _month_window(local.year, local.month, business_tz(offset_hours))


def month_range(
    year_month_key: str | None,
    offset_hours: float = BUSINESS_UTC_OFFSET_HOURS,
) -> MonthWindow | None:
    """Window for a "YYYY-MM" token, or None when the token is empty or invalid."""
    if not year_month_key:
        return None
    match = _MONTH_KEY.match(str(year_month_key))
    if match is None:
        logger.warning("Ignoring malformed month token '%s'", year_month_key)
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        logger.warning("Ignoring out-of-range month token '%s'", year_month_key)
        return None
    if not MINYEAR <= year <= MAXYEAR:
        logger.warning("Ignoring month token '%s' with unsupported year", year_month_key)
        return None
    return _month_window(year, month, business_tz(offset_hours))


def year_range(
    year: int | str,
    offset_hours: float = BUSINESS_UTC_OFFSET_HOURS,
) -> DateRange:
    """Jan 1 00:00:00.000 through Dec 31 23:59:59.999 of `year`."""
    return DateRange.from_calendar(int(year), tz=business_tz(offset_hours))


def week_range(
    anchor: Any = None,
    now: datetime | None = None,
    offset_hours: float = BUSINESS_UTC_OFFSET_HOURS,
) -> DateRange:
    """Monday-to-Sunday week containing `anchor`.

    `anchor` may be a date, datetime or date string. A missing or
    unparseable anchor falls back to the current business date.
    """
    tz = business_tz(offset_hours)
    anchor_date = None
    if anchor is not None and anchor != "":
        moment = normalise_instant(anchor, tz)
        if moment is not None:
            anchor_date = moment.date()
        else:
            logger.warning("Week anchor '%s' is not a date, using today", anchor)
    if anchor_date is None:
        anchor_date = business_now(now, offset_hours).date()
    return DateRange.from_calendar(week_anchor=anchor_date, tz=tz)


def format_week_display(week: DateRange) -> str:
    """Return e.g. "Feb 26 - Mar 3, 2024"."""
    start, end = week.start, week.end
    return (
        f"{MONTH_LABELS[start.month - 1]} {start.day} - "
        f"{MONTH_LABELS[end.month - 1]} {end.day}, {end.year}"
    )
