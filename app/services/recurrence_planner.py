# app/services/recurrence_planner.py
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date as date_type, datetime, timedelta
from enum import Enum

DEFAULT_MAX_OCCURRENCES = 35


class Periodicity(str, Enum):
    """
    Repeat cadence of a recurring appointment request.
    """

    DO_NOT_REPEAT = "Do not repeat"
    WEEKLY = "Weekly"
    BIWEEKLY = "Biweekly"


_STEP_DAYS = {
    Periodicity.WEEKLY: 7,
    Periodicity.BIWEEKLY: 14,
}

# 0 = Sunday ... 6 = Saturday
WEEKDAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


@dataclass(frozen=True)
class RecurrencePlan:
    """
    Outcome of planning a recurrence.

    `dates` is strictly ascending and already truncated to the cap;
    `total_matches` is the count before truncation.
    """

    dates: tuple[date_type, ...] = field(default_factory=tuple)
    was_capped: bool = False
    total_matches: int = 0

    @property
    def count(self) -> int:
        return len(self.dates)


EMPTY_PLAN = RecurrencePlan()


def sunday_based_weekday(day: date_type) -> int:
    """
    Weekday of `day` with 0 = Sunday, matching the numbering used by clients.
    """
    return (day.weekday() + 1) % 7


def _coerce_date(value: date_type | datetime | str) -> date_type:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_type):
        return value
    return date_type.fromisoformat(str(value))


def _coerce_weekday(value: int | str) -> int:
    if isinstance(value, str) and not value.isdigit():
        return WEEKDAY_NAMES.index(value.strip().capitalize())

    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"not a weekday: {value!r}")

    number = int(value)
    if not 0 <= number <= 6:
        raise ValueError(f"weekday out of range: {number}")
    return number


def _coerce_periodicity(value: Periodicity | str) -> Periodicity:
    return value if isinstance(value, Periodicity) else Periodicity(value)


def plan(
    start_date: date_type | str,
    end_date: date_type | str,
    weekdays: Iterable[int | str],
    periodicity: Periodicity | str,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> RecurrencePlan:
    """
    Expand a recurring request into concrete occurrence dates.

    The cursor walks from `start_date` to `end_date` (inclusive). When the
    cursor falls on a selected weekday the date is kept and the cursor jumps
    by the periodicity step (7 or 14 days); otherwise it advances one day.
    With several weekdays selected and a biweekly step this can yield dates
    closer than 14 days apart; that behavior is kept on purpose.

    Malformed input never raises: it produces an empty plan, since the
    planner is also used as a non-authoritative preview.
    """
    try:
        start = _coerce_date(start_date)
        end = _coerce_date(end_date)
        cadence = _coerce_periodicity(periodicity)
        selected = frozenset(_coerce_weekday(day) for day in weekdays)
    except (TypeError, ValueError):
        return EMPTY_PLAN

    if cadence == Periodicity.DO_NOT_REPEAT or not selected or end <= start:
        return EMPTY_PLAN

    step = timedelta(days=_STEP_DAYS[cadence])
    one_day = timedelta(days=1)

    matches: list[date_type] = []
    cursor = start
    while cursor <= end:
        if sunday_based_weekday(cursor) in selected:
            matches.append(cursor)
            cursor += step
        else:
            cursor += one_day

    limit = max(0, max_occurrences)
    was_capped = len(matches) > limit
    return RecurrencePlan(
        dates=tuple(matches[:limit]),
        was_capped=was_capped,
        total_matches=len(matches),
    )


def shift_to_weekday(day: date_type, weekday: int) -> date_type:
    """
    Move `day` onto `weekday` (0 = Sunday) inside its own Sunday-started week.

    Shifting every occurrence of a series this way keeps each occurrence in
    the same week, so the series keeps its spacing.
    """
    target = _coerce_weekday(weekday)
    return day + timedelta(days=target - sunday_based_weekday(day))
