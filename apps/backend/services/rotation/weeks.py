import calendar
from datetime import date, timedelta
from typing import List, Tuple
from models.schemas import WorkWeek

MIN_YEAR = 2000
MAX_YEAR = 2100
WORK_DAYS = 5 # Mon-Fri

class InvalidMonthError(ValueError):
    """Raised for a (year, month) outside the range the scheduler accepts."""

def validate_month(year: int, month: int):
    if not isinstance(year, int) or not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidMonthError(f"year must be between {MIN_YEAR} and {MAX_YEAR}, got {year!r}")
    if not isinstance(month, int) or not 1 <= month <= 12:
        raise InvalidMonthError(f"month must be between 1 and 12, got {month!r}")

def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1

def month_weeks(year: int, month: int, min_weekdays: int = 3) -> List[WorkWeek]:
    """
    Splits a month into Monday-based work weeks.

    Every Monday inside the month opens a five-day window. Only the weekdays of
    that window which fall inside the month are kept, and the window becomes a
    work week when at least `min_weekdays` of them remain. Weeks are numbered
    1..N in chronological order.

    Args:
        year (int): Calendar year.
        month (int): 1-12.
        min_weekdays (int): Acceptance threshold (1-5).

    Returns:
        list[WorkWeek]: Accepted weeks, possibly empty.

    Raises:
        InvalidMonthError: If year/month/min_weekdays are out of range.
    """
    validate_month(year, month)
    if not 1 <= min_weekdays <= WORK_DAYS:
        raise InvalidMonthError(f"min_weekdays must be between 1 and {WORK_DAYS}, got {min_weekdays!r}")

    weeks: List[WorkWeek] = []
    _, days_in_month = calendar.monthrange(year, month)

    for day in range(1, days_in_month + 1):
        monday = date(year, month, day)
        if monday.weekday() != calendar.MONDAY:
            continue

        window = [monday + timedelta(days=i) for i in range(WORK_DAYS)]
        dates = [d for d in window if d.weekday() < WORK_DAYS and d.month == month]

        if len(dates) < min_weekdays:
            continue

        weeks.append(WorkWeek(
            week_number=len(weeks) + 1,
            start_date=monday,
            end_date=dates[-1],
            dates=dates
        ))

    return weeks
