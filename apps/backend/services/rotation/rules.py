import logging
from typing import Dict, List, NamedTuple, Optional, Protocol
from models.schemas import OD_CODE, WorkWeek
from services.rotation.store import DutyLookup, StoreError
from services.rotation.weeks import MIN_YEAR, month_weeks, shift_month

logger = logging.getLogger(__name__)

class RotationRule(Protocol):
    def nominal_week(self, instructor_id: str, year: int, month: int, weeks: List[WorkWeek]) -> Optional[int]: ...

class PriorWeek(NamedTuple):
    year: int
    month: int
    week_number: int

class FixedOffsetRotation:
    """
    Rotation anchored on a known base month.

    Every elapsed month moves each instructor one week position forward,
    wrapping modulo the pool size.
    """
    def __init__(self, pool: List[str], base_year: int, base_month: int, base_weeks: Dict[str, int]):
        self.pool = list(pool)
        self.base_year = base_year
        self.base_month = base_month
        self.base_weeks = dict(base_weeks)

    def months_elapsed(self, year: int, month: int) -> int:
        return (year - self.base_year) * 12 + (month - self.base_month)

    def nominal_week(self, instructor_id, year, month, weeks=None):
        base_week = self.base_weeks.get(instructor_id)
        if base_week is None:
            return None # Not part of the base rotation
        return ((base_week - 1 + self.months_elapsed(year, month)) % len(self.pool)) + 1

    def instructor_for_week(self, year: int, month: int, week_number: int) -> str:
        for instructor_id in self.pool:
            if self.nominal_week(instructor_id, year, month) == week_number:
                return instructor_id
        return self.pool[(week_number - 1) % len(self.pool)]

class HistoryScanRotation:
    """
    Rotation inferred from persisted OD assignments.

    The instructor's most recent OD week in the previous `lookback_months`
    months decides the target: one week earlier than last time. Without any
    history the instructor starts from week 1 and the availability search
    moves them to the first open week.
    """
    def __init__(self, lookup: DutyLookup, lookback_months: int = 6, min_weekdays: int = 3):
        self.lookup = lookup
        self.lookback_months = lookback_months
        self.min_weekdays = min_weekdays

    def last_od_week(self, instructor_id: str, year: int, month: int) -> Optional[PriorWeek]:
        for offset in range(1, self.lookback_months + 1):
            prior_year, prior_month = shift_month(year, month, -offset)
            if prior_year < MIN_YEAR:
                break # Nothing is stored before the earliest schedulable year
            for week in reversed(month_weeks(prior_year, prior_month, self.min_weekdays)):
                if self._held_od(instructor_id, week):
                    return PriorWeek(prior_year, prior_month, week.week_number)
        return None

    def nominal_week(self, instructor_id, year, month, weeks):
        week_count = len(weeks)
        if week_count == 0:
            return None

        prior = self.last_od_week(instructor_id, year, month)
        if prior is None:
            logger.info(f"No OD history for {instructor_id} in the last {self.lookback_months} months, starting at week 1")
            return 1

        target = prior.week_number - 1
        if target < 1:
            target = week_count
        return min(target, week_count)

    def _held_od(self, instructor_id: str, week: WorkWeek) -> bool:
        for day in week.dates:
            try:
                if self.lookup.has_code(instructor_id, day, OD_CODE):
                    return True
            except StoreError:
                continue # Unreadable dates count as "no OD"; the lookup reports them
        return False
