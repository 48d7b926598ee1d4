import logging
import threading
from typing import Dict, List, Optional
from models.schemas import (
    OD_CODE, DutyEntryInput, RotationConfig, RotationMode, RotationResult, WeekAssignment, WorkWeek,
)
from services.rotation.rules import FixedOffsetRotation, HistoryScanRotation, RotationRule
from services.rotation.store import DutyLookup, DutyStore, StoreError, merge_duties
from services.rotation.weeks import month_weeks

logger = logging.getLogger(__name__)

def _span(week: WorkWeek) -> str:
    return f"{week.dates[0].isoformat()} to {week.dates[-1].isoformat()}"

class RotationScheduler:
    """
    Assigns the monthly OD rotation.

    A run has three steps:
    1. Partition the target month into work weeks.
    2. Plan: instructors who already hold OD this month keep that week (or are
       left out if it now conflicts), every other pool instructor tries their
       nominal week (moving forward on conflicts or weeks already taken), then
       open weeks are filled from pool + reserve instructors who are still free.
    3. Write OD onto every date of each planned week.

    Attributes:
        store (DutyStore): Where duty entries are read and upserted.
        config (RotationConfig): Pool, lookup table and rule settings.
        cancel_event (threading.Event): Checked between weeks while writing.
    """
    def __init__(self, store: DutyStore, config: RotationConfig, cancel_event: Optional[threading.Event] = None):
        self.store = store
        self.config = config
        self.cancel_event = cancel_event

    def build_rule(self, lookup: DutyLookup) -> RotationRule:
        if self.config.mode == RotationMode.FIXED:
            return FixedOffsetRotation(
                self.config.pool, self.config.base_year, self.config.base_month, self.config.base_weeks
            )
        return HistoryScanRotation(lookup, self.config.lookback_months, self.config.min_weekdays)

    def nominal_weeks(self, year: int, month: int, lookup: Optional[DutyLookup] = None) -> Dict[str, Optional[int]]:
        """Nominal week per pool instructor, before any conflict handling."""
        weeks = month_weeks(year, month, self.config.min_weekdays)
        rule = self.build_rule(lookup or DutyLookup(self.store))
        return {i: rule.nominal_week(i, year, month, weeks) for i in self.config.pool}

    def has_conflict(self, lookup: DutyLookup, instructor_id: str, week: WorkWeek) -> bool:
        """
        True if the instructor holds any duty other than OD during the week.

        An unreadable date also counts as a conflict.
        """
        for day in week.dates:
            try:
                duties = lookup.duties(instructor_id, day)
            except StoreError:
                return True
            blocking = [d for d in duties if d and d != OD_CODE]
            if blocking:
                logger.warning(f"{instructor_id} has conflict on {day}: {', '.join(blocking)}")
                return True
        return False

    def existing_od_weeks(self, lookup: DutyLookup, instructor_ids: List[str], weeks: List[WorkWeek]) -> Dict[str, int]:
        """First week of the month in which each instructor already holds OD, in instructor order."""
        found: Dict[str, int] = {}
        for instructor_id in instructor_ids:
            for week in weeks:
                if any(self._holds_od(lookup, instructor_id, day) for day in week.dates):
                    found[instructor_id] = week.week_number
                    break
        return found

    def _holds_od(self, lookup: DutyLookup, instructor_id, day) -> bool:
        try:
            return lookup.has_code(instructor_id, day, OD_CODE)
        except StoreError:
            return False

    def plan(self, year: int, month: int, weeks: List[WorkWeek], lookup: DutyLookup, details: List[str]) -> Dict[int, str]:
        """
        Decides which instructor owns each week.

        Returns:
            dict: week_number -> instructor_id for every week that could be filled.
        """
        week_count = len(weeks)
        by_number = {w.week_number: w for w in weeks}
        assignments: Dict[int, str] = {}
        if week_count == 0:
            return assignments

        rule = self.build_rule(lookup)
        candidates = self.config.pool + self.config.reserve

        # --- OD already written this month: nobody gets a second week ---
        settled = set()
        for instructor_id, week_number in self.existing_od_weeks(lookup, candidates, weeks).items():
            settled.add(instructor_id)
            if self.has_conflict(lookup, instructor_id, by_number[week_number]):
                details.append(f"{instructor_id} already holds OD in week {week_number} but has another duty that week; not reassigned")
            elif week_number in assignments:
                details.append(f"{instructor_id} already holds OD in week {week_number}, owned by {assignments[week_number]}")
            else:
                assignments[week_number] = instructor_id

        # --- PHASE 1: nominal week, moving forward on conflicts ---
        for instructor_id in self.config.pool:
            if instructor_id in settled:
                continue
            nominal = rule.nominal_week(instructor_id, year, month, weeks)
            if nominal is None:
                continue

            week_number = ((nominal - 1) % week_count) + 1
            for _ in range(week_count):
                if week_number not in assignments and not self.has_conflict(lookup, instructor_id, by_number[week_number]):
                    assignments[week_number] = instructor_id
                    if week_number != nominal:
                        details.append(f"{instructor_id} moved from week {nominal} to week {week_number}")
                    break
                week_number = (week_number % week_count) + 1
            else:
                logger.warning(f"No available week for {instructor_id} in {year}-{month:02d}")
                details.append(f"No available week for {instructor_id} in {year}-{month:02d}")

        # --- PHASE 2: fill open weeks with anyone still free ---
        for week in weeks:
            if week.week_number in assignments:
                continue
            taken = set(assignments.values()) | settled
            for instructor_id in candidates:
                if instructor_id in taken:
                    continue
                if not self.has_conflict(lookup, instructor_id, week):
                    assignments[week.week_number] = instructor_id
                    details.append(f"Week {week.week_number} filled by {instructor_id}")
                    break
            else:
                logger.warning(f"No instructor available for week {week.week_number} ({_span(week)})")
                details.append(f"No instructor available for week {week.week_number} ({_span(week)})")

        return assignments

    def write_week(self, instructor_id: str, week: WorkWeek, invoked_by: str, result: RotationResult):
        """Writes OD onto each date of the week. Store errors only affect their own date."""
        info = self.config.instructor(instructor_id)

        for day in week.dates:
            try:
                existing = self.store.get_entry(instructor_id, day)
                if existing and OD_CODE in existing.duties:
                    logger.info(f"- OD already exists for {instructor_id} on {day}")
                    result.skipped += 1
                    result.details.append(f"OD already present for {instructor_id} on {day.isoformat()}")
                    continue

                if existing:
                    self.store.upsert(DutyEntryInput(
                        employee_id=instructor_id,
                        date=day,
                        duties=merge_duties(existing.duties, [OD_CODE]),
                        updated_by=invoked_by
                    ))
                    logger.info(f"Updated OD for {instructor_id} on {day}")
                else:
                    self.store.upsert(DutyEntryInput(
                        employee_id=instructor_id,
                        date=day,
                        duties=[OD_CODE],
                        full_name=info.name,
                        rank=info.rank,
                        base=info.base,
                        year=day.year,
                        created_by=invoked_by,
                        updated_by=invoked_by
                    ))
                    logger.info(f"Created OD for {instructor_id} on {day}")

                result.assigned += 1
                result.details.append(f"Assigned OD to {instructor_id} on {day.isoformat()}")
            except StoreError as e:
                logger.error(f"Error writing OD for {instructor_id} on {day}: {e}")
                result.skipped += 1
                result.details.append(f"Failed to write OD for {instructor_id} on {day.isoformat()}: {e}")

    def assign_for_month(self, year: int, month: int, invoked_by: str = "cron") -> RotationResult:
        """
        Runs the OD rotation for one month.

        Safe to re-run: dates that already carry OD are skipped.

        Args:
            year (int): Target year.
            month (int): Target month (1-12).
            invoked_by (str): Stored as created_by/updated_by on written entries.

        Returns:
            RotationResult: Counts, detail lines and the per-week outcome.

        Raises:
            InvalidMonthError: If year/month are out of range.
        """
        weeks = month_weeks(year, month, self.config.min_weekdays)
        logger.info(f"=== Assigning OD for {year}-{month:02d} (executed by {invoked_by}) ===")
        logger.info(f"Found {len(weeks)} weeks in {year}-{month:02d}")

        result = RotationResult(year=year, month=month, total_weeks=len(weeks))
        lookup = DutyLookup(self.store)
        assignments = self.plan(year, month, weeks, lookup, result.details)

        for week in weeks:
            instructor_id = assignments.get(week.week_number)
            result.weeks.append(WeekAssignment(
                week_number=week.week_number,
                start_date=week.start_date,
                end_date=week.end_date,
                dates=week.dates,
                instructor_id=instructor_id
            ))

        for week in weeks:
            if self.cancel_event is not None and self.cancel_event.is_set():
                result.cancelled = True
                result.details.append(f"Run cancelled before week {week.week_number}")
                logger.warning(f"OD rotation for {year}-{month:02d} cancelled before week {week.week_number}")
                break

            instructor_id = assignments.get(week.week_number)
            if instructor_id is None:
                continue
            logger.info(f"Week {week.week_number} ({_span(week)}): {instructor_id}")
            self.write_week(instructor_id, week, invoked_by, result)

        for failure in lookup.failures:
            result.skipped += 1
            result.details.append(failure)

        logger.info(f"=== OD Assignment Complete: {result.assigned} assigned, {result.skipped} skipped ===")
        return result
