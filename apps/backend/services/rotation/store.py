import logging
from datetime import date
from typing import Dict, List, Optional, Protocol, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from database import DutyAssignmentDB
from models.schemas import DutyEntry, DutyEntryInput
from services.rotation.weeks import shift_month, validate_month

logger = logging.getLogger(__name__)

class StoreError(Exception):
    """A duty store read or write failed."""

class DutyStore(Protocol):
    def get_entry(self, instructor_id: str, day: date) -> Optional[DutyEntry]: ...

    def upsert(self, entry: DutyEntryInput) -> DutyEntry: ...

def merge_duties(current: Optional[List[str]], extra: List[str]) -> List[str]:
    merged = []
    for code in list(current or []) + list(extra):
        if code and code not in merged:
            merged.append(code)
    return merged

def _to_entry(row: DutyAssignmentDB) -> DutyEntry:
    return DutyEntry(
        id=row.id,
        employee_id=row.employee_id,
        full_name=row.full_name or "",
        rank=row.rank or "",
        base=row.base or "",
        date=row.date,
        year=row.year,
        duties=list(row.duties or []),
        created_by=row.created_by,
        updated_by=row.updated_by,
        created_at=row.created_at,
        updated_at=row.updated_at
    )

class SqlDutyStore:
    """
    Duty store backed by the `duty_assignments` table.

    Every database error is rolled back and re-raised as `StoreError` so the
    scheduler can handle failures per (instructor, date).
    """
    def __init__(self, db: Session):
        self.db = db

    def get_entry(self, instructor_id: str, day: date) -> Optional[DutyEntry]:
        try:
            row = self._find(instructor_id, day)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"read failed for {instructor_id} on {day}: {e}") from e
        return _to_entry(row) if row else None

    def upsert(self, entry: DutyEntryInput) -> DutyEntry:
        changes = entry.model_dump(exclude_unset=True, exclude_none=True)
        changes.pop("employee_id", None)
        changes.pop("date", None)
        if "duties" in changes:
            changes["duties"] = merge_duties(changes["duties"], [])

        try:
            row = self._find(entry.employee_id, entry.date)
            if row:
                # created_by belongs to the first writer
                changes.pop("created_by", None)
                for field, value in changes.items():
                    setattr(row, field, value)
            else:
                changes.setdefault("year", entry.date.year)
                changes.setdefault("duties", [])
                row = DutyAssignmentDB(employee_id=entry.employee_id, date=entry.date, **changes)
                self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"upsert failed for {entry.employee_id} on {entry.date}: {e}") from e
        return _to_entry(row)

    def list_month(self, year: int, month: int) -> List[DutyEntry]:
        validate_month(year, month)
        next_year, next_month = shift_month(year, month, 1)
        rows = self.db.query(DutyAssignmentDB).filter(
            DutyAssignmentDB.date >= date(year, month, 1),
            DutyAssignmentDB.date < date(next_year, next_month, 1)
        ).order_by(DutyAssignmentDB.date, DutyAssignmentDB.employee_id).all()
        return [_to_entry(r) for r in rows]

    def delete_empty(self) -> int:
        """Deletes entries whose duty list is empty. Returns the number removed."""
        rows = self.db.query(DutyAssignmentDB).all()
        empty = [r for r in rows if not r.duties]
        for row in empty:
            self.db.delete(row)
        self.db.commit()
        return len(empty)

    def delete_outside_years(self, min_year: int, max_year: int) -> int:
        """Deletes entries dated before Jan 1 of min_year or after Dec 31 of max_year."""
        deleted = self.db.query(DutyAssignmentDB).filter(
            (DutyAssignmentDB.date < date(min_year, 1, 1)) | (DutyAssignmentDB.date > date(max_year, 12, 31))
        ).delete(synchronize_session=False)
        self.db.commit()
        return deleted

    def _find(self, instructor_id: str, day: date) -> Optional[DutyAssignmentDB]:
        return self.db.query(DutyAssignmentDB).filter(
            DutyAssignmentDB.employee_id == instructor_id,
            DutyAssignmentDB.date == day
        ).first()

class DutyLookup:
    """
    Per-run read cache in front of a DutyStore.

    Each (instructor, date) pair hits the store at most once. Failed reads are
    remembered too, recorded once in `failures`, and raise `StoreError` on every
    access so callers can treat the date as unknown.
    """
    def __init__(self, store: DutyStore):
        self.store = store
        self.failures: List[str] = []
        self._cache: Dict[Tuple[str, date], List[str]] = {}
        self._failed: Dict[Tuple[str, date], StoreError] = {}

    def duties(self, instructor_id: str, day: date) -> List[str]:
        key = (instructor_id, day)
        if key in self._failed:
            raise self._failed[key]
        if key not in self._cache:
            try:
                entry = self.store.get_entry(instructor_id, day)
            except StoreError as e:
                logger.error(f"Duty lookup failed for {instructor_id} on {day}: {e}")
                self._failed[key] = e
                self.failures.append(f"Could not read duties for {instructor_id} on {day.isoformat()}: {e}")
                raise
            self._cache[key] = list(entry.duties) if entry else []
        return self._cache[key]

    def has_code(self, instructor_id: str, day: date, code: str) -> bool:
        return code in self.duties(instructor_id, day)
