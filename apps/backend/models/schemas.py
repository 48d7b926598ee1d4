import datetime as dt
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Dict
from pydantic import BaseModel, ConfigDict, Field, model_validator

OD_CODE = "OD"

class RotationMode(str, Enum):
    HISTORY = "history" # Backward stepping from persisted OD weeks
    FIXED = "fixed"     # Fixed monthly offset from a base month

class InstructorInfo(BaseModel):
    name: str = ""
    rank: str = ""
    base: str = ""

class RotationConfig(BaseModel):
    """
    Domain configuration for the OD rotation, stored under the `od_rotation` config key.

    Attributes:
        pool: Ordered rotation pool. Order decides precedence in both search phases.
        reserve: Instructors outside the rotation who only fill weeks left open.
        instructors: Static lookup of display name, rank and base per instructor ID.
        min_weekdays: In-month weekdays a Monday-based week needs to be scheduled.
        lookback_months: How far back the history scan looks for a prior OD week.
        base_year, base_month, base_weeks: Baseline for the fixed-offset rule.
    """
    pool: List[str]
    reserve: List[str] = []
    instructors: Dict[str, InstructorInfo] = {}
    mode: RotationMode = RotationMode.HISTORY
    min_weekdays: int = Field(3, ge=1, le=5)
    lookback_months: int = Field(6, ge=0, le=24)
    base_year: int = 2024
    base_month: int = Field(9, ge=1, le=12)
    base_weeks: Dict[str, int] = {}

    @model_validator(mode="after")
    def check_pool(self):
        if not self.pool:
            raise ValueError("pool must contain at least one instructor")
        everyone = self.pool + self.reserve
        if len(set(everyone)) != len(everyone):
            raise ValueError("pool and reserve must not repeat an instructor")
        for instructor_id, week in self.base_weeks.items():
            if week < 1:
                raise ValueError(f"base week for {instructor_id} must be >= 1")
        return self

    def instructor(self, instructor_id: str) -> InstructorInfo:
        info = self.instructors.get(instructor_id) or InstructorInfo()
        if not info.name:
            info = info.model_copy(update={"name": instructor_id})
        return info

class WorkWeek(BaseModel):
    week_number: int
    start_date: date
    end_date: date
    dates: List[date]

class DutyEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    employee_id: str
    full_name: str = ""
    rank: str = ""
    base: str = ""
    date: dt.date
    year: Optional[int] = None
    duties: List[str] = []
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class DutyEntryInput(BaseModel):
    # Fields left unset are preserved when the entry already exists
    employee_id: str
    date: dt.date
    duties: Optional[List[str]] = None
    full_name: Optional[str] = None
    rank: Optional[str] = None
    base: Optional[str] = None
    year: Optional[int] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None

class WeekAssignment(BaseModel):
    week_number: int
    start_date: date
    end_date: date
    dates: List[date]
    instructor_id: Optional[str] = None

class RotationResult(BaseModel):
    year: int
    month: int
    total_weeks: int = 0
    assigned: int = 0
    skipped: int = 0
    details: List[str] = []
    weeks: List[WeekAssignment] = []
    cancelled: bool = False

class AssignRequest(BaseModel):
    year: int
    month: int
    invoked_by: str = "admin"

class CancelRequest(BaseModel):
    year: int
    month: int
