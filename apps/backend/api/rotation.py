from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from database import get_db
from models.schemas import AssignRequest, CancelRequest, RotationResult
from services.rotation.config import load_rotation_config
from services.rotation.engine import RotationScheduler
from services.rotation.locks import MonthLockRegistry, RotationInProgress
from services.rotation.store import DutyLookup, SqlDutyStore
from services.rotation.weeks import InvalidMonthError, month_weeks, validate_month

router = APIRouter(prefix="/rotation", tags=["Rotation"])

def get_run_locks(request: Request) -> MonthLockRegistry:
    return request.app.state.run_locks

def run_rotation(db: Session, locks: MonthLockRegistry, year: int, month: int, invoked_by: str) -> RotationResult:
    """
    Runs the OD rotation for one month under the per-month lock.

    Raises:
        InvalidMonthError: Bad year/month.
        RotationInProgress: A run for the same month is still going.
    """
    validate_month(year, month)
    with locks.hold(year, month) as cancel_event:
        scheduler = RotationScheduler(SqlDutyStore(db), load_rotation_config(db), cancel_event=cancel_event)
        return scheduler.assign_for_month(year, month, invoked_by)

@router.post("/assign", response_model=RotationResult)
def assign_month(req: AssignRequest, db: Session = Depends(get_db), locks: MonthLockRegistry = Depends(get_run_locks)):
    """
    Assigns OD for a month on demand.

    Returns 422 for an invalid month and 409 while the same month is already running.
    """
    try:
        return run_rotation(db, locks, req.year, req.month, req.invoked_by)
    except InvalidMonthError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except RotationInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))

@router.post("/cancel")
async def cancel_month(req: CancelRequest, locks: MonthLockRegistry = Depends(get_run_locks)):
    """
    Stops a running rotation before its next week is written.

    Returns 404 when no run for that month is in progress.
    """
    if not locks.cancel(req.year, req.month):
        raise HTTPException(status_code=404, detail=f"No OD rotation running for {req.year}-{req.month:02d}")
    return {"year": req.year, "month": req.month, "cancelled": True}

@router.get("/weeks")
async def list_weeks(year: int, month: int, db: Session = Depends(get_db)):
    config = load_rotation_config(db)
    try:
        weeks = month_weeks(year, month, config.min_weekdays)
    except InvalidMonthError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"year": year, "month": month, "min_weekdays": config.min_weekdays, "weeks": weeks}

@router.get("/nominal")
async def nominal_weeks(year: int, month: int, db: Session = Depends(get_db)):
    """
    Read-only preview of each pool instructor's nominal week, before conflicts.
    """
    config = load_rotation_config(db)
    scheduler = RotationScheduler(SqlDutyStore(db), config)
    lookup = DutyLookup(scheduler.store)
    try:
        nominal = scheduler.nominal_weeks(year, month, lookup)
    except InvalidMonthError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {
        "year": year,
        "month": month,
        "mode": config.mode.value,
        "nominal_weeks": nominal,
        "read_errors": lookup.failures
    }
