import logging
from datetime import datetime
from typing import Callable, Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session
from database import get_db
from settings import Settings, get_settings
from services.cron import local_now, monthly_target, utc_now
from services.rotation.locks import MonthLockRegistry
from api.rotation import get_run_locks, run_rotation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["Cron"])

def get_clock() -> Callable[[], datetime]:
    return utc_now

def _od_task(db, locks, year, month, invoked_by, task_name):
    target = f"{year}-{month:02d}"
    try:
        result = run_rotation(db, locks, year, month, invoked_by)
    except Exception as e:
        logger.exception(f"OD rotation error for {target}")
        return {"task": task_name, "status": "error", "targetMonth": target, "error": str(e)}
    logger.info(f"OD rotation completed for {target}: {result.assigned} assigned, {result.skipped} skipped")
    return {"task": task_name, "status": "success", "targetMonth": target, "result": result.model_dump(mode="json")}

@router.post("/od-rotation")
def od_rotation_cron(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    locks: MonthLockRegistry = Depends(get_run_locks),
    clock: Callable[[], datetime] = Depends(get_clock)
):
    """
    Daily scheduled trigger.

    Writes next month's OD rotation when today (in CRON_TIMEZONE) is the 1st;
    on other days the task is reported as skipped.
    Requires `Authorization: Bearer <CRON_SECRET>`.
    """
    if not settings.cron_secret or authorization != f"Bearer {settings.cron_secret}":
        logger.warning("Unauthorized cron request")
        raise HTTPException(status_code=401, detail="Unauthorized")

    now = clock()
    local = local_now(now, settings.cron_timezone)
    tasks = []

    target = monthly_target(local)
    if target:
        year, month = target
        logger.info(f"Assigning OD duties for {year}-{month:02d}")
        tasks.append(_od_task(db, locks, year, month, "system-cron", "OD Rotation"))
    else:
        logger.info(f"OD rotation skipped (not 1st of month, today is day {local.day})")
        tasks.append({
            "task": "OD Rotation",
            "status": "skipped",
            "reason": f"Not 1st of month (today is day {local.day})"
        })

    return {
        "success": True,
        "message": "Cron job completed",
        "executed_at": now.isoformat(),
        "local_time": local.isoformat(),
        "tasks": tasks
    }

@router.get("/od-rotation")
def od_rotation_manual(
    secret: Optional[str] = None,
    force: bool = False,
    force_od: bool = Query(False, alias="forceOD"),
    year: Optional[int] = None,
    month: Optional[int] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    locks: MonthLockRegistry = Depends(get_run_locks),
    clock: Callable[[], datetime] = Depends(get_clock)
):
    """
    Manual trigger for testing the scheduled job.

    Runs the rotation when `force=true` (or `forceOD=true`) or on the 1st, for the given
    year/month (defaults to the current local month).
    """
    if not settings.cron_secret or secret != settings.cron_secret:
        logger.warning("Unauthorized manual cron request")
        raise HTTPException(status_code=401, detail="Unauthorized")

    now = clock()
    local = local_now(now, settings.cron_timezone)
    tasks = []

    if force or force_od or local.day == 1:
        target_year = year if year is not None else local.year
        target_month = month if month is not None else local.month
        tasks.append(_od_task(db, locks, target_year, target_month, "manual-test", "OD Rotation (Test)"))

    return {
        "executed_at": now.isoformat(),
        "local_time": local.isoformat(),
        "test_mode": True,
        "tasks": tasks
    }
