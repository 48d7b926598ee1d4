import logging
from datetime import datetime
from typing import Callable, List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from database import get_db
from models.schemas import DutyEntry
from settings import Settings, get_settings
from services.cron import local_now
from services.rotation.store import SqlDutyStore
from services.rotation.weeks import InvalidMonthError
from api.cron import get_clock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/duties", tags=["Duties"])

# Records before this year are never kept, whatever the current date
KEEP_FROM_YEAR = 2025

def kept_year_range(current_year: int):
    return max(KEEP_FROM_YEAR, current_year - 1), current_year + 1

@router.get("/", response_model=List[DutyEntry])
async def list_duties(year: int, month: int, db: Session = Depends(get_db)):
    try:
        return SqlDutyStore(db).list_month(year, month)
    except InvalidMonthError as e:
        raise HTTPException(status_code=422, detail=str(e))

@router.post("/cleanup")
async def cleanup_duties(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock)
):
    """
    Deletes duty entries with an empty duty list (equivalent to "no duty"),
    then entries outside the kept year range: from max(2025, current year - 1)
    to current year + 1, in CRON_TIMEZONE.
    """
    store = SqlDutyStore(db)
    min_year, max_year = kept_year_range(local_now(clock(), settings.cron_timezone).year)

    empty_deleted = store.delete_empty()
    logger.info(f"Deleted {empty_deleted} entries with empty duties")

    old_deleted = store.delete_outside_years(min_year, max_year)
    logger.info(f"Deleted {old_deleted} records outside {min_year} to {max_year}")

    return {
        "status": "success",
        "empty_duties_deleted": empty_deleted,
        "old_records_deleted": old_deleted,
        "year_range": f"{min_year} to {max_year}"
    }
