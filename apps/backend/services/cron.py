from datetime import datetime, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo
from services.rotation.weeks import shift_month

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def local_now(now: datetime, tz_name: str) -> datetime:
    return now.astimezone(ZoneInfo(tz_name))

def monthly_target(local: datetime) -> Optional[Tuple[int, int]]:
    """
    The month the scheduled job should fill.

    The rotation for next month is written on the 1st of the current month;
    on every other day there is nothing to do.
    """
    if local.day != 1:
        return None
    return shift_month(local.year, local.month, 1)
