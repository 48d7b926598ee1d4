from sqlalchemy.orm import Session
from database import DutyConfigDB
from models.schemas import RotationConfig

ROTATION_CONFIG_KEY = "od_rotation"

DEFAULT_ROTATION_CONFIG = {
    "pool": ["22018", "36639", "39426", "51892"],
    "reserve": ["39462"],
    "instructors": {}, # Filled via /api/config/save; IDs are shown when no name is set
    "mode": "history",
    "min_weekdays": 3,
    "lookback_months": 6,
    "base_year": 2024,
    "base_month": 9,
    "base_weeks": {"22018": 1, "36639": 2, "39426": 3, "51892": 4}
}

def load_rotation_config(db: Session) -> RotationConfig:
    item = db.query(DutyConfigDB).filter(DutyConfigDB.key == ROTATION_CONFIG_KEY).first()
    return RotationConfig.model_validate(item.value_json if item and item.value_json else DEFAULT_ROTATION_CONFIG)
