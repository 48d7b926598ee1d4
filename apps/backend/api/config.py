from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from database import get_db, DutyConfigDB
from models.schemas import RotationConfig
from services.rotation.config import ROTATION_CONFIG_KEY
from pydantic import BaseModel, ValidationError
from typing import Any

router = APIRouter(prefix="/config", tags=["Config"])

class ConfigItem(BaseModel):
    key: str
    value: Any

@router.get("/{key}")
async def get_config(key: str, db: Session = Depends(get_db)):
    item = db.query(DutyConfigDB).filter(DutyConfigDB.key == key).first()
    if not item:
        return {"key": key, "value": None}
    return {"key": item.key, "value": item.value_json}

@router.post("/save")
async def save_config(item: ConfigItem, db: Session = Depends(get_db)):
    value = item.value
    if item.key == ROTATION_CONFIG_KEY:
        # Rotation config must parse before it is stored
        try:
            value = RotationConfig.model_validate(item.value).model_dump(mode="json")
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    db_item = db.query(DutyConfigDB).filter(DutyConfigDB.key == item.key).first()
    if db_item:
        db_item.value_json = value
    else:
        db_item = DutyConfigDB(key=item.key, value_json=value)
        db.add(db_item)

    db.commit()
    return {"status": "saved", "key": item.key}
