from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from database import get_db, AppConfigDB
from models.schemas import ScheduleRules
from services.scheduler.rules import RULES_KEY, load_rules
from pydantic import BaseModel, ValidationError
from typing import Any

router = APIRouter(prefix="/config", tags=["Config"])

class ConfigItem(BaseModel):
    key: str
    value: Any

@router.get("/rules")
async def get_rules(db: Session = Depends(get_db)):
    return load_rules(db)

@router.get("/{key}")
async def get_config(key: str, db: Session = Depends(get_db)):
    item = db.query(AppConfigDB).filter(AppConfigDB.key == key).first()
    if not item:
        return {"key": key, "value": None}
    return {"key": item.key, "value": item.value_json}

@router.post("/save")
async def save_config(item: ConfigItem, db: Session = Depends(get_db)):
    """
    Creates or updates one configuration entry.

    `schedule_rules` must parse as ScheduleRules; it is stored normalized.
    """
    value = item.value
    if item.key == RULES_KEY:
        try:
            value = ScheduleRules.model_validate(item.value).model_dump(mode="json")
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=str(e))

    db_item = db.query(AppConfigDB).filter(AppConfigDB.key == item.key).first()
    if db_item:
        db_item.value_json = value
    else:
        db_item = AppConfigDB(key=item.key, value_json=value)
        db.add(db_item)

    db.commit()
    return {"status": "saved", "key": item.key}
