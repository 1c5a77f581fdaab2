from sqlalchemy.orm import Session

from database import AppConfigDB
from models.schemas import ScheduleRules

RULES_KEY = "schedule_rules"


def load_rules(db: Session) -> ScheduleRules:
    """Scheduling rules from the config table; missing fields fall back to defaults."""
    item = db.query(AppConfigDB).filter(AppConfigDB.key == RULES_KEY).first()
    if not item or not item.value_json:
        return ScheduleRules()
    return ScheduleRules.model_validate(item.value_json)
