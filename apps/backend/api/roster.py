from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from database import get_db
from services.scheduler.roster import RosterProvider

router = APIRouter(prefix="/roster", tags=["Roster"])

@router.get("/")
async def get_roster(db: Session = Depends(get_db)):
    """Classes to schedule (ordered by level and stage) and teachers grouped by subject."""
    return RosterProvider(db).fetch_roster()

@router.get("/teachers-by-subject")
async def get_teachers_by_subject(db: Session = Depends(get_db)):
    return {"teachers_by_subject": RosterProvider(db).teachers_by_subject()}
