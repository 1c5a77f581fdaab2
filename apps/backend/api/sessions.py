from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from database import get_db
from models.schemas import Schedule, TimeSlot
from services.scheduler.errors import EditSessionStateError, UnknownClassError
from services.scheduler.persistence import ScheduleGateway
from services.scheduler.roster import RosterProvider
from services.scheduler.rules import load_rules
from services.scheduler.session import EditSession, EditSessionStore
from pydantic import BaseModel
from typing import Literal, Optional

router = APIRouter(prefix="/schedule/sessions", tags=["Edit Sessions"])

# One process, one admin at a time; sessions do not survive a restart
store = EditSessionStore()

class StartSessionRequest(BaseModel):
    schedule: Optional[Schedule] = None
    source: Literal["generated", "current"] = "generated"

class SwapRequest(BaseModel):
    source_class_id: str
    source_slot: TimeSlot
    target_class_id: str
    target_slot: TimeSlot

class AssignRequest(BaseModel):
    class_id: str
    slot: TimeSlot
    teacher_id: Optional[str] = None

def _get_session(session_id: str) -> EditSession:
    try:
        return store.get(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Edit session not found")

def _view(session_id: str, session: EditSession, message: Optional[str] = None):
    return {
        "session_id": session_id,
        "state": session.state,
        "schedule": session.schedule,
        "message": message,
    }

def _run_edit(session_id: str, edit):
    """Applies one edit; maps input and state errors to 404/409 and rejections to 422."""
    session = _get_session(session_id)
    try:
        result = edit(session)
    except UnknownClassError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EditSessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not result.ok:
        raise HTTPException(status_code=422, detail=result.message)
    return _view(session_id, session)

@router.post("")
async def start_session(req: StartSessionRequest = StartSessionRequest(), db: Session = Depends(get_db)):
    """
    Opens an edit session and enters edit mode.

    The baseline is the schedule in the request body when given, otherwise
    the last generated (`source=generated`) or saved (`source=current`) one.
    The session is closed by a successful submit or by DELETE.
    """
    gateway = ScheduleGateway(db)
    baseline = req.schedule
    if baseline is None:
        baseline = gateway.load_generated() if req.source == "generated" else gateway.load_current()
    if baseline is None:
        raise HTTPException(status_code=404, detail=f"No {req.source} schedule to edit")

    rules = load_rules(db)
    teachers = RosterProvider(db).teacher_directory()
    session_id = store.create(baseline, teachers, rules.max_classes_per_teacher)
    session = store.get(session_id)
    session.begin_edit()
    return _view(session_id, session)

@router.get("/{session_id}")
async def get_session(session_id: str):
    return _view(session_id, _get_session(session_id))

@router.post("/{session_id}/begin")
async def begin_edit(session_id: str):
    session = _get_session(session_id)
    session.begin_edit()
    return _view(session_id, session)

@router.post("/{session_id}/cancel")
async def cancel_edit(session_id: str):
    session = _get_session(session_id)
    session.cancel_edit()
    return _view(session_id, session)

@router.post("/{session_id}/swap")
async def swap_cells(session_id: str, req: SwapRequest):
    return _run_edit(session_id, lambda s: s.propose_swap(
        req.source_class_id, req.source_slot, req.target_class_id, req.target_slot
    ))

@router.post("/{session_id}/assign")
async def assign_teacher(session_id: str, req: AssignRequest):
    return _run_edit(session_id, lambda s: s.propose_assign(req.class_id, req.slot, req.teacher_id))

@router.post("/{session_id}/submit")
async def submit_session(session_id: str, db: Session = Depends(get_db)):
    """
    Saves the working copy as the current schedule and closes the session.

    Cancelled sessions stay open for another `begin` until DELETE.
    """
    session = _get_session(session_id)
    try:
        result = session.submit(ScheduleGateway(db, load_rules(db)))
    except EditSessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not result.success:
        raise HTTPException(status_code=422, detail=result.message)
    store.discard(session_id)
    return _view(session_id, session, result.message)

@router.delete("/{session_id}")
async def close_session(session_id: str):
    if not store.discard(session_id):
        raise HTTPException(status_code=404, detail="Edit session not found")
    return {"status": "deleted", "session_id": session_id}
