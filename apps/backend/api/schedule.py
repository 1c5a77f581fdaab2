from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from database import get_db
from models.schemas import Schedule, Subject, SUBJECTS, SUBJECT_LABELS
from services.pdf_service import generate_schedule_pdf, generate_teacher_pdf
from services.scheduler.errors import SchedulerInputError
from services.scheduler.generator import generate
from services.scheduler.persistence import ScheduleGateway
from services.scheduler.roster import RosterProvider
from services.scheduler.rules import load_rules
from services.scheduler.validator import find_conflicts
from pydantic import BaseModel
from typing import Dict, List, Optional

router = APIRouter(prefix="/schedule", tags=["Schedule"])

class GenerateRequest(BaseModel):
    class_ids: Optional[List[str]] = None
    subject_teachers: Optional[Dict[Subject, List[str]]] = None

@router.post("/generate")
async def generate_schedule(req: GenerateRequest = GenerateRequest(), db: Session = Depends(get_db)):
    """
    Builds a fresh schedule from the roster and the selected teachers.

    - `class_ids`: optional subset of classes (only classes with a level count).
    - `subject_teachers`: teacher ids per subject, in preference order.
      Omitted entirely, every teacher of each subject is used.

    Cells that cannot be filled are returned in `unmet`; the rest of the
    schedule is still usable. The result is kept as the last generated
    schedule so an edit session can start from it.
    """
    rules = load_rules(db)
    provider = RosterProvider(db)
    classes = provider.classes(req.class_ids)
    pools = provider.resolve_pools(req.subject_teachers)

    try:
        result = generate(classes, pools, rules.max_classes_per_teacher, rules.time_slots())
    except SchedulerInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    ScheduleGateway(db, rules).record_generated(result.schedule)

    return {
        "status": "success",
        "time_slots": result.schedule.time_slots,
        "subjects": [{"key": s, "label": SUBJECT_LABELS[s]} for s in SUBJECTS],
        "schedule": result.schedule,
        "unmet": result.unmet,
    }

@router.post("/validate")
async def validate_schedule(schedule: Schedule, db: Session = Depends(get_db)):
    """Checks a proposed schedule against the stored teachers. Never persists."""
    rules = load_rules(db)
    teachers = RosterProvider(db).teacher_directory()
    conflicts = list(find_conflicts(schedule, teachers, rules.max_classes_per_teacher))
    return {
        "ok": not conflicts,
        "message": conflicts[0].message if conflicts else "Schedule is valid. Not persisted.",
        "conflicts": conflicts,
        "conflict_count": len(conflicts),
    }

@router.post("/save")
async def save_schedule(schedule: Schedule, db: Session = Depends(get_db)):
    result = ScheduleGateway(db, load_rules(db)).save(schedule)
    if not result.success:
        raise HTTPException(status_code=422, detail=result.message)
    return result

@router.get("/current")
async def get_current_schedule(db: Session = Depends(get_db)):
    schedule = ScheduleGateway(db).load_current()
    return {"schedule": schedule}

@router.get("/current/pdf")
async def get_current_schedule_pdf(db: Session = Depends(get_db)):
    schedule = ScheduleGateway(db).load_current()
    if schedule is None:
        raise HTTPException(status_code=404, detail="No schedule has been saved yet")
    return _pdf_response(schedule, db, "schedule.pdf")

@router.get("/current/teacher/{teacher_id}/pdf")
async def get_teacher_schedule_pdf(teacher_id: str, db: Session = Depends(get_db)):
    schedule = ScheduleGateway(db).load_current()
    if schedule is None:
        raise HTTPException(status_code=404, detail="No schedule has been saved yet")
    teacher = RosterProvider(db).teacher_directory().get(teacher_id)
    if teacher is None:
        raise HTTPException(status_code=404, detail="Teacher not found")

    pdf_buffer = generate_teacher_pdf(teacher.name, schedule, teacher_id)
    return StreamingResponse(
        pdf_buffer,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=plan_{teacher_id}.pdf"}
    )

@router.post("/export/pdf")
async def export_pdf(schedule: Schedule, db: Session = Depends(get_db)):
    """Renders any schedule (e.g. a freshly generated one) as PDF without saving it."""
    return _pdf_response(schedule, db, "schedule_draft.pdf")

def _pdf_response(schedule: Schedule, db: Session, filename: str):
    names = {t.id: t.name for t in RosterProvider(db).teachers()}
    pdf_buffer = generate_schedule_pdf(schedule, names)
    return StreamingResponse(
        pdf_buffer,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )

@router.get("/assignments/class/{class_id}")
async def get_class_assignments(class_id: str, db: Session = Depends(get_db)):
    return {"class_id": class_id, "assignments": ScheduleGateway(db).assignments_for_class(class_id)}

@router.get("/assignments/teacher/{teacher_id}")
async def get_teacher_assignments(teacher_id: str, db: Session = Depends(get_db)):
    return {"teacher_id": teacher_id, "classes": ScheduleGateway(db).classes_for_teacher(teacher_id)}
