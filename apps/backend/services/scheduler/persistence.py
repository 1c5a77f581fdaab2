import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import AppConfigDB, ClassRoomDB, TeacherSubjectAssignmentDB
from models.schemas import SaveResult, Schedule, ScheduleRules, Subject, SUBJECTS
from services.scheduler.roster import RosterProvider
from services.scheduler.validator import validate

logger = logging.getLogger(__name__)

CURRENT_SCHEDULE_KEY = "current_schedule"
LAST_GENERATED_KEY = "last_generated_schedule"


class ScheduleGateway:
    """
    Durable storage of "the current schedule".

    The whole schedule is kept as JSON in the config table (so slot layout
    survives manual edits), and each class's subject teachers are also
    written to `teacher_subject_assignments` for per-class and per-teacher
    lookups.
    """
    def __init__(self, db: Session, rules: Optional[ScheduleRules] = None):
        self.db = db
        self.rules = rules or ScheduleRules()

    def _get_item(self, key: str) -> Optional[AppConfigDB]:
        return self.db.query(AppConfigDB).filter(AppConfigDB.key == key).first()

    def _put_item(self, key: str, value):
        item = self._get_item(key)
        if item:
            item.value_json = value
        else:
            self.db.add(AppConfigDB(key=key, value_json=value))

    def save(self, schedule: Schedule) -> SaveResult:
        """
        Validates `schedule` against the stored teachers and persists it.

        Nothing is written unless every check passes.
        """
        if not schedule.rows:
            return SaveResult(success=False, message="Schedule has no rows")

        teachers = RosterProvider(self.db).teacher_directory()
        result = validate(schedule, teachers, self.rules.max_classes_per_teacher)
        if not result.ok:
            logger.info("Schedule save rejected: %s", result.message)
            return SaveResult(success=False, message=result.message)

        class_ids = [row.classroom.id for row in schedule.rows]
        existing = {
            c.id for c in self.db.query(ClassRoomDB.id).filter(ClassRoomDB.id.in_(class_ids)).all()
        }
        missing = [cid for cid in class_ids if cid not in existing]
        if missing:
            return SaveResult(success=False, message=f"Unknown class {missing[0]}")

        try:
            self._put_item(CURRENT_SCHEDULE_KEY, schedule.model_dump(mode="json"))

            # Classes dropped from the schedule lose their assignments
            (
                self.db.query(TeacherSubjectAssignmentDB)
                .filter(TeacherSubjectAssignmentDB.class_id.notin_(class_ids))
                .delete(synchronize_session=False)
            )

            for row in schedule.rows:
                for cell in row.cells.values():
                    assignment = self.db.get(TeacherSubjectAssignmentDB, (row.classroom.id, cell.subject.value))
                    if assignment:
                        assignment.teacher_id = cell.teacher_id
                    else:
                        self.db.add(TeacherSubjectAssignmentDB(
                            class_id=row.classroom.id,
                            subject=cell.subject.value,
                            teacher_id=cell.teacher_id,
                        ))

            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Schedule save failed, rolled back")
            raise

        logger.info("Saved schedule with %d classes", len(schedule.rows))
        return SaveResult(success=True, message="Schedule saved")

    def load_current(self) -> Optional[Schedule]:
        item = self._get_item(CURRENT_SCHEDULE_KEY)
        if not item or not item.value_json:
            return None
        return Schedule.model_validate(item.value_json)

    def record_generated(self, schedule: Schedule):
        self._put_item(LAST_GENERATED_KEY, schedule.model_dump(mode="json"))
        self.db.commit()

    def load_generated(self) -> Optional[Schedule]:
        item = self._get_item(LAST_GENERATED_KEY)
        if not item or not item.value_json:
            return None
        return Schedule.model_validate(item.value_json)

    def assignments_for_class(self, class_id: str) -> Dict[Subject, Optional[str]]:
        rows = (
            self.db.query(TeacherSubjectAssignmentDB)
            .filter(TeacherSubjectAssignmentDB.class_id == class_id)
            .all()
        )
        saved = {r.subject: r.teacher_id for r in rows}
        return {s: saved.get(s.value) for s in SUBJECTS}

    def classes_for_teacher(self, teacher_id: str) -> List[dict]:
        rows = (
            self.db.query(TeacherSubjectAssignmentDB)
            .filter(TeacherSubjectAssignmentDB.teacher_id == teacher_id)
            .order_by(TeacherSubjectAssignmentDB.class_id)
            .all()
        )
        return [{"class_id": r.class_id, "subject": r.subject} for r in rows]
