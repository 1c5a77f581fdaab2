import logging
import uuid
from enum import Enum
from typing import Dict, Optional, Protocol

from models.schemas import (
    MAX_CLASSES_PER_TEACHER,
    SaveResult,
    Schedule,
    ScheduleRow,
    Teacher,
    TimeSlot,
    ValidationResult,
)
from services.scheduler.errors import EditSessionStateError, SchedulerInputError, UnknownClassError
from services.scheduler.validator import TeacherLookup, index_teachers, validate

logger = logging.getLogger(__name__)


class ScheduleSink(Protocol):
    def save(self, schedule: Schedule) -> SaveResult: ...


class EditState(str, Enum):
    CLEAN = "clean"
    EDITING = "editing"


def _slot(value) -> TimeSlot:
    try:
        return TimeSlot(value)
    except ValueError:
        raise SchedulerInputError(f"Unknown time slot {value!r}") from None


class EditSession:
    """
    Interactive editing of one schedule.

    Keeps the baseline (last generated or saved schedule) apart from the
    working copy. Every edit is applied to a simulated copy, the whole
    schedule is validated, and only a valid result replaces the working
    copy. A rejected edit leaves the working copy untouched.
    """
    def __init__(self, baseline: Schedule, teachers: TeacherLookup,
                 max_classes_per_teacher: int = MAX_CLASSES_PER_TEACHER):
        self.baseline = baseline.model_copy(deep=True)
        self.teachers: Dict[str, Teacher] = index_teachers(teachers)
        self.max_classes_per_teacher = max_classes_per_teacher
        self.working: Optional[Schedule] = None

    @property
    def state(self) -> EditState:
        return EditState.EDITING if self.working is not None else EditState.CLEAN

    @property
    def schedule(self) -> Schedule:
        return self.working if self.working is not None else self.baseline

    def begin_edit(self):
        # Already editing: keep the edits made so far
        if self.working is None:
            self.working = self.baseline.model_copy(deep=True)

    def cancel_edit(self):
        self.working = None

    def _require_editing(self):
        if self.working is None:
            raise EditSessionStateError("Edit mode is not active; call begin_edit first")

    def _validate(self, schedule: Schedule) -> ValidationResult:
        return validate(schedule, self.teachers, self.max_classes_per_teacher)

    @staticmethod
    def _row(schedule: Schedule, class_id: str) -> ScheduleRow:
        row = schedule.find_row(class_id)
        if row is None:
            raise UnknownClassError(class_id)
        return row

    def _commit_if_valid(self, simulated: Schedule, action: str) -> ValidationResult:
        result = self._validate(simulated)
        if result.ok:
            self.working = simulated
        else:
            logger.info("Rejected %s: %s", action, result.message)
        return result

    def propose_swap(self, source_class_id: str, source_slot, target_class_id: str, target_slot) -> ValidationResult:
        """
        Exchanges the full contents (subject and teacher) of two cells.

        Raises:
            UnknownClassError: Either class is not in the schedule.
            EditSessionStateError: The session is not in edit mode.
        """
        self._require_editing()
        source_slot, target_slot = _slot(source_slot), _slot(target_slot)
        self._row(self.working, source_class_id)
        self._row(self.working, target_class_id)

        if source_class_id == target_class_id and source_slot == target_slot:
            return ValidationResult(ok=True)

        simulated = self.working.model_copy(deep=True)
        source_row = self._row(simulated, source_class_id)
        target_row = self._row(simulated, target_class_id)
        source_row.cells[source_slot], target_row.cells[target_slot] = (
            target_row.cells[target_slot], source_row.cells[source_slot]
        )
        return self._commit_if_valid(
            simulated, f"swap {source_class_id}/{source_slot.value} <-> {target_class_id}/{target_slot.value}"
        )

    def propose_assign(self, class_id: str, slot, teacher_id: Optional[str]) -> ValidationResult:
        """Puts `teacher_id` (or nobody, when None) into one cell, keeping its subject."""
        self._require_editing()
        slot = _slot(slot)
        self._row(self.working, class_id)

        simulated = self.working.model_copy(deep=True)
        self._row(simulated, class_id).cells[slot].teacher_id = teacher_id or None
        return self._commit_if_valid(simulated, f"assign {teacher_id} to {class_id}/{slot.value}")

    def submit(self, gateway: ScheduleSink) -> SaveResult:
        """
        Re-validates the working copy and hands it to `gateway`.

        On success the working copy becomes the new baseline and the session
        is clean again. On failure the session stays in edit mode unchanged.
        """
        self._require_editing()
        result = self._validate(self.working)
        if not result.ok:
            return SaveResult(success=False, message=result.message)

        saved = gateway.save(self.working)
        if saved.success:
            self.baseline = self.working
            self.working = None
        return saved


class EditSessionStore:
    """In-process registry of edit sessions for the HTTP layer."""
    def __init__(self):
        self._sessions: Dict[str, EditSession] = {}

    def create(self, baseline: Schedule, teachers: TeacherLookup,
               max_classes_per_teacher: int = MAX_CLASSES_PER_TEACHER) -> str:
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = EditSession(baseline, teachers, max_classes_per_teacher)
        return session_id

    def get(self, session_id: str) -> EditSession:
        return self._sessions[session_id]

    def discard(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None
