from pydantic import BaseModel, Field, model_validator
from typing import List, Optional, Dict
from enum import Enum

class TimeSlot(str, Enum):
    A = "A"
    B = "B"
    C = "C"

class Subject(str, Enum):
    TAKS = "taks"
    AL7AN = "al7an"
    COPTIC = "coptic"

class ConflictType(str, Enum):
    DUPLICATE_CLASS = "duplicate_class"
    DUPLICATE_SUBJECTS = "duplicate_subjects"
    UNKNOWN_TEACHER = "unknown_teacher"
    SUBJECT_MISMATCH = "subject_mismatch"
    SLOT_CONFLICT = "slot_conflict"
    TEACHER_OVERLOAD = "teacher_overload"

# Ordered: slot order is the row's display order, subject order drives the rotation
TIME_SLOTS = [TimeSlot.A, TimeSlot.B, TimeSlot.C]
SUBJECTS = [Subject.TAKS, Subject.AL7AN, Subject.COPTIC]

SUBJECT_LABELS = {
    Subject.TAKS: "Ritual",
    Subject.AL7AN: "Hymnology",
    Subject.COPTIC: "Coptic Language",
}

DEFAULT_SLOT_LABELS = {
    TimeSlot.A: "3:30 - 4:10",
    TimeSlot.B: "4:25 - 5:05",
    TimeSlot.C: "5:20 - 6:00",
}

MAX_CLASSES_PER_TEACHER = 3

class TimeSlotInfo(BaseModel):
    key: TimeSlot
    label: str

class Teacher(BaseModel):
    id: str
    name: str
    subject: Subject

class LevelInfo(BaseModel):
    level: int
    stage: int

class ClassRoom(BaseModel):
    id: str
    location: str
    level: Optional[LevelInfo] = None

class Cell(BaseModel):
    subject: Subject
    teacher_id: Optional[str] = None

class ScheduleRow(BaseModel):
    classroom: ClassRoom
    cells: Dict[TimeSlot, Cell]

    @model_validator(mode="after")
    def _one_cell_per_slot(self):
        if set(self.cells) != set(TIME_SLOTS):
            raise ValueError(f"Row for class {self.classroom.id} must have exactly one cell per slot")
        return self

class Schedule(BaseModel):
    rows: List[ScheduleRow] = []
    time_slots: List[TimeSlotInfo] = Field(
        default_factory=lambda: [TimeSlotInfo(key=s, label=DEFAULT_SLOT_LABELS[s]) for s in TIME_SLOTS]
    )

    def find_row(self, class_id: str) -> Optional[ScheduleRow]:
        return next((r for r in self.rows if r.classroom.id == class_id), None)

class UnmetRequirement(BaseModel):
    class_id: str
    class_location: str
    slot: TimeSlot
    subject: Subject
    reason: str

class GenerationResult(BaseModel):
    schedule: Schedule
    unmet: List[UnmetRequirement] = []

class ScheduleConflict(BaseModel):
    type: ConflictType
    message: str
    class_id: Optional[str] = None
    slot: Optional[TimeSlot] = None
    teacher_id: Optional[str] = None

class ValidationResult(BaseModel):
    ok: bool
    message: Optional[str] = None

class SaveResult(BaseModel):
    success: bool
    message: str

class ScheduleRules(BaseModel):
    max_classes_per_teacher: int = MAX_CLASSES_PER_TEACHER
    slot_labels: Dict[TimeSlot, str] = Field(default_factory=lambda: dict(DEFAULT_SLOT_LABELS))

    def time_slots(self) -> List[TimeSlotInfo]:
        return [TimeSlotInfo(key=s, label=self.slot_labels.get(s, s.value)) for s in TIME_SLOTS]
