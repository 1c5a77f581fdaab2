from typing import Dict, Iterable, Iterator, Mapping, Union

from models.schemas import (
    ConflictType,
    MAX_CLASSES_PER_TEACHER,
    Schedule,
    ScheduleConflict,
    SUBJECTS,
    SUBJECT_LABELS,
    Teacher,
    TIME_SLOTS,
    ValidationResult,
)

TeacherLookup = Union[Mapping[str, Teacher], Iterable[Teacher]]


def index_teachers(teachers: TeacherLookup) -> Dict[str, Teacher]:
    if isinstance(teachers, Mapping):
        return dict(teachers)
    return {t.id: t for t in teachers}


def _teacher_name(teachers: Dict[str, Teacher], teacher_id: str) -> str:
    teacher = teachers.get(teacher_id)
    return teacher.name if teacher else teacher_id


def _check_class_rows(schedule: Schedule) -> Iterator[ScheduleConflict]:
    required = set(SUBJECTS)
    seen = set()
    for row in schedule.rows:
        if row.classroom.id in seen:
            yield ScheduleConflict(
                type=ConflictType.DUPLICATE_CLASS,
                message=f"Class {row.classroom.location} appears more than once",
                class_id=row.classroom.id,
            )
        seen.add(row.classroom.id)
        subjects = [cell.subject for cell in row.cells.values()]
        if len(subjects) != len(set(subjects)) or set(subjects) != required:
            yield ScheduleConflict(
                type=ConflictType.DUPLICATE_SUBJECTS,
                message=f"Class {row.classroom.location} must include all three subjects with no repeats",
                class_id=row.classroom.id,
            )


def _check_specialties(schedule: Schedule, teachers: Dict[str, Teacher]) -> Iterator[ScheduleConflict]:
    for row in schedule.rows:
        for slot in TIME_SLOTS:
            cell = row.cells[slot]
            if not cell.teacher_id:
                continue
            teacher = teachers.get(cell.teacher_id)
            if teacher is None:
                yield ScheduleConflict(
                    type=ConflictType.UNKNOWN_TEACHER,
                    message=f"Unknown teacher {cell.teacher_id}",
                    class_id=row.classroom.id, slot=slot, teacher_id=cell.teacher_id,
                )
            elif teacher.subject != cell.subject:
                yield ScheduleConflict(
                    type=ConflictType.SUBJECT_MISMATCH,
                    message=f"Teacher {teacher.name} is not specialized in {SUBJECT_LABELS[cell.subject]}",
                    class_id=row.classroom.id, slot=slot, teacher_id=cell.teacher_id,
                )


def _check_slot_uniqueness(schedule: Schedule, teachers: Dict[str, Teacher]) -> Iterator[ScheduleConflict]:
    for slot in TIME_SLOTS:
        seen = set()
        for row in schedule.rows:
            teacher_id = row.cells[slot].teacher_id
            if not teacher_id:
                continue
            if teacher_id in seen:
                yield ScheduleConflict(
                    type=ConflictType.SLOT_CONFLICT,
                    message=f"Teacher {_teacher_name(teachers, teacher_id)} cannot teach two classes in slot {slot.value}",
                    class_id=row.classroom.id, slot=slot, teacher_id=teacher_id,
                )
            seen.add(teacher_id)


def _check_teacher_load(schedule: Schedule, teachers: Dict[str, Teacher],
                        max_classes: int) -> Iterator[ScheduleConflict]:
    totals: Dict[str, int] = {}
    for row in schedule.rows:
        for slot in TIME_SLOTS:
            teacher_id = row.cells[slot].teacher_id
            if not teacher_id:
                continue
            totals[teacher_id] = totals.get(teacher_id, 0) + 1
            # Report once, on the assignment that crosses the cap
            if totals[teacher_id] == max_classes + 1:
                yield ScheduleConflict(
                    type=ConflictType.TEACHER_OVERLOAD,
                    message=f"Teacher {_teacher_name(teachers, teacher_id)} exceeds the maximum of {max_classes} classes",
                    class_id=row.classroom.id, slot=slot, teacher_id=teacher_id,
                )


def find_conflicts(schedule: Schedule, teachers: TeacherLookup,
                   max_classes_per_teacher: int = MAX_CLASSES_PER_TEACHER) -> Iterator[ScheduleConflict]:
    """
    Yields every constraint violation in `schedule`.

    Conflicts come out grouped by check, in this order:
    1. Each class has one row and teaches the three subjects once.
    2. Assigned teachers exist and teach the cell's subject.
    3. No teacher appears twice in one slot.
    4. No teacher exceeds `max_classes_per_teacher`.
    """
    lookup = index_teachers(teachers)
    yield from _check_class_rows(schedule)
    yield from _check_specialties(schedule, lookup)
    yield from _check_slot_uniqueness(schedule, lookup)
    yield from _check_teacher_load(schedule, lookup, max_classes_per_teacher)


def validate(schedule: Schedule, teachers: TeacherLookup,
             max_classes_per_teacher: int = MAX_CLASSES_PER_TEACHER) -> ValidationResult:
    """Whole-schedule check; the first conflict found decides the message."""
    conflict = next(find_conflicts(schedule, teachers, max_classes_per_teacher), None)
    if conflict is None:
        return ValidationResult(ok=True)
    return ValidationResult(ok=False, message=conflict.message)
