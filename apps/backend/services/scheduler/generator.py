import logging
from typing import Dict, List, Optional, Sequence

from models.schemas import (
    Cell,
    ClassRoom,
    GenerationResult,
    MAX_CLASSES_PER_TEACHER,
    Schedule,
    ScheduleRow,
    Subject,
    SUBJECTS,
    SUBJECT_LABELS,
    Teacher,
    TimeSlot,
    TimeSlotInfo,
    TIME_SLOTS,
    UnmetRequirement,
)
from services.scheduler.errors import SchedulerInputError

logger = logging.getLogger(__name__)


def subject_slots_for_class(class_index: int) -> Dict[TimeSlot, Subject]:
    """
    Subject taught in each slot for the class at `class_index`.

    Subjects are rotated by the class position, so consecutive classes start
    the day on different subjects and every class gets each subject once.
    """
    offset = class_index % len(SUBJECTS)
    return {
        slot: SUBJECTS[(i + offset) % len(SUBJECTS)]
        for i, slot in enumerate(TIME_SLOTS)
    }


def _eligible_pool(subject: Subject, pool: Sequence[Teacher]) -> List[Teacher]:
    eligible = []
    seen = set()
    for teacher in pool:
        if teacher.subject != subject:
            logger.warning("Teacher %s (%s) dropped from %s pool: specialty mismatch",
                           teacher.name, teacher.id, subject.value)
            continue
        if teacher.id in seen:
            continue
        seen.add(teacher.id)
        eligible.append(teacher)
    return eligible


def _unmet_reason(subject: Subject, slot: TimeSlot, pool: List[Teacher],
                  totals: Dict[str, int], max_classes: int) -> str:
    label = SUBJECT_LABELS[subject]
    if not pool:
        return f"no teachers selected for subject {label}"
    if all(totals.get(t.id, 0) >= max_classes for t in pool):
        return f"all eligible teachers have reached the maximum load of {max_classes} classes"
    return f"no available teacher for subject {label} in slot {slot.value}"


def generate(classes: Sequence[ClassRoom],
             teacher_pools: Dict[Subject, Sequence[Teacher]],
             max_classes_per_teacher: int = MAX_CLASSES_PER_TEACHER,
             time_slots: Optional[List[TimeSlotInfo]] = None) -> GenerationResult:
    """
    Greedy assignment of one teacher to every (class, slot) cell.

    Process:
    1. Lays out each class row with the rotated subject order.
    2. Walks subjects, then slots, then classes in row order.
    3. Picks the least loaded pool teacher that is free in the slot and
       still under `max_classes_per_teacher`. Ties keep pool order.

    Cells nobody can take stay unassigned and are reported in `unmet`.

    Args:
        classes: Classes in output row order.
        teacher_pools: Teachers the caller selected for each subject.
        max_classes_per_teacher: Cap on total classes per teacher.
        time_slots: Slot labels carried on the schedule for display.

    Returns:
        GenerationResult: The schedule and the list of unmet requirements.
    """
    class_ids = [c.id for c in classes]
    if len(set(class_ids)) != len(class_ids):
        raise SchedulerInputError("Class list contains duplicate ids")

    rows = []
    for idx, classroom in enumerate(classes):
        mapping = subject_slots_for_class(idx)
        rows.append(ScheduleRow(
            classroom=classroom,
            cells={slot: Cell(subject=mapping[slot]) for slot in TIME_SLOTS},
        ))

    totals: Dict[str, int] = {}
    busy = {slot: set() for slot in TIME_SLOTS}
    unmet = []

    for subject in SUBJECTS:
        pool = _eligible_pool(subject, teacher_pools.get(subject, []))

        for slot in TIME_SLOTS:
            for row in rows:
                cell = row.cells[slot]
                if cell.subject != subject:
                    continue

                candidates = [
                    t for t in pool
                    if totals.get(t.id, 0) < max_classes_per_teacher and t.id not in busy[slot]
                ]
                if not candidates:
                    unmet.append(UnmetRequirement(
                        class_id=row.classroom.id,
                        class_location=row.classroom.location,
                        slot=slot,
                        subject=subject,
                        reason=_unmet_reason(subject, slot, pool, totals, max_classes_per_teacher),
                    ))
                    continue

                # min() returns the first of equals, so pool order breaks ties
                chosen = min(candidates, key=lambda t: totals.get(t.id, 0))
                cell.teacher_id = chosen.id
                totals[chosen.id] = totals.get(chosen.id, 0) + 1
                busy[slot].add(chosen.id)

    schedule = Schedule(rows=rows)
    if time_slots is not None:
        schedule.time_slots = list(time_slots)

    logger.info("Generated schedule for %d classes: %d cells assigned, %d unmet",
                len(rows), sum(totals.values()), len(unmet))
    return GenerationResult(schedule=schedule, unmet=unmet)
