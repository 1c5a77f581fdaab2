import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from database import ClassRoomDB, LevelDB, UserDB
from models.schemas import ClassRoom, LevelInfo, Subject, SUBJECTS, Teacher

logger = logging.getLogger(__name__)


class RosterProvider:
    """
    Read-only view of the classes and teachers the scheduler works with.

    Only classes that have a level are scheduled; only users with the
    `teacher` role and one of the scheduled subjects are teachers.
    """
    def __init__(self, db: Session):
        self.db = db

    def classes(self, class_ids: Optional[Sequence[str]] = None) -> List[ClassRoom]:
        query = (
            self.db.query(ClassRoomDB)
            .join(LevelDB, ClassRoomDB.level_id == LevelDB.id)
            .order_by(LevelDB.level, LevelDB.stage, ClassRoomDB.location)
        )
        if class_ids:
            query = query.filter(ClassRoomDB.id.in_(list(class_ids)))

        return [
            ClassRoom(
                id=c.id,
                location=c.location,
                level=LevelInfo(level=c.level.level, stage=c.level.stage),
            )
            for c in query.all()
        ]

    def teachers(self) -> List[Teacher]:
        rows = (
            self.db.query(UserDB)
            .filter(UserDB.role == "teacher", UserDB.subject.in_([s.value for s in SUBJECTS]))
            .order_by(UserDB.name)
            .all()
        )
        return [Teacher(id=u.id, name=u.name, subject=Subject(u.subject)) for u in rows]

    def teachers_by_subject(self) -> Dict[Subject, List[Teacher]]:
        grouped = {s: [] for s in SUBJECTS}
        for teacher in self.teachers():
            grouped[teacher.subject].append(teacher)
        return grouped

    def teacher_directory(self) -> Dict[str, Teacher]:
        return {t.id: t for t in self.teachers()}

    def fetch_roster(self) -> dict:
        return {"classes": self.classes(), "teachers_by_subject": self.teachers_by_subject()}

    def resolve_pools(self, selected_ids: Optional[Dict[Subject, List[str]]]) -> Dict[Subject, List[Teacher]]:
        """
        Turns selected teacher ids into generator pools.

        Args:
            selected_ids: Subject -> teacher ids, in the order the caller wants
                them considered. None selects every teacher of every subject.
                A subject missing from the mapping gets an empty pool.

        Returns:
            dict: Subject -> list of Teacher.
        """
        by_subject = self.teachers_by_subject()
        if selected_ids is None:
            return by_subject

        pools = {}
        for subject in SUBJECTS:
            known = {t.id: t for t in by_subject[subject]}
            pool = []
            for teacher_id in selected_ids.get(subject, []):
                teacher = known.get(teacher_id)
                if teacher is None:
                    logger.warning("Ignoring selected id %s: not a %s teacher", teacher_id, subject.value)
                    continue
                pool.append(teacher)
            pools[subject] = pool
        return pools
