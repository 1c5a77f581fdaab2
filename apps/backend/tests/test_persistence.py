import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from database import AppConfigDB, TeacherSubjectAssignmentDB
from models.schemas import ClassRoom, ScheduleRules, Subject, SUBJECTS, TimeSlot
from services.scheduler.generator import generate
from services.scheduler.persistence import CURRENT_SCHEDULE_KEY, ScheduleGateway
from services.scheduler.roster import RosterProvider
from services.scheduler.rules import RULES_KEY, load_rules

def _generated(db):
    provider = RosterProvider(db)
    return generate(provider.classes(), provider.resolve_pools(None)).schedule

def test_roster_orders_classes_and_skips_unleveled(seeded_roster):
    classes = RosterProvider(seeded_roster).classes()
    assert [c.id for c in classes] == ["c-1a", "c-1b", "c-2a"]
    assert classes[2].level.level == 2

def test_roster_filters_by_class_ids(seeded_roster):
    classes = RosterProvider(seeded_roster).classes(["c-2a", "c-none"])
    assert [c.id for c in classes] == ["c-2a"]

def test_teachers_grouped_by_subject_and_sorted(seeded_roster):
    grouped = RosterProvider(seeded_roster).teachers_by_subject()
    assert [t.id for t in grouped[Subject.TAKS]] == ["t-taks-1", "t-taks-2"]
    assert [t.id for t in grouped[Subject.AL7AN]] == ["t-al7an"]
    assert "s-1" not in RosterProvider(seeded_roster).teacher_directory()

def test_resolve_pools_keeps_selection_order_and_drops_strangers(seeded_roster):
    pools = RosterProvider(seeded_roster).resolve_pools({
        Subject.TAKS: ["t-taks-2", "t-coptic", "t-taks-1"],
    })
    assert [t.id for t in pools[Subject.TAKS]] == ["t-taks-2", "t-taks-1"]
    assert pools[Subject.AL7AN] == []
    assert pools[Subject.COPTIC] == []

def test_save_and_load_current(seeded_roster):
    gateway = ScheduleGateway(seeded_roster)
    assert gateway.load_current() is None

    schedule = _generated(seeded_roster)
    result = gateway.save(schedule)

    assert result.success
    assert gateway.load_current() == schedule

def test_save_writes_per_class_assignments(seeded_roster):
    gateway = ScheduleGateway(seeded_roster)
    gateway.save(_generated(seeded_roster))

    assert gateway.assignments_for_class("c-1a") == {
        Subject.TAKS: "t-taks-1",
        Subject.AL7AN: "t-al7an",
        Subject.COPTIC: "t-coptic",
    }
    assert gateway.classes_for_teacher("t-taks-2") == [{"class_id": "c-2a", "subject": "taks"}]

def test_resave_updates_assignments(seeded_roster):
    gateway = ScheduleGateway(seeded_roster)
    schedule = _generated(seeded_roster)
    gateway.save(schedule)

    schedule.find_row("c-1a").cells[TimeSlot.A].teacher_id = None
    assert gateway.save(schedule).success

    assert gateway.assignments_for_class("c-1a")[Subject.TAKS] is None
    rows = seeded_roster.query(TeacherSubjectAssignmentDB).filter_by(class_id="c-1a").count()
    assert rows == 3

def test_save_rejects_invalid_schedule_without_writing(seeded_roster):
    gateway = ScheduleGateway(seeded_roster)
    schedule = _generated(seeded_roster)
    schedule.find_row("c-1a").cells[TimeSlot.A].teacher_id = "t-coptic"

    result = gateway.save(schedule)

    assert not result.success
    assert result.message == "Teacher Demiana is not specialized in Ritual"
    assert gateway.load_current() is None
    assert seeded_roster.query(TeacherSubjectAssignmentDB).count() == 0

def test_save_uses_configured_cap(seeded_roster):
    gateway = ScheduleGateway(seeded_roster, ScheduleRules(max_classes_per_teacher=2))
    result = gateway.save(_generated(seeded_roster))
    assert not result.success
    assert result.message == "Teacher Demiana exceeds the maximum of 2 classes"

def test_save_rejects_empty_schedule(seeded_roster):
    schedule = _generated(seeded_roster)
    schedule.rows = []
    result = ScheduleGateway(seeded_roster).save(schedule)
    assert not result.success
    assert result.message == "Schedule has no rows"

def test_save_rejects_unknown_class(seeded_roster):
    schedule = _generated(seeded_roster)
    schedule.rows[0].classroom = ClassRoom(id="gone", location="Old Room")

    result = ScheduleGateway(seeded_roster).save(schedule)

    assert not result.success
    assert result.message == "Unknown class gone"
    assert seeded_roster.query(AppConfigDB).filter_by(key=CURRENT_SCHEDULE_KEY).first() is None

def test_last_generated_round_trip(seeded_roster):
    gateway = ScheduleGateway(seeded_roster)
    assert gateway.load_generated() is None
    schedule = _generated(seeded_roster)
    gateway.record_generated(schedule)
    assert gateway.load_generated() == schedule

def test_rules_fall_back_to_defaults(db_session):
    assert load_rules(db_session) == ScheduleRules()
    db_session.add(AppConfigDB(key=RULES_KEY, value_json={"max_classes_per_teacher": 1}))
    db_session.commit()

    rules = load_rules(db_session)
    assert rules.max_classes_per_teacher == 1
    assert rules.slot_labels[TimeSlot.A] == "3:30 - 4:10"

def test_save_rejects_class_listed_twice(seeded_roster):
    gateway = ScheduleGateway(seeded_roster)
    schedule = _generated(seeded_roster)
    copy = schedule.rows[0].model_copy(deep=True)
    for cell in copy.cells.values():
        cell.teacher_id = None
    schedule.rows.append(copy)

    result = gateway.save(schedule)

    assert not result.success
    assert result.message == "Class Room 101 appears more than once"
    assert gateway.load_current() is None
    assert seeded_roster.query(TeacherSubjectAssignmentDB).count() == 0

def test_resave_drops_assignments_of_removed_classes(seeded_roster):
    gateway = ScheduleGateway(seeded_roster)
    schedule = _generated(seeded_roster)
    gateway.save(schedule)

    schedule.rows = [r for r in schedule.rows if r.classroom.id != "c-2a"]
    assert gateway.save(schedule).success

    assert gateway.classes_for_teacher("t-taks-2") == []
    assert gateway.assignments_for_class("c-2a") == {s: None for s in SUBJECTS}
    assert seeded_roster.query(TeacherSubjectAssignmentDB).count() == 6

def test_failed_write_is_rolled_back(seeded_roster, monkeypatch):
    gateway = ScheduleGateway(seeded_roster)

    def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(seeded_roster, "commit", broken_commit)
    with pytest.raises(SQLAlchemyError):
        gateway.save(_generated(seeded_roster))
    monkeypatch.undo()

    assert gateway.load_current() is None
    assert seeded_roster.query(TeacherSubjectAssignmentDB).count() == 0
    assert gateway.save(_generated(seeded_roster)).success
