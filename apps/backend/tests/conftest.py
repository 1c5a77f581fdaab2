import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, ClassRoomDB, LevelDB, UserDB, get_db
from main import app
from models.schemas import ClassRoom, LevelInfo, Subject, Teacher

# Use in-memory DB for tests with StaticPool to share connection
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)

# pysqlite does not emit BEGIN itself, so SAVEPOINTs would commit for real;
# take over transaction control so each test's outer rollback is honoured.
@event.listens_for(engine, "connect")
def _disable_pysqlite_begin(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None

@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create tables before tests run."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db_session():
    """Provide a transactional scope for each test."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection, join_transaction_mode="create_savepoint")
    yield session
    session.close()
    transaction.rollback()
    connection.close()

@pytest.fixture
def client(db_session):
    """Test client with overridden dependency."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    from fastapi.testclient import TestClient
    yield TestClient(app)
    del app.dependency_overrides[get_db]

@pytest.fixture
def seeded_roster(db_session):
    """
    Three classes on two levels plus one teacher per subject (and a spare
    Ritual teacher). Also a student and a class without level, which the
    scheduler must ignore.
    """
    lvl_1 = LevelDB(id="lvl-1", level=1, stage=1)
    lvl_2 = LevelDB(id="lvl-2", level=2, stage=1)
    db_session.add_all([lvl_1, lvl_2])
    db_session.add_all([
        ClassRoomDB(id="c-2a", location="Room 201", level_id="lvl-2"),
        ClassRoomDB(id="c-1a", location="Room 101", level_id="lvl-1"),
        ClassRoomDB(id="c-1b", location="Room 102", level_id="lvl-1"),
        ClassRoomDB(id="c-none", location="Hall", level_id=None),
    ])
    db_session.add_all([
        UserDB(id="t-taks-1", name="Anba Mina", role="teacher", subject="taks"),
        UserDB(id="t-taks-2", name="Bishoy", role="teacher", subject="taks"),
        UserDB(id="t-al7an", name="Cyril", role="teacher", subject="al7an"),
        UserDB(id="t-coptic", name="Demiana", role="teacher", subject="coptic"),
        UserDB(id="s-1", name="Student One", role="student", subject=None),
    ])
    db_session.commit()
    return db_session

def make_classes(count):
    return [
        ClassRoom(id=f"c{i}", location=f"Room {i}", level=LevelInfo(level=1, stage=i + 1))
        for i in range(count)
    ]

def make_teacher(teacher_id, subject, name=None):
    return Teacher(id=teacher_id, name=name or teacher_id.upper(), subject=Subject(subject))
