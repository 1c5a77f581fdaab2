from sqlalchemy import create_engine, Column, Integer, String, JSON, ForeignKey
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
import os
import uuid

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./class_schedule.db")

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def _new_id():
    return str(uuid.uuid4())

class LevelDB(Base):
    __tablename__ = "levels"

    id = Column(String, primary_key=True, default=_new_id)
    level = Column(Integer, nullable=False) # 0 = Preparatory, 1-3
    stage = Column(Integer, nullable=False)

class ClassRoomDB(Base):
    __tablename__ = "classes"

    id = Column(String, primary_key=True, default=_new_id)
    location = Column(String, nullable=False)
    level_id = Column(String, ForeignKey("levels.id"), nullable=True) # Unscheduled until a level is set

    level = relationship(LevelDB)

class UserDB(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    role = Column(String, default="student", index=True)
    subject = Column(String, nullable=True) # Teacher specialty

class TeacherSubjectAssignmentDB(Base):
    __tablename__ = "teacher_subject_assignments"

    class_id = Column(String, ForeignKey("classes.id"), primary_key=True)
    subject = Column(String, primary_key=True)
    teacher_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)

class AppConfigDB(Base):
    __tablename__ = "app_config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, unique=True, index=True) # e.g. "schedule_rules", "current_schedule"
    value_json = Column(JSON)

def init_db():
    Base.metadata.create_all(bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
