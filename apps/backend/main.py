from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import uvicorn
import os
from dotenv import load_dotenv
load_dotenv() # Load env vars from .env before the database URL is read

from api import config, roster, schedule, sessions
from database import init_db, SessionLocal, AppConfigDB
from logging_setup import setup_logging
from models.schemas import ScheduleRules
from services.scheduler.rules import RULES_KEY

setup_logging(environment=os.environ.get("ENVIRONMENT", "development"))
logger = logging.getLogger(__name__)

app = FastAPI(title="Class Schedule API")

@app.on_event("startup")
def on_startup():
    init_db()
    seed_data()

def seed_data():
    db = SessionLocal()
    try:
        if not db.query(AppConfigDB).filter(AppConfigDB.key == RULES_KEY).first():
            logger.info("Seeding default schedule rules")
            db.add(AppConfigDB(key=RULES_KEY, value_json=ScheduleRules().model_dump(mode="json")))
            db.commit()
    finally:
        db.close()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(config.router, prefix="/api")
app.include_router(roster.router, prefix="/api")
app.include_router(schedule.router, prefix="/api")
app.include_router(sessions.router, prefix="/api")

@app.get("/health")
async def health_check():
    return {"status": "ok", "version": "0.1.0"}

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8765))
    uvicorn.run("main:app", host="127.0.0.1", port=port, reload=True)
