import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from settings import settings
from api import config, cron, duties, rotation
from database import init_db, SessionLocal, DutyConfigDB
from services.rotation.config import ROTATION_CONFIG_KEY, DEFAULT_ROTATION_CONFIG
from services.rotation.locks import MonthLockRegistry

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Crew OD Rotation API")
app.state.run_locks = MonthLockRegistry()

@app.on_event("startup")
def on_startup():
    init_db()
    seed_data()

def seed_data():
    db = SessionLocal()
    try:
        if not db.query(DutyConfigDB).filter(DutyConfigDB.key == ROTATION_CONFIG_KEY).first():
            logger.info("Seeding default OD rotation configuration...")
            db.add(DutyConfigDB(key=ROTATION_CONFIG_KEY, value_json=DEFAULT_ROTATION_CONFIG))
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
app.include_router(rotation.router, prefix="/api")
app.include_router(cron.router, prefix="/api")
app.include_router(duties.router, prefix="/api")

@app.get("/health")
async def health_check():
    return {"status": "ok", "version": "0.1.0"}

if __name__ == "__main__":
    uvicorn.run("main:app", host="127.0.0.1", port=settings.port, reload=True)
