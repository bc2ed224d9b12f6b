import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI

from app.api import hours_api
from app.config import settings
from app.db import Base, SessionLocal, engine
from app.services.clock import SystemClock
from app.services.hours_service import HoursBoard
from app.services.remote_source import RemoteDataSource

logger = logging.getLogger(__name__)

STATUS_JOB_ID = "hours_status"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables
    Base.metadata.create_all(bind=engine)

    board = HoursBoard(RemoteDataSource(), SystemClock(settings.timezone), session_factory=SessionLocal)
    app.state.board = board
    board.refresh()

    scheduler = BackgroundScheduler()
    scheduler.add_job(board.tick, "interval", seconds=settings.status_interval_seconds, id=STATUS_JOB_ID)
    scheduler.start()
    app.state.scheduler = scheduler
    logger.info("Operating hours status refresh every %ss", settings.status_interval_seconds)
    yield
    scheduler.shutdown(wait=False)


app = FastAPI(lifespan=lifespan)

# Include APIs
app.include_router(hours_api.router)

@app.get("/")
def read_root():
    return {"message": "Operating Hours API is running 🚀"}
