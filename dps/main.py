import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from dps.database import close_db, init_db
from dps.routers import checklist, intake, notifications, patients, reports

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting first-aid post service...")
    await init_db()
    logger.info("Database initialized")
    yield
    await close_db()
    logger.info("First-aid post service shut down")


app = FastAPI(
    title="DPS Poste de Secours",
    description="Patient triage and tracking for the first-aid post of a sporting event",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(patients.router)
app.include_router(intake.router)
app.include_router(reports.router)
app.include_router(checklist.router)
app.include_router(notifications.router)
