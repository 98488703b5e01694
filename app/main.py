import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.core.config import settings
from app.core.scheduler import start_scheduler, shutdown_scheduler
from app.api.auth import router as auth_router
from app.api.webapp import router as webapp_router
from app.api.profile import router as profile_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up FastAPI...")
    await start_scheduler()
    yield
    logger.info("Shutting down FastAPI...")
    await shutdown_scheduler()


app = FastAPI(
    title="Companion Match API",
    docs_url="/docs" if not settings.APP_DOMAIN else None,
    redoc_url=None,
    lifespan=lifespan,
)

app.include_router(auth_router)
app.include_router(webapp_router)
app.include_router(profile_router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}


@app.get("/")
async def root():
    return {"message": "Companion Match API", "version": "1.0"}
