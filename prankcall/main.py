import tomllib
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prankcall.admin.router import router as admin_router
from prankcall.ai.voice_ai.providers.factory import (
    close_voice_ai_provider,
    get_voice_ai_provider,
)
from prankcall.ai.voice_ai.service import VoiceAIService
from prankcall.auth.router import router as auth_router
from prankcall.billing.router import router as billing_router
from prankcall.calls.router import router as calls_router
from prankcall.config import get_client_base_url
from prankcall.db.database import close_db
from prankcall.db.scenarios.router import router as scenarios_router
from prankcall.referrals.router import router as referrals_router
from prankcall.utils.logger import logger
from prankcall.workflows.call_lifecycle import (
    resume_active_call_monitoring,
    stop_call_monitoring,
)
from prankcall.workflows.config import get_call_lifecycle_settings


def get_version():
    """Get version from pyproject.toml"""
    pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
    with open(pyproject_path, "rb") as f:
        data = tomllib.load(f)
    return data["project"]["version"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Background monitors live in memory, so calls still running when the
    # process stopped need new ones
    if get_call_lifecycle_settings().resume_on_startup:
        try:
            await resume_active_call_monitoring(
                VoiceAIService(get_voice_ai_provider())
            )
        except Exception as e:
            logger.error("Failed to resume call monitoring", error=str(e))
    yield
    # Monitors write through the database, so they stop before it closes
    await stop_call_monitoring()
    await close_voice_ai_provider()
    await close_db()


app = FastAPI(
    title="PrankCall API",
    description="API for PrankCall.nl",
    version=get_version(),
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[get_client_base_url()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router, prefix="/api")
app.include_router(calls_router, prefix="/api")
app.include_router(scenarios_router, prefix="/api")
app.include_router(billing_router, prefix="/api")
app.include_router(referrals_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {"status": "ok", "message": "PrankCall API is running"}


@app.get("/healthcheck")
async def healthcheck():
    """Health check endpoint."""
    return {"status": "ok", "message": "PrankCall API is running"}
