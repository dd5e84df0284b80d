"""FastAPI application entrypoint."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from realtysign.api.v1 import v1_router
from realtysign.core.config import get_settings
from realtysign.core.database import init_db
from realtysign.core.errors import setup_error_handling
from realtysign.services.reminders import ReminderScheduler

_settings = get_settings()
logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup: ensure tables exist (use Alembic in production)
    await init_db()
    scheduler = ReminderScheduler(interval=_settings.reminder_interval_hours * 3600)
    if _settings.reminder_scheduler_enabled:
        scheduler.start()
    app.state.reminder_scheduler = scheduler
    yield
    await scheduler.stop()


app = FastAPI(
    title="RealtySign",
    version="0.1.0",
    description="Document signing for real-estate teams, with metered subscription plans",
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in _settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Errors & API routes ──────────────────────────────────────
setup_error_handling(app)
app.include_router(v1_router)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    return {"status": "ok"}
