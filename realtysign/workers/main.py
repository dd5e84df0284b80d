"""ARQ worker entrypoint."""

import logging

from arq.connections import RedisSettings

from realtysign.core.config import get_settings
from realtysign.workers.processing import process_document


def redis_settings() -> RedisSettings:
    """Parse REDIS_URL into ARQ RedisSettings."""
    return RedisSettings.from_dsn(get_settings().redis_url)


async def startup(ctx: dict) -> None:
    """Called when the worker starts."""
    from realtysign.core.database import init_db

    logging.basicConfig(level=get_settings().log_level.upper())
    await init_db()


async def shutdown(ctx: dict) -> None:
    """Called when the worker shuts down."""


class WorkerSettings:
    """ARQ worker configuration."""
    functions = [process_document]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = redis_settings()
    max_jobs = 10
    job_timeout = 300  # AI parse + envelope per document


if __name__ == "__main__":
    from arq import run_worker
    run_worker(WorkerSettings)  # type: ignore[arg-type]
