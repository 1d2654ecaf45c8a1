from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

from app.config import JOB_STORE_BACKENDS, LLM_ADAPTERS


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - No empty-string values are accepted.
    - A database URL is required unless JOB_STORE_BACKEND=memory.
    - LLM API key check is skipped only when LLM_ADAPTER=mock.
    - RENDER_SERVICE_URL and RENDER_SERVICE_API_KEY are set together or not at all.
    """

    from db.config import is_database_configured, load_env_files

    load_env_files()

    errors: list[str] = []

    # --- Job store backend ----------------------------------------------
    backend = os.getenv("JOB_STORE_BACKEND", "database").strip().lower()
    if backend not in JOB_STORE_BACKENDS:
        errors.append(
            f"JOB_STORE_BACKEND='{backend}' is not valid. "
            f"Allowed values: {sorted(JOB_STORE_BACKENDS)}."
        )
    elif backend == "database" and not is_database_configured():
        errors.append(
            "No database URL configured. Set DATABASE_URL (or LOCAL_DATABASE_URL / "
            "CLOUD_DATABASE_URL), or run with JOB_STORE_BACKEND=memory."
        )

    # --- LLM adapter and key --------------------------------------------
    adapter = os.getenv("LLM_ADAPTER", "anthropic").strip().lower()
    if adapter not in LLM_ADAPTERS:
        errors.append(
            f"LLM_ADAPTER='{adapter}' is not valid. Allowed values: {sorted(LLM_ADAPTERS)}."
        )
    elif adapter != "mock":
        provider_key = "OPENAI_API_KEY" if adapter == "openai" else "ANTHROPIC_API_KEY"
        llm_api_key = os.getenv("LLM_API_KEY", "").strip()
        provider_api_key = os.getenv(provider_key, "").strip()
        if not llm_api_key and not provider_api_key:
            errors.append(
                f"LLM API key is not set. Provide LLM_API_KEY or {provider_key}. "
                "Empty strings are not permitted."
            )

    # --- Render service -------------------------------------------------
    render_url = os.getenv("RENDER_SERVICE_URL", "").strip()
    render_key = os.getenv("RENDER_SERVICE_API_KEY", "").strip()
    if bool(render_url) != bool(render_key):
        errors.append(
            "RENDER_SERVICE_URL and RENDER_SERVICE_API_KEY must be set together."
        )

    if errors:
        raise RuntimeError(
            "Startup validation failed. Missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Compare Base.metadata table names against the live DB schema.

    Every table registered on Base.metadata must exist in the database.
    If any are missing, log a critical error and abort startup so that
    the operator is forced to run migrations before serving traffic.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        log = logging.getLogger(__name__)
        log.critical(
            "Schema mismatch: %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate the job store backend, start the purge scheduler on boot; shut it down on exit."""
    from app.config import get_job_store_settings

    if get_job_store_settings().backend == "database":
        _check_db()
        logging.getLogger(__name__).info("Database connectivity confirmed")
        _check_schema()
        logging.getLogger(__name__).info("Database schema validated")
    else:
        logging.getLogger(__name__).warning(
            "Using the in-memory job store; jobs do not survive a restart"
        )

    from app.scheduler.jobs import build_scheduler

    scheduler = build_scheduler()
    scheduler.start()
    logging.getLogger(__name__).info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        logging.getLogger(__name__).info("Scheduler shut down")

        from db.session import dispose_engine

        dispose_engine()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Messaging Audit API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import audit_jobs_router

    application.include_router(audit_jobs_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        from app.config import get_job_store_settings

        return {"status": "ok", "job_store": get_job_store_settings().backend}

    return application


app = create_app()
