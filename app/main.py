from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

from app.config import ALLOWED_LLM_ADAPTERS, ALLOWED_STORE_BACKENDS
from app.repositories.dashboard_store import (
    DashboardStore,
    SQLAlchemyDashboardStore,
    build_dashboard_store,
)


def _validate_env() -> None:
    """
    Validate environment variables at startup.

    Runs before the store or any outbound client is initialised.
    Raises RuntimeError listing every invalid variable so the operator can
    fix all problems in one restart cycle.

    Rules:
    - DASHBOARD_STORE must be one of ALLOWED_STORE_BACKENDS.
    - DASHBOARD_STORE=database requires DATABASE_URL or LOCAL_DATABASE_URL.
    - LLM_ADAPTER must be one of ALLOWED_LLM_ADAPTERS.
    - A missing LLM API key is not an error; insights fall back locally.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- Dashboard store ------------------------------------------------
    backend = os.getenv("DASHBOARD_STORE", "memory").strip().lower()
    if backend not in ALLOWED_STORE_BACKENDS:
        errors.append(
            f"DASHBOARD_STORE='{backend}' is not valid. "
            f"Allowed values: {sorted(ALLOWED_STORE_BACKENDS)}."
        )
    elif backend == "database":
        database_url = os.getenv("DATABASE_URL", "").strip()
        local_database_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
        if not database_url and not local_database_url:
            errors.append(
                "DASHBOARD_STORE=database but no database URL is configured. "
                "Set DATABASE_URL or LOCAL_DATABASE_URL."
            )

    # --- LLM adapter ----------------------------------------------------
    adapter = os.getenv("LLM_ADAPTER", "openai").strip().lower()
    if adapter not in ALLOWED_LLM_ADAPTERS:
        errors.append(
            f"LLM_ADAPTER='{adapter}' is not valid. "
            f"Allowed values: {sorted(ALLOWED_LLM_ADAPTERS)}."
        )

    if errors:
        raise RuntimeError(
            "Startup validation failed, invalid environment variables:\n"
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


def _check_schema() -> None:
    """
    Check connectivity and that every ORM table exists in the database.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect
    from sqlalchemy import text

    import db.models  # noqa: F401  (registers all ORM models on Base.metadata)
    from db.base import Base
    from db.session import get_engine

    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc

    actual: set[str] = set(sa_inspect(get_engine()).get_table_names())
    missing = set(Base.metadata.tables.keys()) - actual
    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch, %d table(s) absent from the database: %s. "
            "Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate the database on boot when it backs the store; close the store on exit."""
    log = logging.getLogger(__name__)
    store: DashboardStore = application.state.dashboard_store
    if isinstance(store, SQLAlchemyDashboardStore) and application.state.check_schema:
        _check_schema()
        log.info("Database schema validated")
    log.info("Dashboard store ready backend=%s", type(store).__name__)
    try:
        yield
    finally:
        store.close()
        log.info("Dashboard store closed")


def create_app(store: DashboardStore | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    ``store`` overrides the backend named by DASHBOARD_STORE; the store is
    built once here and shared by every request through ``app.state``.
    """

    _validate_env()
    _configure_logging()

    from app.config import get_store_settings

    application = FastAPI(
        title="DataView Dashboard API",
        version="1.0.0",
        lifespan=_lifespan,
    )
    application.state.check_schema = store is None
    application.state.dashboard_store = store or build_dashboard_store(get_store_settings().backend)

    from app.api.routers import (
        dashboard_data_router,
        dashboard_router,
        datasets_router,
        export_router,
        insights_router,
        table_router,
    )

    application.include_router(datasets_router, prefix="/api")
    application.include_router(dashboard_router, prefix="/api")
    application.include_router(insights_router, prefix="/api")
    application.include_router(table_router, prefix="/api")
    application.include_router(export_router, prefix="/api")
    application.include_router(dashboard_data_router, prefix="/api")

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {
            "status": "ok",
            "store": type(application.state.dashboard_store).__name__,
        }

    return application


app = create_app()
