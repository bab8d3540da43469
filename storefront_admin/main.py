from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from storefront_admin.config import AppConfig, load_config
from storefront_admin.db.base import get_engine
from storefront_admin.db.migrations_runner import apply_migrations
from storefront_admin.http.problem import (
    handle_category_not_found,
    handle_http_exception,
    handle_reorder_validation_error,
    handle_request_validation_error,
    handle_unexpected_error,
)
from storefront_admin.http.request_id import RequestIdMiddleware
from storefront_admin.logging_setup import configure_logging
from storefront_admin.logic.reorder import ReorderValidationError
from storefront_admin.logic.repository_categories import CategoryNotFound
from storefront_admin.routes import api_router

logger = logging.getLogger(__name__)


def _health_check() -> Callable[[], dict]:
    def check() -> dict:
        try:
            with get_engine().connect() as conn:
                conn.execute(sql_text("SELECT 1"))
            return {"status": "ok", "db": True}
        except SQLAlchemyError as e:
            logger.error("Health DB check failed", exc_info=True)
            return {"status": "degraded", "db": False, "reason": str(e)}

    return check


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    configure_logging()
    config = config or load_config()

    app = FastAPI(
        title="Storefront Admin API",
        description="Category management and drag-and-drop ordering for the storefront admin dashboard.",
        version="1.0.0",
    )
    app.state.config = config
    get_engine(config.database.dsn)

    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(CategoryNotFound, handle_category_not_found)
    app.add_exception_handler(ReorderValidationError, handle_reorder_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )
    app.add_middleware(RequestIdMiddleware)

    # Apply migrations on startup (guarded) to avoid import-time side effects
    @app.on_event("startup")
    def _apply_migrations() -> None:
        if not config.database.auto_apply_migrations:
            logger.info("AUTO_APPLY_MIGRATIONS disabled; skipping migrations at startup")
            return
        try:
            applied = apply_migrations(get_engine(), journal_path=config.database.migrations_journal)
        except Exception:
            logger.error("Failed to apply migrations at startup", exc_info=True)
            raise
        logger.info("startup_migrations_applied count=%s", len(applied))

    app.include_router(api_router, prefix=config.api.prefix)

    health_check = _health_check()

    @app.get("/health")
    def health():
        return health_check()

    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
