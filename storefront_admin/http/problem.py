"""Problem+JSON utilities and global exception handlers.

Defines the RFC 7807 media type, a builder for domain problems keyed by
``CATEGORY_ERROR_MAP``, and the handler callables ``create_app`` registers.
"""

from __future__ import annotations

from typing import Any, Dict
import logging

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront_admin.http.error_mapping import CATEGORY_ERROR_MAP
from storefront_admin.logic.reorder import ReorderValidationError
from storefront_admin.logic.repository_categories import CategoryNotFound

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem_body(kind: str, detail: str, **extra: Any) -> Dict[str, Any]:
    """Return a problem dict for a ``CATEGORY_ERROR_MAP`` entry."""
    entry = CATEGORY_ERROR_MAP[kind]
    body: Dict[str, Any] = {
        "title": entry["title"],
        "status": entry["status"],
        "detail": detail,
        "code": entry["code"],
    }
    body.update(extra)
    logger.info("error_handler.handle code=%s status=%s", entry["code"], entry["status"])
    return body


def problem_response(kind: str, detail: str, **extra: Any) -> JSONResponse:
    body = problem_body(kind, detail, **extra)
    return JSONResponse(jsonable_encoder(body), status_code=int(body["status"]), media_type=PROBLEM_MEDIA_TYPE)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    status_code = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        detail = exc.detail
    else:
        detail = {"title": "Error", "status": status_code, "detail": str(exc.detail or "")}
    headers = dict(exc.headers) if isinstance(getattr(exc, "headers", None), dict) else None
    return JSONResponse(detail, status_code=status_code, media_type=PROBLEM_MEDIA_TYPE, headers=headers)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problem = {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Request validation failed",
        "errors": jsonable_encoder(exc.errors()),
    }
    return JSONResponse(problem, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_category_not_found(request: Request, exc: CategoryNotFound) -> JSONResponse:
    return problem_response("not_found", str(exc), category_id=exc.category_id)


async def handle_reorder_validation_error(request: Request, exc: ReorderValidationError) -> JSONResponse:
    return problem_response("reorder_unknown_id", str(exc), id=exc.entity_id)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return JSONResponse({"title": "Internal Server Error", "status": 500}, status_code=500, media_type=PROBLEM_MEDIA_TYPE)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "handle_category_not_found",
    "handle_http_exception",
    "handle_reorder_validation_error",
    "handle_request_validation_error",
    "handle_unexpected_error",
    "problem_body",
    "problem_response",
]
