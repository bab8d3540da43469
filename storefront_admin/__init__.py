"""Storefront admin API package.

Exposes the FastAPI application factory. Cross-cutting concerns (logging,
problem+json errors, request ids, CORS) are wired in ``main``; ordering and
persistence logic lives in ``logic/`` and HTTP handlers in ``routes/``.
"""

from __future__ import annotations

from storefront_admin.main import create_app

__all__ = ["create_app"]
