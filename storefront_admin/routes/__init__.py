"""APIRouter registration for the admin API."""

from __future__ import annotations

from fastapi import APIRouter

from storefront_admin.routes.categories import router as categories_router

api_router = APIRouter()
api_router.include_router(categories_router, tags=["Categories"])

__all__ = ["api_router"]
