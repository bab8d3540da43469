"""Request/response models for the categories API."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Category(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    display_order: int
    created_at: str
    updated_at: str
    product_count: int = 0


class CategoryCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()


class CategoryUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def name_must_not_be_null(cls, v: object) -> object:
        # Omit the key to keep the name; an explicit null would clear a NOT NULL column
        if v is None:
            raise ValueError("name must not be null")
        return v

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("name must not be blank")
        return v.strip() if v is not None else v


class ReorderRequest(BaseModel):
    """A drop event: ``moved_id`` was released over ``target_id``."""

    model_config = ConfigDict(extra="forbid")

    moved_id: str = Field(..., min_length=1)
    target_id: str = Field(..., min_length=1)


class RankAssignment(BaseModel):
    id: str
    display_order: int


class ReorderResponse(BaseModel):
    categories: List[Category]
    persisted: bool


__all__ = [
    "Category",
    "CategoryCreate",
    "CategoryUpdate",
    "RankAssignment",
    "ReorderRequest",
    "ReorderResponse",
]
