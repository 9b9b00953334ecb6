# portfolio_tracker/schemas/categories.py
"""
Pydantic schemas for Category validation.

Categories are user-defined asset groupings used by the category
allocation breakdown. Deleting one un-assigns its assets.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portfolio_tracker.schemas.validators import validate_color


class CategoryBase(BaseModel):
    name: str = Field(
        ...,
        min_length=1,
        max_length=50,
        examples=["Retirement", "Speculative"],
    )

    color: str = Field(
        default="#808080",
        description="Display color (#RGB or #RRGGBB)",
        examples=["#4CAF50"],
    )

    sort_order: int = Field(default=0, ge=0)

    @field_validator('name')
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v

    @field_validator('color')
    @classmethod
    def validate_and_normalize_color(cls, v: str) -> str:
        return validate_color(v)


class CategoryCreate(CategoryBase):
    """Schema for creating a new category."""


class CategoryUpdate(BaseModel):
    """All fields optional; only fields that are set are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=50)
    color: str | None = None
    sort_order: int | None = Field(default=None, ge=0)

    @field_validator('name')
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None

    @field_validator('color')
    @classmethod
    def validate_and_normalize_color(cls, v: str | None) -> str | None:
        return validate_color(v) if v is not None else None


class CategoryResponse(CategoryBase):
    id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
