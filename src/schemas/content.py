"""Pydantic schemas for content endpoints."""
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from schemas.validators import check_title_not_empty, validate_and_normalize_tags


class ContentCreate(BaseModel):
    """Schema for creating a new content item."""

    title: str
    body: str | None = None
    tags: list[str] | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        """Normalize and validate tags if provided."""
        if v is None:
            return None
        if not isinstance(v, list) or not all(isinstance(tag, str) for tag in v):
            return v  # Leave type errors to field validation
        return validate_and_normalize_tags(v, skip_empty=False)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        """Validate title is not empty."""
        return check_title_not_empty(v)


class ContentUpdate(BaseModel):
    """
    Schema for updating an existing content item.

    Omitted fields are left unchanged. For tags, omitting the field keeps the
    current associations while an empty list removes all of them. Tag names
    are trimmed of surrounding whitespace and otherwise matched exactly; a
    blank name is rejected rather than read as an empty list.
    """

    title: str | None = None
    body: str | None = None
    tags: list[str] | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        """Normalize and validate tags if provided."""
        if v is None:
            return None
        if not isinstance(v, list) or not all(isinstance(tag, str) for tag in v):
            return v  # Leave type errors to field validation
        return validate_and_normalize_tags(v, skip_empty=False)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str | None:
        """Validate title is not empty or null (if provided)."""
        if v is None:
            raise ValueError("Title cannot be null")
        return check_title_not_empty(v)


class ContentResponse(BaseModel):
    """
    Schema for content responses.

    Uses model_validator to extract tag names from the tags relationship
    when it is eagerly loaded.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    body: str | None
    views: int
    tags: list[str] = []

    @model_validator(mode="before")
    @classmethod
    def extract_from_sqlalchemy(cls, data: Any) -> Any:
        """
        Extract fields from a SQLAlchemy model and tag names from its tags.

        Only reads the relationship if it is already loaded, so serialization
        never triggers lazy loading outside the async context.
        """
        if hasattr(data, "__dict__") and not isinstance(data, dict):
            field_names = set(cls.model_fields.keys()) - {"tags"}
            data_dict = {key: getattr(data, key) for key in field_names if hasattr(data, key)}
            loaded_tags = data.__dict__.get("tags")
            data_dict["tags"] = [tag.name for tag in loaded_tags] if loaded_tags else []
            return data_dict
        return data


class TaggedContentResponse(BaseModel):
    """Schema for a content item listed under one tag."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    body: str | None
    views: int
    tag_id: int
