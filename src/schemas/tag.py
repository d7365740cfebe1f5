"""Pydantic schemas for tag endpoints."""
from pydantic import BaseModel, ConfigDict


class TagResponse(BaseModel):
    """Schema for a tag."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
