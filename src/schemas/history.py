"""Pydantic schemas for history endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class HistoryResponse(BaseModel):
    """Schema for a single history record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    content_id: int
    title: str
    body: str | None
    version: int
    updated_at: datetime
