"""FastAPI dependencies for injection."""
from typing import Annotated

from fastapi import Depends, Path, Request

from core.config import get_settings
from db.session import Storage
from services.content_service import ContentService
from services.tag_service import TagService

# Largest value a 64-bit INTEGER primary key or version column can hold
MAX_DATABASE_ID = 2**63 - 1

DatabaseId = Annotated[int, Path(ge=1, le=MAX_DATABASE_ID)]


def get_storage(request: Request) -> Storage:
    """Return the storage adapter the application was built with."""
    return request.app.state.storage


def get_tag_service(storage: Storage = Depends(get_storage)) -> TagService:
    """Build a tag service bound to the application's storage."""
    return TagService(storage)


def get_content_service(
    storage: Storage = Depends(get_storage),
    tag_service: TagService = Depends(get_tag_service),
) -> ContentService:
    """Build a content service bound to the application's storage."""
    return ContentService(storage, tag_service)


__all__ = [
    "MAX_DATABASE_ID",
    "DatabaseId",
    "get_content_service",
    "get_settings",
    "get_storage",
    "get_tag_service",
]
