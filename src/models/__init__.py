"""SQLAlchemy models."""
from models.base import Base
from models.tag import Tag, content_tags  # Must be before content due to import
from models.content import Content
from models.content_history import ContentHistory

__all__ = [
    "Base",
    "Content",
    "ContentHistory",
    "Tag",
    "content_tags",
]
