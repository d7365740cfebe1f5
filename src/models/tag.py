"""Tag model and the content/tag junction table."""
from typing import TYPE_CHECKING

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base

if TYPE_CHECKING:
    from models.content import Content


# Junction table for many-to-many relationship between contents and tags
content_tags = Table(
    "content_tags",
    Base.metadata,
    Column(
        "content_id",
        Integer,
        ForeignKey("contents.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        Integer,
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    # Index for lookups by tag (composite PK already indexes content_id first)
    Index("ix_content_tags_tag_id", "tag_id"),
)


class Tag(Base):
    """Tag model - shared vocabulary, not owned by any single content item."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    contents: Mapped[list["Content"]] = relationship(
        secondary=content_tags,
        back_populates="tags",
        passive_deletes=True,
    )
