"""ContentHistory model for the append-only edit log of a content item."""
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base

if TYPE_CHECKING:
    from models.content import Content


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ContentHistory(Base):
    """
    Snapshot of a content item's title and body after one mutation.

    Rows are never updated or deleted by the application; they disappear only
    through the ON DELETE CASCADE of the owning content. Versions start at 1
    and grow by exactly one per create/update/rollback of the same content.
    """

    __tablename__ = "content_history"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    content_id: Mapped[int] = mapped_column(
        ForeignKey("contents.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )

    content: Mapped["Content"] = relationship(back_populates="history")

    __table_args__ = (
        # Unique constraint prevents duplicate versions from racing writers
        UniqueConstraint("content_id", "version", name="uq_content_history_version"),
        Index("ix_content_history_content_version", "content_id", "version"),
    )
