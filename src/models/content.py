"""Content model for storing versioned text records."""
from typing import TYPE_CHECKING

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base
from models.tag import content_tags

if TYPE_CHECKING:
    from models.content_history import ContentHistory
    from models.tag import Tag


class Content(Base):
    """Content model - title/body record with a view counter and tags."""

    __tablename__ = "contents"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    views: Mapped[int] = mapped_column(default=0, server_default="0", nullable=False)

    tags: Mapped[list["Tag"]] = relationship(
        secondary=content_tags,
        back_populates="contents",
        order_by="Tag.id",
        passive_deletes=True,
    )
    history: Mapped[list["ContentHistory"]] = relationship(
        back_populates="content",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ContentHistory.version",
    )

    @property
    def tag_names(self) -> list[str]:
        """Names of the loaded tags, in tag id order."""
        return [tag.name for tag in self.tags]
