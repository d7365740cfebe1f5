"""Service layer for tag operations."""
import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.content import Content
from models.tag import Tag, content_tags
from schemas.validators import validate_and_normalize_tags

if TYPE_CHECKING:
    from db.session import Storage

logger = logging.getLogger(__name__)


class TagService:
    """
    Tag lookup, lazy creation and content association.

    Methods taking a `db` session run inside the caller's transaction so tag
    changes commit or roll back together with the content write. The other
    methods open their own transaction on the injected storage.
    """

    def __init__(self, storage: "Storage") -> None:
        self.storage = storage

    async def resolve_or_create(
        self,
        db: AsyncSession,
        tag_names: list[str],
    ) -> list[Tag]:
        """
        Get existing tags or create new ones.

        Each new tag is inserted inside a savepoint. If another transaction
        created the same name first, the unique constraint fails, the savepoint
        is rolled back and the committed tag is read back instead.

        Args:
            db: Database session.
            tag_names: Tag names to get or create. Duplicates collapse.

        Returns:
            List of Tag objects (existing or newly created).
        """
        if not tag_names:
            return []

        normalized = validate_and_normalize_tags(tag_names)
        if not normalized:
            return []

        # Fetch existing tags
        result = await db.execute(select(Tag).where(Tag.name.in_(normalized)))
        existing_tags = {tag.name: tag for tag in result.scalars()}

        tags = []
        for name in normalized:
            tag = existing_tags.get(name)
            if tag is None:
                tag = await self._create_tag(db, name)
            tags.append(tag)
        return tags

    async def _create_tag(self, db: AsyncSession, name: str) -> Tag:
        """Insert a tag, falling back to a re-read when a concurrent insert won."""
        try:
            async with db.begin_nested():  # Creates savepoint
                tag = Tag(name=name)
                db.add(tag)
                await db.flush()
        except IntegrityError:
            # Savepoint rolled back, parent transaction intact
            logger.debug("Tag %r created concurrently, re-reading", name)
            tag = await self.get_tag_by_name(db, name)
            if tag is None:
                raise
            return tag
        logger.info("Created tag %r (id=%s)", name, tag.id)
        return tag

    async def get_tag_by_name(self, db: AsyncSession, tag_name: str) -> Tag | None:
        """Get a tag by exact name, or None."""
        result = await db.execute(select(Tag).where(Tag.name == tag_name))
        return result.scalar_one_or_none()

    async def get_content_tags(self, db: AsyncSession, content_id: int) -> list[Tag]:
        """Get the tags currently associated with a content item, by tag id."""
        result = await db.execute(
            select(Tag)
            .join(content_tags, Tag.id == content_tags.c.tag_id)
            .where(content_tags.c.content_id == content_id)
            .order_by(Tag.id),
        )
        return list(result.scalars())

    async def reconcile(
        self,
        db: AsyncSession,
        content_id: int,
        tag_names: list[str] | None,
    ) -> list[Tag]:
        """
        Make a content item's associations match exactly the given tag names.

        Tags that lose their last association are kept.

        Args:
            db: Database session.
            content_id: Content whose associations are replaced.
            tag_names: Desired tag names. None leaves the associations as they
                are; an empty list removes all of them.

        Returns:
            The tags associated with the content afterwards.
        """
        if tag_names is None:
            return await self.get_content_tags(db, content_id)

        tags = await self.resolve_or_create(db, tag_names)

        await db.execute(
            delete(content_tags).where(content_tags.c.content_id == content_id),
        )
        if tags:
            await db.execute(
                insert(content_tags),
                [{"content_id": content_id, "tag_id": tag.id} for tag in tags],
            )
        logger.debug(
            "Content %s tags set to %s", content_id, [tag.name for tag in tags],
        )
        return tags

    async def list_tags(self) -> list[Tag]:
        """Get all tags ordered by id."""
        async with self.storage.session() as db:
            result = await db.execute(select(Tag).order_by(Tag.id))
            return list(result.scalars())

    async def list_tagged_contents(self, tag_id: int) -> list[tuple[Content, int]]:
        """
        Get the content items associated with a tag.

        An unknown tag id yields an empty list.

        Returns:
            (content, tag_id) pairs ordered by content id.
        """
        async with self.storage.session() as db:
            result = await db.execute(
                select(Content, content_tags.c.tag_id)
                .join(content_tags, Content.id == content_tags.c.content_id)
                .where(content_tags.c.tag_id == tag_id)
                .order_by(Content.id),
            )
            return [(row[0], row[1]) for row in result]

    async def delete_all(self) -> int:
        """
        Delete every tag. Junction table entries cascade automatically.

        Returns:
            Number of tags deleted.
        """
        async with self.storage.transaction() as db:
            result = await db.execute(delete(Tag))
            count = result.rowcount
        logger.info("Deleted all tags (%s)", count)
        return count
