"""
Service layer for content CRUD, version history and rollback.

Every mutation appends one immutable ContentHistory row. Versions of a content
item start at 1 and grow by exactly one per create, update or rollback; a
rollback copies an old snapshot forward as a new version and never removes
history.
"""
import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.content import Content
from models.content_history import ContentHistory
from schemas.content import ContentCreate, ContentUpdate
from services.exceptions import ContentNotFoundError, HistoryVersionNotFoundError
from services.tag_service import TagService

if TYPE_CHECKING:
    from db.session import Storage

logger = logging.getLogger(__name__)

MAX_VERSION_RETRIES = 3


class ContentService:
    """
    Content service with versioned CRUD operations.

    Each public method runs in exactly one transaction obtained from the
    injected storage, so the version read and the history append (and the tag
    delete-then-insert) commit together or not at all.
    """

    def __init__(self, storage: "Storage", tag_service: TagService | None = None) -> None:
        self.storage = storage
        self.tag_service = tag_service or TagService(storage)

    # --- Helper Methods ---

    async def _get_with_tags(self, db: AsyncSession, content_id: int) -> Content | None:
        """Load a content row with its tags, overwriting any stale identity-map state."""
        result = await db.execute(
            select(Content)
            .options(selectinload(Content.tags))
            .where(Content.id == content_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def _get_latest_version(self, db: AsyncSession, content_id: int) -> int:
        """Get the highest history version of a content item (0 if none exist)."""
        result = await db.execute(
            select(func.max(ContentHistory.version)).where(
                ContentHistory.content_id == content_id,
            ),
        )
        return result.scalar_one_or_none() or 0

    async def _record_version(self, db: AsyncSession, content: Content) -> ContentHistory:
        """
        Append a history snapshot of the content's current title and body.

        The version is allocated as latest + 1 inside a savepoint. If a
        concurrent writer took that version first, the unique constraint
        fails, the savepoint is rolled back and the allocation is retried;
        the content change made earlier in the transaction is kept.

        Raises:
            IntegrityError: If the version is still taken after
                MAX_VERSION_RETRIES attempts, or on any other constraint error.
        """
        content_id, title, body = content.id, content.title, content.body

        for attempt in range(MAX_VERSION_RETRIES):
            try:
                async with db.begin_nested():
                    latest_version = await self._get_latest_version(db, content_id)
                    history = ContentHistory(
                        content_id=content_id,
                        title=title,
                        body=body,
                        version=latest_version + 1,
                    )
                    db.add(history)
                    await db.flush()
                    return history
            except IntegrityError as e:
                if not _is_version_conflict(e) or attempt == MAX_VERSION_RETRIES - 1:
                    raise
                logger.warning(
                    "Version conflict on content %s (attempt %s), retrying",
                    content_id, attempt + 1,
                )
        raise RuntimeError("Unexpected state in _record_version")

    async def _refresh_with_tags(self, db: AsyncSession, content: Content) -> None:
        """Refresh content and reload the tags relationship."""
        await db.flush()
        await db.refresh(content)
        await db.refresh(content, attribute_names=["tags"])

    # --- CRUD Operations ---

    async def create(self, data: ContentCreate) -> Content:
        """
        Create a content item with its first history version.

        Args:
            data: Title, optional body and optional tag names.

        Returns:
            The created content with its tags loaded (views is 0).
        """
        async with self.storage.transaction() as db:
            content = Content(title=data.title, body=data.body, views=0)
            db.add(content)
            await db.flush()

            await self._record_version(db, content)
            await self.tag_service.reconcile(db, content.id, data.tags)
            await self._refresh_with_tags(db, content)

        logger.info("Created content %s", content.id)
        return content

    async def get(self, content_id: int) -> Content:
        """
        Get a content item and count the read.

        Every successful fetch increments `views` by exactly one; the returned
        record carries the post-increment value.

        Raises:
            ContentNotFoundError: If the content doesn't exist (nothing is written).
        """
        async with self.storage.transaction() as db:
            result = await db.execute(
                update(Content)
                .where(Content.id == content_id)
                .values(views=Content.views + 1)
                .execution_options(synchronize_session=False),
            )
            if result.rowcount == 0:
                raise ContentNotFoundError(content_id)
            content = await self._get_with_tags(db, content_id)
        return content

    async def list_all(self) -> list[Content]:
        """Get every content item with its tags, ordered by id. Does not count views."""
        async with self.storage.session() as db:
            result = await db.execute(
                select(Content).options(selectinload(Content.tags)).order_by(Content.id),
            )
            return list(result.scalars())

    async def update(self, content_id: int, data: ContentUpdate) -> Content:
        """
        Update a content item and append a new history version.

        Only fields present in `data` are written. A history row is appended
        even when no field changed, carrying the resulting title and body.

        Args:
            content_id: ID of the content to update.
            data: Fields to change. `tags=None` (omitted) keeps the current
                associations; `tags=[]` clears them.

        Returns:
            The updated content with its tags loaded.

        Raises:
            ContentNotFoundError: If the content doesn't exist (nothing is written).
        """
        async with self.storage.transaction() as db:
            content = await self._get_with_tags(db, content_id)
            if content is None:
                raise ContentNotFoundError(content_id)

            update_data = data.model_dump(exclude_unset=True, exclude={"tags"})
            for field, value in update_data.items():
                setattr(content, field, value)
            await db.flush()

            history = await self._record_version(db, content)
            await self.tag_service.reconcile(db, content_id, data.tags)
            await self._refresh_with_tags(db, content)

        logger.info(
            "Updated content %s (fields=%s, version=%s)",
            content_id, sorted(update_data), history.version,
        )
        return content

    async def rollback(self, content_id: int, version: int) -> Content:
        """
        Restore a content item's title and body from an earlier version.

        The restored snapshot is appended as a new version (latest + 1), so the
        rollback itself shows up in the history. Views and tags are unchanged.

        Raises:
            HistoryVersionNotFoundError: If the content has no such version
                (including when the content doesn't exist). Nothing is written.
        """
        async with self.storage.transaction() as db:
            result = await db.execute(
                select(ContentHistory).where(
                    ContentHistory.content_id == content_id,
                    ContentHistory.version == version,
                ),
            )
            target = result.scalar_one_or_none()
            if target is None:
                raise HistoryVersionNotFoundError(content_id, version)

            content = await self._get_with_tags(db, content_id)
            if content is None:
                raise ContentNotFoundError(content_id)

            content.title = target.title
            content.body = target.body
            await db.flush()

            history = await self._record_version(db, content)
            await self._refresh_with_tags(db, content)

        logger.info(
            "Rolled back content %s to version %s as version %s",
            content_id, version, history.version,
        )
        return content

    async def delete(self, content_id: int) -> None:
        """
        Delete a content item. History and tag associations cascade; tags stay.

        Raises:
            ContentNotFoundError: If the content doesn't exist.
        """
        async with self.storage.transaction() as db:
            result = await db.execute(
                delete(Content)
                .where(Content.id == content_id)
                .execution_options(synchronize_session=False),
            )
            if result.rowcount == 0:
                raise ContentNotFoundError(content_id)
        logger.info("Deleted content %s", content_id)

    async def list_history(self, content_id: int) -> list[ContentHistory]:
        """
        Get all history records of a content item, newest version first.

        Raises:
            ContentNotFoundError: If there is no history (content never existed
                or was deleted).
        """
        async with self.storage.session() as db:
            result = await db.execute(
                select(ContentHistory)
                .where(ContentHistory.content_id == content_id)
                .order_by(ContentHistory.version.desc()),
            )
            records = list(result.scalars())
        if not records:
            raise ContentNotFoundError(content_id)
        return records


def _is_version_conflict(error: IntegrityError) -> bool:
    """True when the error is a duplicate (content_id, version) history row."""
    message = str(error)
    # PostgreSQL reports the constraint name, SQLite the column list
    return "uq_content_history_version" in message or "content_history.version" in message
