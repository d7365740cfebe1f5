"""Tests for content service versioning, rollback and deletion."""
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from db.session import Storage
from models.content import Content
from models.content_history import ContentHistory
from models.tag import Tag, content_tags
from schemas.content import ContentCreate, ContentUpdate
from services.content_service import ContentService
from services.exceptions import (
    ContentNotFoundError,
    HistoryVersionNotFoundError,
    NotFoundError,
)


async def _history_rows(storage: Storage, content_id: int) -> list[ContentHistory]:
    """Read history rows for a content item in version order."""
    async with storage.session() as db:
        result = await db.execute(
            select(ContentHistory)
            .where(ContentHistory.content_id == content_id)
            .order_by(ContentHistory.version),
        )
        return list(result.scalars())


async def _count(storage: Storage, table: object) -> int:
    async with storage.session() as db:
        result = await db.execute(select(func.count()).select_from(table))
        return result.scalar_one()


@pytest.fixture
async def sample_content(content_service: ContentService) -> Content:
    """Create a content item with two tags."""
    return await content_service.create(
        ContentCreate(title="Test Content", body="Test Body", tags=["tag1", "tag2"]),
    )


# =============================================================================
# create Tests
# =============================================================================


async def test__create__stores_content_with_zero_views(
    content_service: ContentService,
    storage: Storage,
) -> None:
    """Test that create stores the fields and starts views at 0."""
    content = await content_service.create(ContentCreate(title="T", body="B"))

    assert content.id is not None
    assert content.title == "T"
    assert content.body == "B"
    assert content.views == 0
    assert content.tag_names == []
    assert await _count(storage, Content) == 1


async def test__create__writes_version_one(
    content_service: ContentService,
    storage: Storage,
) -> None:
    """Test that create writes exactly one history row with version 1."""
    content = await content_service.create(ContentCreate(title="T", body="B"))

    rows = await _history_rows(storage, content.id)
    assert len(rows) == 1
    assert rows[0].version == 1
    assert rows[0].title == "T"
    assert rows[0].body == "B"
    assert rows[0].updated_at is not None


async def test__create__body_is_optional(content_service: ContentService) -> None:
    """Test that content can be created without a body."""
    content = await content_service.create(ContentCreate(title="Only title"))

    assert content.body is None


async def test__create__associates_tags(
    content_service: ContentService,
    sample_content: Content,
) -> None:
    """Test that create resolves the tags and returns their names."""
    assert sorted(sample_content.tag_names) == ["tag1", "tag2"]


# =============================================================================
# get Tests
# =============================================================================


async def test__get__increments_views(
    content_service: ContentService,
    sample_content: Content,
) -> None:
    """Test that each read increments views by exactly one."""
    for expected in range(1, 6):
        content = await content_service.get(sample_content.id)
        assert content.views == expected


async def test__get__returns_tags(
    content_service: ContentService,
    sample_content: Content,
) -> None:
    """Test that get loads the tag names."""
    content = await content_service.get(sample_content.id)

    assert sorted(content.tag_names) == ["tag1", "tag2"]


async def test__get__missing_content_raises_not_found(
    content_service: ContentService,
) -> None:
    """Test that reading an unknown id raises ContentNotFoundError."""
    with pytest.raises(ContentNotFoundError) as exc_info:
        await content_service.get(999)

    assert exc_info.value.content_id == 999
    assert isinstance(exc_info.value, NotFoundError)


# =============================================================================
# update Tests
# =============================================================================


async def test__update__appends_next_version(
    content_service: ContentService,
    storage: Storage,
    sample_content: Content,
) -> None:
    """Test that update changes the fields and appends version 2."""
    updated = await content_service.update(
        sample_content.id,
        ContentUpdate(title="Updated", body="Updated Body"),
    )

    assert updated.title == "Updated"
    assert updated.body == "Updated Body"

    rows = await _history_rows(storage, sample_content.id)
    assert [row.version for row in rows] == [1, 2]
    assert (rows[1].title, rows[1].body) == ("Updated", "Updated Body")


async def test__update__partial_update_keeps_other_fields(
    content_service: ContentService,
    storage: Storage,
    sample_content: Content,
) -> None:
    """Test that a title-only update keeps the body and snapshots the result."""
    updated = await content_service.update(sample_content.id, ContentUpdate(title="T2"))

    assert updated.title == "T2"
    assert updated.body == "Test Body"

    rows = await _history_rows(storage, sample_content.id)
    assert (rows[-1].title, rows[-1].body) == ("T2", "Test Body")


async def test__update__does_not_touch_views(
    content_service: ContentService,
    sample_content: Content,
) -> None:
    """Test that update leaves the view counter alone."""
    await content_service.get(sample_content.id)
    await content_service.get(sample_content.id)

    updated = await content_service.update(sample_content.id, ContentUpdate(body="new"))

    assert updated.views == 2


async def test__update__many_updates_have_contiguous_versions(
    content_service: ContentService,
    storage: Storage,
    sample_content: Content,
) -> None:
    """Test that M updates leave M+1 history rows numbered 1..M+1."""
    for i in range(1, 6):
        await content_service.update(
            sample_content.id,
            ContentUpdate(title=f"Title {i}", body=f"Body {i}"),
        )

    rows = await _history_rows(storage, sample_content.id)
    assert [row.version for row in rows] == [1, 2, 3, 4, 5, 6]
    assert (rows[-1].title, rows[-1].body) == ("Title 5", "Body 5")

    content = await content_service.get(sample_content.id)
    assert (content.title, content.body) == ("Title 5", "Body 5")


async def test__update__empty_update_still_records_version(
    content_service: ContentService,
    storage: Storage,
    sample_content: Content,
) -> None:
    """Test that an update with no fields still appends a history row."""
    await content_service.update(sample_content.id, ContentUpdate())

    rows = await _history_rows(storage, sample_content.id)
    assert [row.version for row in rows] == [1, 2]
    assert (rows[1].title, rows[1].body) == ("Test Content", "Test Body")


async def test__update__explicit_null_body_clears_body(
    content_service: ContentService,
    sample_content: Content,
) -> None:
    """Test that body can be set back to null."""
    updated = await content_service.update(
        sample_content.id, ContentUpdate.model_validate({"body": None}),
    )

    assert updated.body is None


async def test__update__omitted_tags_are_kept(
    content_service: ContentService,
    sample_content: Content,
) -> None:
    """Test that omitting tags leaves the associations unchanged."""
    updated = await content_service.update(sample_content.id, ContentUpdate(title="T2"))

    assert sorted(updated.tag_names) == ["tag1", "tag2"]


async def test__update__empty_tags_clear_associations(
    content_service: ContentService,
    storage: Storage,
    sample_content: Content,
) -> None:
    """Test that an empty tag list removes all associations but keeps the tags."""
    updated = await content_service.update(sample_content.id, ContentUpdate(tags=[]))

    assert updated.tag_names == []
    assert await _count(storage, content_tags) == 0
    assert await _count(storage, Tag) == 2


async def test__update__replaces_tags(
    content_service: ContentService,
    sample_content: Content,
) -> None:
    """Test that a new tag list replaces the old one."""
    updated = await content_service.update(
        sample_content.id, ContentUpdate(tags=["tag2", "tag3"]),
    )

    assert sorted(updated.tag_names) == ["tag2", "tag3"]


async def test__update__missing_content_writes_nothing(
    content_service: ContentService,
    storage: Storage,
) -> None:
    """Test that updating an unknown id raises and leaves no history or tags."""
    with pytest.raises(ContentNotFoundError):
        await content_service.update(123, ContentUpdate(title="x", tags=["new"]))

    assert await _count(storage, ContentHistory) == 0
    assert await _count(storage, Tag) == 0


async def test__update__version_conflict_is_retried(
    content_service: ContentService,
    sample_content: Content,
    storage: Storage,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test that a taken version is retried with a fresh latest version."""
    real_get_latest_version = content_service._get_latest_version
    calls: list[int] = []

    async def stale_then_real(db: object, content_id: int) -> int:
        calls.append(content_id)
        if len(calls) == 1:
            return 0  # version 1 already belongs to the create
        return await real_get_latest_version(db, content_id)

    monkeypatch.setattr(content_service, "_get_latest_version", stale_then_real)

    updated = await content_service.update(sample_content.id, ContentUpdate(title="Retried"))

    assert updated.title == "Retried"
    assert len(calls) == 2
    rows = await _history_rows(storage, sample_content.id)
    assert [(r.version, r.title) for r in rows] == [(1, "Test Content"), (2, "Retried")]


async def test__update__gives_up_after_repeated_version_conflicts(
    content_service: ContentService,
    sample_content: Content,
    storage: Storage,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test that persistent conflicts raise and roll back the whole update."""
    async def always_stale(db: object, content_id: int) -> int:
        return 0

    monkeypatch.setattr(content_service, "_get_latest_version", always_stale)

    with pytest.raises(IntegrityError):
        await content_service.update(sample_content.id, ContentUpdate(title="Lost"))

    rows = await _history_rows(storage, sample_content.id)
    assert [r.version for r in rows] == [1]
    async with storage.session() as db:
        content = await db.get(Content, sample_content.id)
        assert content.title == "Test Content"


# =============================================================================
# rollback Tests
# =============================================================================


async def test__rollback__restores_snapshot_as_new_version(
    content_service: ContentService,
    storage: Storage,
    sample_content: Content,
) -> None:
    """Test that rollback copies an old snapshot forward as version max+1."""
    await content_service.update(sample_content.id, ContentUpdate(title="V2", body="B2"))
    await content_service.update(sample_content.id, ContentUpdate(title="V3", body="B3"))

    restored = await content_service.rollback(sample_content.id, 1)

    assert (restored.title, restored.body) == ("Test Content", "Test Body")

    rows = await _history_rows(storage, sample_content.id)
    assert [row.version for row in rows] == [1, 2, 3, 4]
    assert (rows[-1].title, rows[-1].body) == ("Test Content", "Test Body")


async def test__rollback__never_shrinks_history(
    content_service: ContentService,
    storage: Storage,
    sample_content: Content,
) -> None:
    """Test that rolling back to the latest version still appends a row."""
    await content_service.rollback(sample_content.id, 1)
    await content_service.rollback(sample_content.id, 2)

    rows = await _history_rows(storage, sample_content.id)
    assert [row.version for row in rows] == [1, 2, 3]


async def test__rollback__keeps_views_and_tags(
    content_service: ContentService,
    sample_content: Content,
) -> None:
    """Test that rollback does not touch the view counter or tag associations."""
    await content_service.get(sample_content.id)
    await content_service.update(sample_content.id, ContentUpdate(title="V2", tags=["other"]))

    restored = await content_service.rollback(sample_content.id, 1)

    assert restored.views == 1
    assert restored.tag_names == ["other"]


async def test__rollback__only_touches_target_content(
    content_service: ContentService,
    sample_content: Content,
) -> None:
    """Test that rollback of one content leaves other content rows unchanged."""
    other = await content_service.create(ContentCreate(title="Other", body="Other Body"))
    await content_service.update(sample_content.id, ContentUpdate(title="V2"))

    await content_service.rollback(sample_content.id, 1)

    other_now = await content_service.get(other.id)
    assert (other_now.title, other_now.body) == ("Other", "Other Body")


async def test__rollback__unknown_version_raises_not_found(
    content_service: ContentService,
    storage: Storage,
    sample_content: Content,
) -> None:
    """Test that rolling back to a missing version writes nothing."""
    with pytest.raises(HistoryVersionNotFoundError) as exc_info:
        await content_service.rollback(sample_content.id, 7)

    assert exc_info.value.version == 7
    rows = await _history_rows(storage, sample_content.id)
    assert len(rows) == 1


async def test__rollback__unknown_content_raises_not_found(
    content_service: ContentService,
) -> None:
    """Test that rolling back a missing content raises a NotFoundError."""
    with pytest.raises(NotFoundError):
        await content_service.rollback(404, 1)


# =============================================================================
# delete Tests
# =============================================================================


async def test__delete__cascades_history_and_links_but_keeps_tags(
    content_service: ContentService,
    storage: Storage,
    sample_content: Content,
) -> None:
    """Test that delete removes history and tag links while tags survive."""
    await content_service.update(sample_content.id, ContentUpdate(title="V2"))

    await content_service.delete(sample_content.id)

    assert await _count(storage, Content) == 0
    assert await _count(storage, ContentHistory) == 0
    assert await _count(storage, content_tags) == 0
    assert await _count(storage, Tag) == 2


async def test__delete__missing_content_raises_not_found(
    content_service: ContentService,
) -> None:
    """Test that deleting an unknown id raises ContentNotFoundError."""
    with pytest.raises(ContentNotFoundError):
        await content_service.delete(42)


async def test__delete__twice_raises_not_found(
    content_service: ContentService,
    sample_content: Content,
) -> None:
    """Test that a second delete of the same id is a miss."""
    await content_service.delete(sample_content.id)

    with pytest.raises(ContentNotFoundError):
        await content_service.delete(sample_content.id)


# =============================================================================
# list_history / list_all Tests
# =============================================================================


async def test__list_history__newest_first(
    content_service: ContentService,
    sample_content: Content,
) -> None:
    """Test that history is ordered by version descending."""
    await content_service.update(sample_content.id, ContentUpdate(title="V2"))
    await content_service.update(sample_content.id, ContentUpdate(title="V3"))

    history = await content_service.list_history(sample_content.id)

    assert [row.version for row in history] == [3, 2, 1]
    assert history[0].title == "V3"
    assert all(row.content_id == sample_content.id for row in history)


async def test__list_history__missing_content_raises_not_found(
    content_service: ContentService,
) -> None:
    """Test that a content without history raises ContentNotFoundError."""
    with pytest.raises(ContentNotFoundError):
        await content_service.list_history(1)


async def test__list_history__deleted_content_raises_not_found(
    content_service: ContentService,
    sample_content: Content,
) -> None:
    """Test that history is gone once the content is deleted."""
    await content_service.delete(sample_content.id)

    with pytest.raises(ContentNotFoundError):
        await content_service.list_history(sample_content.id)


async def test__list_all__returns_contents_with_tags_without_counting_views(
    content_service: ContentService,
    sample_content: Content,
) -> None:
    """Test that list_all returns every content with tags and views untouched."""
    await content_service.create(ContentCreate(title="Second", body=None))

    contents = await content_service.list_all()

    assert [c.title for c in contents] == ["Test Content", "Second"]
    assert sorted(contents[0].tag_names) == ["tag1", "tag2"]
    assert contents[1].tag_names == []
    assert all(c.views == 0 for c in contents)
