"""Content endpoints: CRUD, version history and rollback."""
from fastapi import APIRouter, Depends, Response, status

from api.dependencies import DatabaseId, get_content_service
from schemas.content import ContentCreate, ContentResponse, ContentUpdate
from schemas.history import HistoryResponse
from services.content_service import ContentService

router = APIRouter(prefix="/contents", tags=["contents"])


@router.post("", response_model=ContentResponse, status_code=status.HTTP_201_CREATED)
async def create_content(
    data: ContentCreate,
    service: ContentService = Depends(get_content_service),
) -> ContentResponse:
    """
    Create a content item.

    Tags that don't exist yet are created. The first history version (1) is
    recorded with the given title and body.
    """
    content = await service.create(data)
    return ContentResponse.model_validate(content)


@router.get("", response_model=list[ContentResponse])
async def list_contents(
    service: ContentService = Depends(get_content_service),
) -> list[ContentResponse]:
    """List all content items with their tags. Does not count as a view."""
    contents = await service.list_all()
    return [ContentResponse.model_validate(content) for content in contents]


@router.get("/{content_id}", response_model=ContentResponse)
async def get_content(
    content_id: DatabaseId,
    service: ContentService = Depends(get_content_service),
) -> ContentResponse:
    """
    Get a content item by ID.

    Every successful read increments `views` by one; the response carries the
    incremented value. Returns 404 if the content doesn't exist.
    """
    content = await service.get(content_id)
    return ContentResponse.model_validate(content)


@router.put("/{content_id}", response_model=ContentResponse)
async def update_content(
    content_id: DatabaseId,
    data: ContentUpdate,
    service: ContentService = Depends(get_content_service),
) -> ContentResponse:
    """
    Update a content item.

    Only provided fields are changed and a new history version is recorded.
    Omitting `tags` keeps the current tags; `"tags": []` removes them all.
    Returns 404 if the content doesn't exist.
    """
    content = await service.update(content_id, data)
    return ContentResponse.model_validate(content)


@router.delete("/{content_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_content(
    content_id: DatabaseId,
    service: ContentService = Depends(get_content_service),
) -> Response:
    """Delete a content item with its history and tag links. Tags are kept."""
    await service.delete(content_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{content_id}/history", response_model=list[HistoryResponse])
async def get_content_history(
    content_id: DatabaseId,
    service: ContentService = Depends(get_content_service),
) -> list[HistoryResponse]:
    """Get the full history of a content item, newest version first."""
    records = await service.list_history(content_id)
    return [HistoryResponse.model_validate(record) for record in records]


@router.post("/{content_id}/rollback/{version}", response_model=ContentResponse)
async def rollback_content(
    content_id: DatabaseId,
    version: DatabaseId,
    service: ContentService = Depends(get_content_service),
) -> ContentResponse:
    """
    Restore title and body from an earlier version.

    The restore is recorded as a new version at the end of the history.
    Returns 404 if the content has no such version.
    """
    content = await service.rollback(content_id, version)
    return ContentResponse.model_validate(content)
