"""Tag endpoints."""
from fastapi import APIRouter, Depends, Response, status

from api.dependencies import DatabaseId, get_tag_service
from schemas.content import TaggedContentResponse
from schemas.tag import TagResponse
from services.tag_service import TagService

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", response_model=list[TagResponse])
async def list_tags(
    service: TagService = Depends(get_tag_service),
) -> list[TagResponse]:
    """Get all tags, including ones no content uses anymore."""
    tags = await service.list_tags()
    return [TagResponse.model_validate(tag) for tag in tags]


@router.get("/{tag_id}/contents", response_model=list[TaggedContentResponse])
async def list_tagged_contents(
    tag_id: DatabaseId,
    service: TagService = Depends(get_tag_service),
) -> list[TaggedContentResponse]:
    """Get the content items carrying a tag. An unknown tag gives an empty list."""
    rows = await service.list_tagged_contents(tag_id)
    return [
        TaggedContentResponse(
            id=content.id,
            title=content.title,
            body=content.body,
            views=content.views,
            tag_id=row_tag_id,
        )
        for content, row_tag_id in rows
    ]


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_all_tags(
    service: TagService = Depends(get_tag_service),
) -> Response:
    """
    Delete every tag.

    Administrative operation: all tag associations are removed with them.
    Content items are not touched.
    """
    await service.delete_all()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
