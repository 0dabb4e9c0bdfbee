import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from src.sushflix.api.deps import StorageGatewayDep
from src.sushflix.core.errors import AuthorizationError
from src.sushflix.core.pbac import require_permission
from src.sushflix.crud.crud_content import content as crud_content
from src.sushflix.db.session import SessionDep
from src.sushflix.models.content import Content
from src.sushflix.schemas import AuthContext, ContentCreate, ContentResponse, ContentUpdate, MediaUploadResponse
from src.sushflix.schemas.enums import MAX_LEVEL, MIN_LEVEL, AssetClass, MediaType
from src.sushflix.services.access_service import access_evaluator
from src.sushflix.services.storage_service import MediaStorageGateway, StoredObject

router = APIRouter()
logger = logging.getLogger(__name__)


def to_response(content: Content, allowed: bool) -> ContentResponse:
    """Render a content item for a viewer, withholding URLs unless allowed."""
    response = ContentResponse.model_validate(content)
    if not allowed:
        response.media_url = None
        response.thumbnail_url = None
        response.locked = True
    return response


def ensure_owner(content: Content, current_user: AuthContext) -> None:
    if content.creator_id != current_user.user_id:
        raise AuthorizationError(f"user {current_user.user_id} does not own content {content.id}")


async def store_media(
    gateway: MediaStorageGateway,
    owner_id: UUID,
    file: UploadFile,
    thumbnail: Optional[UploadFile],
    media_type: MediaType,
) -> tuple[StoredObject, Optional[StoredObject]]:
    """Upload a media file and its optional thumbnail as one unit."""
    media = await gateway.upload(owner_id, file, AssetClass.CONTENT_MEDIA, media_type)
    if thumbnail is None:
        return media, None
    try:
        thumb = await gateway.upload(owner_id, thumbnail, AssetClass.THUMBNAIL, MediaType.IMAGE)
    except BaseException:
        await gateway.discard(media.key)
        raise
    return media, thumb


@router.post("", response_model=ContentResponse, status_code=status.HTTP_201_CREATED)
async def create_content(
    db: SessionDep,
    gateway: StorageGatewayDep,
    current_user: Annotated[AuthContext, Depends(require_permission("create", "content"))],
    file: UploadFile = File(...),
    title: str = Form(...),
    media_type: MediaType = Form(...),
    required_level: int = Form(0, ge=MIN_LEVEL, le=MAX_LEVEL),
    description: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
) -> ContentResponse:
    """Publish a content item together with its media."""
    content_in = ContentCreate(
        title=title,
        description=description,
        media_type=media_type,
        required_level=required_level,
    )
    media, thumb = await store_media(gateway, current_user.user_id, file, thumbnail, media_type)
    try:
        content = await crud_content.create(
            db,
            creator_id=current_user.user_id,
            obj_in=content_in,
            media=media,
            thumbnail=thumb,
        )
    except BaseException:
        # nothing references the new objects yet
        logger.error(f"Recording content for {media.key} failed, removing stored media")
        await gateway.discard(media.key)
        if thumb is not None:
            await gateway.discard(thumb.key)
        raise
    return to_response(content, allowed=True)


@router.get("", response_model=list[ContentResponse])
async def read_feed(
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("read", "content"))],
    creator_id: Optional[UUID] = None,
    media_type: Optional[MediaType] = None,
    accessible_only: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
) -> list[ContentResponse]:
    """List content newest first. URLs are only included on items the caller may see."""
    contents = await crud_content.list_feed(
        db, creator_id=creator_id, media_type=media_type, skip=skip, limit=limit
    )
    access = await access_evaluator.accessible(db, current_user.user_id, contents)
    return [
        to_response(content, allowed=access[content.id])
        for content in contents
        if access[content.id] or not accessible_only
    ]


@router.get(
    "/{content_id}",
    response_model=ContentResponse,
    responses={status.HTTP_402_PAYMENT_REQUIRED: {"model": ContentResponse}},
)
async def read_content(
    content_id: UUID,
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("read", "content"))],
):
    """Get a content item. Gated items the caller is not entitled to come back locked with 402."""
    content = await crud_content.get_active(db, id=content_id)
    if not await access_evaluator.can_access(db, current_user.user_id, content):
        return JSONResponse(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            content=jsonable_encoder(to_response(content, allowed=False)),
        )
    content = await crud_content.record_view(db, content=content)
    return to_response(content, allowed=True)


@router.post(
    "/{content_id}/media",
    response_model=MediaUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_content_media(
    content_id: UUID,
    db: SessionDep,
    gateway: StorageGatewayDep,
    current_user: Annotated[AuthContext, Depends(require_permission("update", "content"))],
    file: UploadFile = File(...),
    media_type: MediaType = Form(...),
    required_level: int = Form(..., ge=MIN_LEVEL, le=MAX_LEVEL),
    thumbnail: Optional[UploadFile] = File(None),
) -> MediaUploadResponse:
    """Attach new media to one of the caller's content items, replacing the old media."""
    content = await crud_content.get_active(db, id=content_id)
    ensure_owner(content, current_user)

    old_thumbnail_key = content.thumbnail_key
    new_thumbnail: Optional[StoredObject] = None

    async def persist(media: StoredObject) -> None:
        nonlocal new_thumbnail
        if thumbnail is not None:
            new_thumbnail = await gateway.upload(
                current_user.user_id, thumbnail, AssetClass.THUMBNAIL, MediaType.IMAGE
            )
        try:
            await crud_content.attach_media(
                db,
                content=content,
                media=media,
                thumbnail=new_thumbnail,
                media_type=media_type,
                required_level=required_level,
            )
        except BaseException:
            if new_thumbnail is not None:
                await gateway.discard(new_thumbnail.key)
            raise

    result = await gateway.replace(
        current_user.user_id,
        file,
        old_key=content.media_key,
        asset_class=AssetClass.CONTENT_MEDIA,
        declared_kind=media_type,
        persist=persist,
    )

    warnings = [result.warning] if result.warning else []
    if old_thumbnail_key and old_thumbnail_key != content.thumbnail_key:
        warning = await gateway.discard(old_thumbnail_key)
        if warning:
            warnings.append(warning)

    return MediaUploadResponse(
        url=content.media_url,
        thumbnail_url=content.thumbnail_url,
        warnings=warnings,
    )


@router.patch("/{content_id}", response_model=ContentResponse)
async def update_content(
    content_id: UUID,
    content_in: ContentUpdate,
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("update", "content"))],
) -> ContentResponse:
    """Update metadata, including the required tier, of one of the caller's items."""
    content = await crud_content.get_active(db, id=content_id)
    ensure_owner(content, current_user)
    content = await crud_content.update_metadata(db, content=content, obj_in=content_in)
    return to_response(content, allowed=True)


@router.delete("/{content_id}")
async def delete_content(
    content_id: UUID,
    db: SessionDep,
    gateway: StorageGatewayDep,
    current_user: Annotated[AuthContext, Depends(require_permission("delete", "content"))],
    hard: bool = False,
) -> dict:
    """Delete one of the caller's items. A hard delete also removes its stored media."""
    content = await crud_content.get_active(db, id=content_id)
    ensure_owner(content, current_user)

    if not hard:
        await crud_content.soft_delete(db, content=content)
        return {"message": "Content deleted"}

    keys = [key for key in (content.media_key, content.thumbnail_key) if key]
    await crud_content.remove(db, id=content.id)
    warnings = []
    for key in keys:
        warning = await gateway.discard(key)
        if warning:
            warnings.append(warning)
    return {"message": "Content deleted", "warnings": warnings}


@router.post("/{content_id}/like", response_model=ContentResponse)
async def like_content(
    content_id: UUID,
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("like", "content"))],
) -> ContentResponse:
    """Like an item the caller is entitled to see."""
    content = await crud_content.get_active(db, id=content_id)
    if not await access_evaluator.can_access(db, current_user.user_id, content):
        raise AuthorizationError(f"user {current_user.user_id} liked gated content {content_id}")
    content = await crud_content.record_like(db, content=content, user_id=current_user.user_id)
    return to_response(content, allowed=True)
