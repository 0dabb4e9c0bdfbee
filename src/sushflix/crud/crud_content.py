import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.sushflix.core.errors import NotFoundError
from src.sushflix.crud.base import CRUDBase
from src.sushflix.models.content import Content, ContentLike
from src.sushflix.schemas import ContentCreate, ContentUpdate
from src.sushflix.schemas.enums import MediaType
from src.sushflix.services.storage_service import StoredObject
from src.sushflix.utils.dates import utcnow

logger = logging.getLogger(__name__)


def _thumbnail_for(media_type: MediaType, media: StoredObject, thumbnail: Optional[StoredObject]):
    """(url, key) for the thumbnail. Images without one reuse the media URL."""
    if thumbnail is not None:
        return thumbnail.url, thumbnail.key
    if MediaType(media_type) == MediaType.IMAGE:
        # shared with the media object, so no key of its own
        return media.url, None
    return None, None


class CRUDContent(CRUDBase[Content, ContentCreate, ContentUpdate]):
    """Content metadata: required tier, media URLs and counters."""

    async def create(
        self,
        db: AsyncSession,
        *,
        creator_id: UUID,
        obj_in: ContentCreate,
        media: StoredObject,
        thumbnail: Optional[StoredObject] = None,
    ) -> Content:
        """Record a content item whose media is already stored."""
        thumbnail_url, thumbnail_key = _thumbnail_for(obj_in.media_type, media, thumbnail)
        content = Content(
            creator_id=creator_id,
            title=obj_in.title,
            description=obj_in.description,
            media_type=MediaType(obj_in.media_type).value,
            media_url=media.url,
            media_key=media.key,
            thumbnail_url=thumbnail_url,
            thumbnail_key=thumbnail_key,
            required_level=obj_in.required_level,
            likes=0,
            views=0,
        )
        db.add(content)
        await db.commit()
        await db.refresh(content)
        logger.info(f"Content created: {content.id} (level {content.required_level})")
        return content

    async def get_active(self, db: AsyncSession, *, id: UUID) -> Content:
        """Get a content item that has not been deleted."""
        stmt = select(Content).where(Content.id == id, Content.deleted_at.is_(None))
        result = await db.execute(stmt)
        content = result.scalar_one_or_none()
        if content is None:
            raise NotFoundError("Content not found")
        return content

    async def list_feed(
        self,
        db: AsyncSession,
        *,
        creator_id: Optional[UUID] = None,
        media_type: Optional[MediaType] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> list[Content]:
        """Newest-first listing of live content, optionally filtered."""
        stmt = select(Content).where(Content.deleted_at.is_(None))
        if creator_id is not None:
            stmt = stmt.where(Content.creator_id == creator_id)
        if media_type is not None:
            stmt = stmt.where(Content.media_type == MediaType(media_type).value)
        stmt = stmt.order_by(Content.created_at.desc()).offset(skip).limit(limit)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def update_metadata(
        self, db: AsyncSession, *, content: Content, obj_in: ContentUpdate
    ) -> Content:
        """Apply creator-side metadata changes. Ownership is checked by the caller."""
        return await self.update(db, db_obj=content, obj_in=obj_in)

    async def attach_media(
        self,
        db: AsyncSession,
        *,
        content: Content,
        media: StoredObject,
        thumbnail: Optional[StoredObject],
        media_type: MediaType,
        required_level: int,
    ) -> Content:
        """Point a content item at newly stored media."""
        thumbnail_url, thumbnail_key = _thumbnail_for(media_type, media, thumbnail)
        content.media_type = MediaType(media_type).value
        content.media_url = media.url
        content.media_key = media.key
        content.thumbnail_url = thumbnail_url
        content.thumbnail_key = thumbnail_key
        content.required_level = required_level
        db.add(content)
        await db.commit()
        await db.refresh(content)
        return content

    async def record_view(self, db: AsyncSession, *, content: Content) -> Content:
        """Count a view with an atomic increment."""
        stmt = update(Content).where(Content.id == content.id).values(views=Content.views + 1)
        await db.execute(stmt)
        await db.commit()
        await db.refresh(content)
        return content

    async def record_like(self, db: AsyncSession, *, content: Content, user_id: UUID) -> Content:
        """Count a like once per viewer. Likes are never taken back."""
        db.add(ContentLike(content_id=content.id, user_id=user_id))
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            await db.refresh(content)
            return content
        stmt = update(Content).where(Content.id == content.id).values(likes=Content.likes + 1)
        await db.execute(stmt)
        await db.commit()
        await db.refresh(content)
        return content

    async def soft_delete(self, db: AsyncSession, *, content: Content) -> Content:
        content.deleted_at = utcnow()
        db.add(content)
        await db.commit()
        await db.refresh(content)
        logger.info(f"Content soft-deleted: {content.id}")
        return content


content = CRUDContent(Content)
