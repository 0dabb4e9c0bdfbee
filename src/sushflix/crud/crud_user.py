import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.sushflix.core.errors import ConflictError, NotFoundError, ValidationError
from src.sushflix.crud.base import CRUDBase
from src.sushflix.models.core import Follow, User as UserModel
from src.sushflix.schemas import UserCreate, UserUpdate
from src.sushflix.schemas.enums import AssetClass, Role

logger = logging.getLogger(__name__)

# columns holding (url, key) for each replaceable image slot
IMAGE_SLOTS = {
    AssetClass.PROFILE_PICTURE: ("profile_image_url", "profile_image_key"),
    AssetClass.COVER_PHOTO: ("cover_photo_url", "cover_photo_key"),
}


class CRUDUser(CRUDBase[UserModel, UserCreate, UserUpdate]):
    """CRUD operations for user profiles and follows."""

    async def onboard(
        self, db: AsyncSession, *, user_id: UUID, role: Role, obj_in: UserCreate
    ) -> UserModel:
        """Create the profile of an authenticated identity."""
        stmt = select(UserModel).where(
            or_(UserModel.id == user_id, UserModel.username == obj_in.username)
        )
        result = await db.execute(stmt)
        if result.first() is not None:
            raise ConflictError("User already exists")

        user = UserModel(id=user_id, role=Role(role).value, **obj_in.model_dump())
        db.add(user)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError("User already exists") from e
        await db.refresh(user)
        logger.info(f"Onboarded user {user.username} ({user_id}) as {user.role}")
        return user

    def image_key(self, user: UserModel, slot: AssetClass) -> Optional[str]:
        """Key of the object currently held in an image slot."""
        _, key_column = IMAGE_SLOTS[slot]
        return getattr(user, key_column)

    async def set_image(
        self, db: AsyncSession, *, user: UserModel, slot: AssetClass, url: str, key: str
    ) -> UserModel:
        """Point an image slot at a newly stored object. Last write wins."""
        url_column, key_column = IMAGE_SLOTS[slot]
        setattr(user, url_column, url)
        setattr(user, key_column, key)
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    async def follow(self, db: AsyncSession, *, follower_id: UUID, creator_id: UUID) -> None:
        """Follow a creator. Following twice is a no-op."""
        if follower_id == creator_id:
            raise ValidationError("Users cannot follow themselves")
        creator = await self.get(db, id=creator_id)
        if creator is None:
            raise NotFoundError("User not found")

        stmt = select(Follow.id).where(
            Follow.follower_id == follower_id, Follow.creator_id == creator_id
        )
        if (await db.execute(stmt)).scalar_one_or_none() is not None:
            return
        db.add(Follow(follower_id=follower_id, creator_id=creator_id))
        try:
            await db.commit()
        except IntegrityError:
            # a concurrent follow got there first
            await db.rollback()

    async def unfollow(self, db: AsyncSession, *, follower_id: UUID, creator_id: UUID) -> None:
        stmt = delete(Follow).where(
            Follow.follower_id == follower_id, Follow.creator_id == creator_id
        )
        await db.execute(stmt)
        await db.commit()

    async def followers_count(self, db: AsyncSession, *, creator_id: UUID) -> int:
        stmt = select(func.count()).select_from(Follow).where(Follow.creator_id == creator_id)
        result = await db.execute(stmt)
        return result.scalar_one()


user = CRUDUser(UserModel)
