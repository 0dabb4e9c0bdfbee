import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.sushflix.api.deps import StorageGatewayDep
from src.sushflix.core.errors import NotFoundError
from src.sushflix.core.pbac import require_permission
from src.sushflix.crud.crud_user import user as crud_user
from src.sushflix.db.session import SessionDep
from src.sushflix.models.core import User as UserModel
from src.sushflix.schemas import (
    AuthContext,
    FollowResponse,
    ImageUploadResponse,
    UserCreate,
    UserPublic,
    UserResponse,
    UserUpdate,
)
from src.sushflix.schemas.enums import AssetClass, MediaType
from src.sushflix.services.storage_service import MediaStorageGateway, StoredObject

router = APIRouter()
logger = logging.getLogger(__name__)


async def get_profile(db: AsyncSession, user_id: UUID) -> UserModel:
    user = await crud_user.get(db, id=user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def replace_image(
    db: AsyncSession,
    gateway: MediaStorageGateway,
    current_user: AuthContext,
    file: UploadFile,
    slot: AssetClass,
) -> ImageUploadResponse:
    """Swap the object held in one of the caller's image slots."""
    user = await get_profile(db, current_user.user_id)

    async def persist(stored: StoredObject) -> None:
        await crud_user.set_image(db, user=user, slot=slot, url=stored.url, key=stored.key)

    result = await gateway.replace(
        current_user.user_id,
        file,
        old_key=crud_user.image_key(user, slot),
        asset_class=slot,
        declared_kind=MediaType.IMAGE,
        persist=persist,
    )
    logger.info(f"Replaced {slot.value} of {current_user.user_id} with {result.stored.key}")
    return ImageUploadResponse(url=result.stored.url, warning=result.warning)


@router.post("/me", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user_me(
    user_in: UserCreate,
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("create", "users"))],
) -> UserModel:
    """Create the profile of the authenticated user, with the role from the token."""
    return await crud_user.onboard(
        db, user_id=current_user.user_id, role=current_user.role, obj_in=user_in
    )


@router.get("/me", response_model=UserResponse)
async def read_user_me(
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("read", "users"))],
) -> UserModel:
    """Get current user."""
    return await get_profile(db, current_user.user_id)


@router.patch("/me", response_model=UserResponse)
async def update_user_me(
    user_in: UserUpdate,
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("update", "users"))],
) -> UserModel:
    """Update current user."""
    user = await get_profile(db, current_user.user_id)
    return await crud_user.update(db, db_obj=user, obj_in=user_in)


@router.put("/me/profile-picture", response_model=ImageUploadResponse)
async def upload_profile_picture(
    db: SessionDep,
    gateway: StorageGatewayDep,
    current_user: Annotated[AuthContext, Depends(require_permission("update", "users"))],
    file: UploadFile = File(...),
) -> ImageUploadResponse:
    """Replace the profile picture (images only, up to 5MB)."""
    return await replace_image(db, gateway, current_user, file, AssetClass.PROFILE_PICTURE)


@router.put("/me/cover-photo", response_model=ImageUploadResponse)
async def upload_cover_photo(
    db: SessionDep,
    gateway: StorageGatewayDep,
    current_user: Annotated[AuthContext, Depends(require_permission("update", "users"))],
    file: UploadFile = File(...),
) -> ImageUploadResponse:
    """Replace the cover photo (images only, up to 10MB)."""
    return await replace_image(db, gateway, current_user, file, AssetClass.COVER_PHOTO)


@router.get("/{user_id}", response_model=UserPublic)
async def read_user(
    user_id: UUID,
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("read", "users"))],
) -> UserModel:
    """Get a specific user."""
    return await get_profile(db, user_id)


@router.post("/{user_id}/follow", response_model=FollowResponse)
async def follow_user(
    user_id: UUID,
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("create", "follows"))],
) -> FollowResponse:
    """Follow a creator. Following grants no access to gated content."""
    await crud_user.follow(db, follower_id=current_user.user_id, creator_id=user_id)
    followers = await crud_user.followers_count(db, creator_id=user_id)
    return FollowResponse(creator_id=user_id, following=True, followers=followers)


@router.delete("/{user_id}/follow", response_model=FollowResponse)
async def unfollow_user(
    user_id: UUID,
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("delete", "follows"))],
) -> FollowResponse:
    """Stop following a creator."""
    await crud_user.unfollow(db, follower_id=current_user.user_id, creator_id=user_id)
    followers = await crud_user.followers_count(db, creator_id=user_id)
    return FollowResponse(creator_id=user_id, following=False, followers=followers)
