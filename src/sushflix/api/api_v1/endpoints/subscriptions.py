import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from src.sushflix.core.config import settings
from src.sushflix.core.errors import NotFoundError
from src.sushflix.core.pbac import require_permission
from src.sushflix.crud.crud_subscription import subscription as crud_subscription
from src.sushflix.crud.crud_user import user as crud_user
from src.sushflix.db.session import SessionDep
from src.sushflix.schemas import (
    AuthContext,
    ExpireStaleResponse,
    SubscriptionCreate,
    SubscriptionLevelUpdate,
    SubscriptionResponse,
)
from src.sushflix.schemas.enums import Role

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    subscription_in: SubscriptionCreate,
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("create", "subscriptions"))],
) -> SubscriptionResponse:
    """Subscribe the caller to a creator at a paid tier."""
    creator = await crud_user.get(db, id=subscription_in.creator_id)
    if creator is None or creator.role != Role.CREATOR.value:
        raise NotFoundError("Creator not found")
    return await crud_subscription.create(
        db,
        subscriber_id=current_user.user_id,
        creator_id=subscription_in.creator_id,
        level=subscription_in.level,
        duration_days=settings.SUBSCRIPTION_DURATION_DAYS,
    )


@router.get("/my", response_model=list[SubscriptionResponse])
async def read_my_subscriptions(
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("read", "subscriptions"))],
) -> list[SubscriptionResponse]:
    """Get the caller's active subscriptions."""
    return await crud_subscription.get_active_for_subscriber(db, subscriber_id=current_user.user_id)


@router.get("/subscribers", response_model=list[SubscriptionResponse])
async def read_subscribers(
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("read", "subscribers"))],
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
) -> list[SubscriptionResponse]:
    """Get the active subscriptions held by the calling creator's subscribers."""
    return await crud_subscription.get_subscribers(
        db, creator_id=current_user.user_id, skip=skip, limit=limit
    )


@router.post("/expire-stale", response_model=ExpireStaleResponse)
async def expire_stale_subscriptions(
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("sweep", "subscriptions"))],
) -> ExpireStaleResponse:
    """Relabel subscriptions past their end date as expired."""
    expired = await crud_subscription.expire_stale(db)
    return ExpireStaleResponse(expired=expired)


@router.patch("/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: UUID,
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("update", "subscriptions"))],
) -> SubscriptionResponse:
    """Cancel one of the caller's subscriptions."""
    return await crud_subscription.cancel(
        db, subscription_id=subscription_id, by_user_id=current_user.user_id
    )


@router.patch("/{subscription_id}/level", response_model=SubscriptionResponse)
async def change_subscription_level(
    subscription_id: UUID,
    level_in: SubscriptionLevelUpdate,
    db: SessionDep,
    current_user: Annotated[AuthContext, Depends(require_permission("update", "subscriptions"))],
) -> SubscriptionResponse:
    """Upgrade or downgrade one of the caller's active subscriptions."""
    return await crud_subscription.change_level(
        db,
        subscription_id=subscription_id,
        by_user_id=current_user.user_id,
        level=level_in.level,
    )
