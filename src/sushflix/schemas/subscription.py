from typing import Optional
from datetime import datetime
from uuid import UUID

from pydantic import Field

from .base import BaseSchema, BaseResponseSchema
from .enums import MAX_LEVEL, MIN_PAID_LEVEL, SubscriptionStatus


class SubscriptionCreate(BaseSchema):
    """Request body for POST /subscriptions."""
    creator_id: UUID
    level: int = Field(..., ge=MIN_PAID_LEVEL, le=MAX_LEVEL)


class SubscriptionLevelUpdate(BaseSchema):
    """Request body for the upgrade/downgrade path."""
    level: int = Field(..., ge=MIN_PAID_LEVEL, le=MAX_LEVEL)


class SubscriptionResponse(BaseResponseSchema):
    subscriber_id: UUID
    creator_id: UUID
    level: int
    status: SubscriptionStatus
    start_date: datetime
    end_date: datetime
    cancelled_at: Optional[datetime] = None


class ExpireStaleResponse(BaseSchema):
    expired: int
