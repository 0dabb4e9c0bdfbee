"""
Content access evaluation.

Decides whether a viewer may see a content item. Only the subscription
ledger and ownership count: following a creator grants nothing.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.sushflix.crud.crud_subscription import SubscriptionLedger, subscription as subscription_ledger
from src.sushflix.models.content import Content
from src.sushflix.schemas.enums import MIN_LEVEL
from src.sushflix.utils.dates import utcnow

logger = logging.getLogger(__name__)


def is_entitled(viewer_id: UUID, creator_id: UUID, required_level: int, viewer_level: int) -> bool:
    """
    The access rule, in order:
    owners always see their own content, level 0 is open to every
    authenticated viewer, otherwise the viewer's tier must reach the
    required one.
    """
    if viewer_id == creator_id:
        return True
    if required_level == MIN_LEVEL:
        return True
    return viewer_level >= required_level


class ContentAccessEvaluator:
    def __init__(self, ledger: SubscriptionLedger):
        self.ledger = ledger

    async def can_access(
        self,
        db: AsyncSession,
        viewer_id: UUID,
        content: Content,
        now: Optional[datetime] = None,
    ) -> bool:
        """Whether viewer_id may see content at time now."""
        if viewer_id == content.creator_id or content.required_level == MIN_LEVEL:
            return True
        level = await self.ledger.current_level(
            db, subscriber_id=viewer_id, creator_id=content.creator_id, now=now or utcnow()
        )
        allowed = is_entitled(viewer_id, content.creator_id, content.required_level, level)
        if not allowed:
            logger.info(
                f"Viewer {viewer_id} holds level {level}, content {content.id} needs {content.required_level}"
            )
        return allowed

    async def accessible(
        self,
        db: AsyncSession,
        viewer_id: UUID,
        contents: Iterable[Content],
        now: Optional[datetime] = None,
    ) -> dict[UUID, bool]:
        """Evaluate many items with a single ledger query."""
        contents = list(contents)
        gated_creators = {
            c.creator_id
            for c in contents
            if c.creator_id != viewer_id and c.required_level > MIN_LEVEL
        }
        levels = await self.ledger.current_levels(
            db, subscriber_id=viewer_id, creator_ids=gated_creators, now=now or utcnow()
        )
        return {
            c.id: is_entitled(viewer_id, c.creator_id, c.required_level, levels.get(c.creator_id, MIN_LEVEL))
            for c in contents
        }


access_evaluator = ContentAccessEvaluator(subscription_ledger)
