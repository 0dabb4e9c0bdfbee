"""
Subscription ledger.

The authoritative record of who pays which creator at what tier, and the
only source of entitlement. Entitlement is recomputed from status and the
validity window on every read; the expiry sweep only relabels rows.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.sushflix.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from src.sushflix.crud.base import CRUDBase
from src.sushflix.models.subscription import Subscription
from src.sushflix.schemas import SubscriptionCreate, SubscriptionLevelUpdate
from src.sushflix.schemas.enums import MAX_LEVEL, MIN_LEVEL, MIN_PAID_LEVEL, SubscriptionStatus
from src.sushflix.utils.dates import days_from, utcnow

logger = logging.getLogger(__name__)

ACTIVE = SubscriptionStatus.ACTIVE.value
CANCELLED = SubscriptionStatus.CANCELLED.value
EXPIRED = SubscriptionStatus.EXPIRED.value


def _check_level(level: int) -> None:
    if not isinstance(level, int) or isinstance(level, bool) or not MIN_PAID_LEVEL <= level <= MAX_LEVEL:
        raise ValidationError(f"Subscription level must be between {MIN_PAID_LEVEL} and {MAX_LEVEL}")


class SubscriptionLedger(CRUDBase[Subscription, SubscriptionCreate, SubscriptionLevelUpdate]):
    """Creates, cancels and evaluates subscriptions."""

    @staticmethod
    def is_entitlement_bearing(subscription: Subscription, now: datetime) -> bool:
        """An active record only counts while its validity window is open."""
        return subscription.status == ACTIVE and now <= subscription.end_date

    async def _get_active(
        self, db: AsyncSession, *, subscriber_id: UUID, creator_id: UUID
    ) -> Optional[Subscription]:
        stmt = select(Subscription).where(
            Subscription.subscriber_id == subscriber_id,
            Subscription.creator_id == creator_id,
            Subscription.status == ACTIVE,
        )
        result = await db.execute(stmt)
        return result.scalars().first()

    async def create(
        self,
        db: AsyncSession,
        *,
        subscriber_id: UUID,
        creator_id: UUID,
        level: int,
        duration_days: int,
        now: Optional[datetime] = None,
    ) -> Subscription:
        """
        Record a new paid subscription.

        Args:
            db: Database session
            subscriber_id: Paying user
            creator_id: Creator being subscribed to
            level: Purchased tier, 1-3
            duration_days: Length of the validity window
            now: Start of the validity window, defaults to the current time

        Returns:
            The new active subscription

        Raises:
            ValidationError: Bad level or duration, or a self-subscription
            ConflictError: The pair already has an entitlement-bearing subscription
        """
        now = now or utcnow()
        _check_level(level)
        if duration_days <= 0:
            raise ValidationError("Subscription duration must be positive")
        if subscriber_id == creator_id:
            raise ValidationError("Creators cannot subscribe to themselves")

        existing = await self._get_active(db, subscriber_id=subscriber_id, creator_id=creator_id)
        if existing is not None:
            if self.is_entitlement_bearing(existing, now):
                raise ConflictError("An active subscription to this creator already exists")
            # the sweep has not reached this one yet; retire it so the pair stays unique
            logger.info(f"Expiring stale subscription {existing.id} before creating a new one")
            existing.status = EXPIRED
            await db.flush()

        subscription = Subscription(
            subscriber_id=subscriber_id,
            creator_id=creator_id,
            level=level,
            status=ACTIVE,
            start_date=now,
            end_date=days_from(now, duration_days),
        )
        db.add(subscription)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.warning(f"Concurrent subscription for {subscriber_id} -> {creator_id} rejected")
            raise ConflictError("An active subscription to this creator already exists") from e
        await db.refresh(subscription)
        logger.info(
            f"Subscription created: {subscription.id} ({subscriber_id} -> {creator_id}, level {level})"
        )
        return subscription

    async def cancel(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        by_user_id: UUID,
        now: Optional[datetime] = None,
    ) -> Subscription:
        """
        Cancel a subscription on behalf of its subscriber.

        Cancelling is terminal. Cancelling a record that is already cancelled
        or expired is a no-op. The change is committed before returning, so
        the caller's next current_level read sees it.
        """
        subscription = await self.get(db, id=subscription_id)
        if subscription is None:
            raise NotFoundError("Subscription not found")
        if subscription.subscriber_id != by_user_id:
            raise AuthorizationError(
                f"user {by_user_id} tried to cancel subscription {subscription_id}"
            )
        if subscription.status != ACTIVE:
            logger.info(f"Subscription {subscription_id} already {subscription.status}, nothing to cancel")
            return subscription

        subscription.status = CANCELLED
        subscription.cancelled_at = now or utcnow()
        db.add(subscription)
        await db.commit()
        await db.refresh(subscription)
        logger.info(f"Subscription cancelled: {subscription_id}")
        return subscription

    async def change_level(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        by_user_id: UUID,
        level: int,
        now: Optional[datetime] = None,
    ) -> Subscription:
        """Upgrade or downgrade an entitlement-bearing subscription in place."""
        now = now or utcnow()
        _check_level(level)
        subscription = await self.get(db, id=subscription_id)
        if subscription is None:
            raise NotFoundError("Subscription not found")
        if subscription.subscriber_id != by_user_id:
            raise AuthorizationError(
                f"user {by_user_id} tried to change subscription {subscription_id}"
            )
        if not self.is_entitlement_bearing(subscription, now):
            raise ConflictError("Subscription is not active")

        previous = subscription.level
        subscription.level = level
        db.add(subscription)
        await db.commit()
        await db.refresh(subscription)
        logger.info(f"Subscription {subscription_id} level changed {previous} -> {level}")
        return subscription

    async def current_level(
        self,
        db: AsyncSession,
        *,
        subscriber_id: UUID,
        creator_id: UUID,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Tier the subscriber currently holds with the creator.

        Returns the level of an active subscription whose end date has not
        passed, else 0. The time bound is checked here rather than trusted
        to the expiry sweep, so a stale active row never grants access.
        """
        now = now or utcnow()
        stmt = (
            select(func.max(Subscription.level))
            .where(
                Subscription.subscriber_id == subscriber_id,
                Subscription.creator_id == creator_id,
                Subscription.status == ACTIVE,
                Subscription.end_date >= now,
            )
        )
        result = await db.execute(stmt)
        level = result.scalar_one_or_none()
        return level if level is not None else MIN_LEVEL

    async def current_levels(
        self,
        db: AsyncSession,
        *,
        subscriber_id: UUID,
        creator_ids: Iterable[UUID],
        now: Optional[datetime] = None,
    ) -> dict[UUID, int]:
        """Batch form of current_level. Creators without entitlement map to 0."""
        now = now or utcnow()
        creator_ids = set(creator_ids)
        if not creator_ids:
            return {}
        stmt = (
            select(Subscription.creator_id, func.max(Subscription.level))
            .where(
                Subscription.subscriber_id == subscriber_id,
                Subscription.creator_id.in_(creator_ids),
                Subscription.status == ACTIVE,
                Subscription.end_date >= now,
            )
            .group_by(Subscription.creator_id)
        )
        result = await db.execute(stmt)
        levels = {creator_id: MIN_LEVEL for creator_id in creator_ids}
        levels.update({creator_id: level for creator_id, level in result.all()})
        return levels

    async def get_active_for_subscriber(
        self, db: AsyncSession, *, subscriber_id: UUID, now: Optional[datetime] = None
    ) -> list[Subscription]:
        """Entitlement-bearing subscriptions held by a user."""
        now = now or utcnow()
        stmt = (
            select(Subscription)
            .where(
                Subscription.subscriber_id == subscriber_id,
                Subscription.status == ACTIVE,
                Subscription.end_date >= now,
            )
            .order_by(Subscription.created_at.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_subscribers(
        self,
        db: AsyncSession,
        *,
        creator_id: UUID,
        now: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> list[Subscription]:
        """Entitlement-bearing subscriptions held by a creator's subscribers."""
        now = now or utcnow()
        stmt = (
            select(Subscription)
            .where(
                Subscription.creator_id == creator_id,
                Subscription.status == ACTIVE,
                Subscription.end_date >= now,
            )
            .order_by(Subscription.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def expire_stale(self, db: AsyncSession, *, now: Optional[datetime] = None) -> int:
        """Relabel active subscriptions past their end date as expired."""
        now = now or utcnow()
        stmt = (
            update(Subscription)
            .where(Subscription.status == ACTIVE, Subscription.end_date < now)
            .values(status=EXPIRED, updated_at=now)
        )
        result = await db.execute(stmt)
        await db.commit()
        if result.rowcount:
            logger.info(f"Expired {result.rowcount} stale subscriptions")
        return result.rowcount


subscription = SubscriptionLedger(Subscription)
