"""
Tests for the subscription ledger.
"""
import uuid
from datetime import timedelta

import pytest

from src.sushflix.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from src.sushflix.crud.crud_subscription import subscription as ledger
from src.sushflix.schemas.enums import SubscriptionStatus
from src.sushflix.utils.dates import utcnow


async def subscribe(db, fan, creator, level=1, duration_days=30, now=None):
    return await ledger.create(
        db,
        subscriber_id=fan.id,
        creator_id=creator.id,
        level=level,
        duration_days=duration_days,
        now=now,
    )


class TestCreate:
    async def test_new_subscription_grants_its_level(self, db, fan, creator):
        sub = await subscribe(db, fan, creator, level=2)

        assert sub.status == SubscriptionStatus.ACTIVE.value
        assert sub.end_date - sub.start_date == timedelta(days=30)
        assert await ledger.current_level(db, subscriber_id=fan.id, creator_id=creator.id) == 2

    async def test_no_subscription_means_level_zero(self, db, fan, creator):
        assert await ledger.current_level(db, subscriber_id=fan.id, creator_id=creator.id) == 0

    async def test_second_active_subscription_conflicts(self, db, fan, creator):
        await subscribe(db, fan, creator, level=1)

        with pytest.raises(ConflictError):
            await subscribe(db, fan, creator, level=3)

    async def test_subscriptions_to_different_creators_are_independent(self, db, fan, creator, other_creator):
        await subscribe(db, fan, creator, level=1)
        await subscribe(db, fan, other_creator, level=3)

        levels = await ledger.current_levels(
            db, subscriber_id=fan.id, creator_ids=[creator.id, other_creator.id]
        )
        assert levels == {creator.id: 1, other_creator.id: 3}

    @pytest.mark.parametrize("level", [0, 4, -1])
    async def test_level_out_of_range_is_rejected(self, db, fan, creator, level):
        with pytest.raises(ValidationError):
            await subscribe(db, fan, creator, level=level)

    async def test_non_positive_duration_is_rejected(self, db, fan, creator):
        with pytest.raises(ValidationError):
            await subscribe(db, fan, creator, duration_days=0)

    async def test_cannot_subscribe_to_self(self, db, creator):
        with pytest.raises(ValidationError):
            await subscribe(db, creator, creator)


class TestExpiry:
    async def test_active_record_past_end_date_grants_nothing(self, db, fan, creator):
        await subscribe(db, fan, creator, level=3, now=utcnow() - timedelta(days=31))

        assert await ledger.current_level(db, subscriber_id=fan.id, creator_id=creator.id) == 0

    async def test_window_is_checked_against_the_given_time(self, db, fan, creator):
        sub = await subscribe(db, fan, creator, level=2)

        assert await ledger.current_level(
            db, subscriber_id=fan.id, creator_id=creator.id, now=sub.end_date
        ) == 2
        assert await ledger.current_level(
            db, subscriber_id=fan.id, creator_id=creator.id, now=sub.end_date + timedelta(seconds=1)
        ) == 0

    async def test_stale_record_does_not_block_resubscribing(self, db, fan, creator):
        stale = await subscribe(db, fan, creator, level=1, now=utcnow() - timedelta(days=31))

        fresh = await subscribe(db, fan, creator, level=2)

        await db.refresh(stale)
        assert stale.status == SubscriptionStatus.EXPIRED.value
        assert fresh.id != stale.id
        assert await ledger.current_level(db, subscriber_id=fan.id, creator_id=creator.id) == 2

    async def test_expire_stale_relabels_only_past_records(self, db, fan, creator, other_creator):
        stale = await subscribe(db, fan, creator, level=1, now=utcnow() - timedelta(days=31))
        live = await subscribe(db, fan, other_creator, level=1)

        assert await ledger.expire_stale(db) == 1

        await db.refresh(stale)
        await db.refresh(live)
        assert stale.status == SubscriptionStatus.EXPIRED.value
        assert live.status == SubscriptionStatus.ACTIVE.value


class TestCancel:
    async def test_cancel_revokes_immediately(self, db, fan, creator):
        sub = await subscribe(db, fan, creator, level=2)

        cancelled = await ledger.cancel(db, subscription_id=sub.id, by_user_id=fan.id)

        assert cancelled.status == SubscriptionStatus.CANCELLED.value
        assert cancelled.cancelled_at is not None
        assert await ledger.current_level(db, subscriber_id=fan.id, creator_id=creator.id) == 0

    async def test_cancel_twice_is_a_no_op(self, db, fan, creator):
        sub = await subscribe(db, fan, creator)
        first = await ledger.cancel(db, subscription_id=sub.id, by_user_id=fan.id)
        cancelled_at = first.cancelled_at

        second = await ledger.cancel(db, subscription_id=sub.id, by_user_id=fan.id)

        assert second.status == SubscriptionStatus.CANCELLED.value
        assert second.cancelled_at == cancelled_at

    async def test_only_the_subscriber_may_cancel(self, db, fan, creator):
        sub = await subscribe(db, fan, creator)

        with pytest.raises(AuthorizationError) as exc_info:
            await ledger.cancel(db, subscription_id=sub.id, by_user_id=creator.id)

        assert exc_info.value.detail == "Insufficient access"
        assert await ledger.current_level(db, subscriber_id=fan.id, creator_id=creator.id) == 1

    async def test_cancel_unknown_subscription(self, db, fan):
        with pytest.raises(NotFoundError):
            await ledger.cancel(db, subscription_id=uuid.uuid4(), by_user_id=fan.id)

    async def test_can_resubscribe_after_cancelling(self, db, fan, creator):
        sub = await subscribe(db, fan, creator, level=1)
        await ledger.cancel(db, subscription_id=sub.id, by_user_id=fan.id)

        await subscribe(db, fan, creator, level=3)

        assert await ledger.current_level(db, subscriber_id=fan.id, creator_id=creator.id) == 3


class TestChangeLevel:
    async def test_upgrade_applies_immediately(self, db, fan, creator):
        sub = await subscribe(db, fan, creator, level=1)

        await ledger.change_level(db, subscription_id=sub.id, by_user_id=fan.id, level=3)

        assert await ledger.current_level(db, subscriber_id=fan.id, creator_id=creator.id) == 3

    async def test_cancelled_subscription_cannot_change_level(self, db, fan, creator):
        sub = await subscribe(db, fan, creator, level=1)
        await ledger.cancel(db, subscription_id=sub.id, by_user_id=fan.id)

        with pytest.raises(ConflictError):
            await ledger.change_level(db, subscription_id=sub.id, by_user_id=fan.id, level=2)

    async def test_other_users_cannot_change_level(self, db, fan, creator):
        sub = await subscribe(db, fan, creator, level=1)

        with pytest.raises(AuthorizationError):
            await ledger.change_level(db, subscription_id=sub.id, by_user_id=creator.id, level=3)


class TestListings:
    async def test_subscribers_lists_only_entitled_records(self, db, fan, creator, other_creator):
        await subscribe(db, fan, creator, level=2)
        expired = await subscribe(db, other_creator, creator, level=1, now=utcnow() - timedelta(days=40))

        subscribers = await ledger.get_subscribers(db, creator_id=creator.id)

        assert [s.subscriber_id for s in subscribers] == [fan.id]
        assert expired.id not in {s.id for s in subscribers}

    async def test_active_for_subscriber(self, db, fan, creator, other_creator):
        sub = await subscribe(db, fan, creator, level=2)
        cancelled = await subscribe(db, fan, other_creator, level=1)
        await ledger.cancel(db, subscription_id=cancelled.id, by_user_id=fan.id)

        active = await ledger.get_active_for_subscriber(db, subscriber_id=fan.id)

        assert [s.id for s in active] == [sub.id]
