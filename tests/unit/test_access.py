"""
Tests for content access evaluation.
"""
import uuid
from datetime import timedelta

import pytest

from src.sushflix.crud.crud_subscription import subscription as ledger
from src.sushflix.crud.crud_user import user as crud_user
from src.sushflix.models import Content
from src.sushflix.services.access_service import access_evaluator, is_entitled
from src.sushflix.utils.dates import utcnow

CREATOR = uuid.uuid4()
VIEWER = uuid.uuid4()


@pytest.mark.parametrize("viewer_level", [0, 1, 2, 3])
@pytest.mark.parametrize("required_level", [0, 1, 2, 3])
def test_tier_grid(viewer_level, required_level):
    expected = required_level == 0 or viewer_level >= required_level

    assert is_entitled(VIEWER, CREATOR, required_level, viewer_level) is expected


@pytest.mark.parametrize("required_level", [0, 1, 2, 3])
def test_owner_always_has_access(required_level):
    assert is_entitled(CREATOR, CREATOR, required_level, 0) is True


async def make_content(db, creator, required_level):
    content = Content(
        creator_id=creator.id,
        title=f"Level {required_level} post",
        media_type="image",
        media_url="/uploads/post.jpg",
        media_key="post.jpg",
        required_level=required_level,
    )
    db.add(content)
    await db.commit()
    return content


class TestContentAccessEvaluator:
    async def test_follow_grants_nothing(self, db, fan, creator):
        content = await make_content(db, creator, 1)
        await crud_user.follow(db, follower_id=fan.id, creator_id=creator.id)

        assert await access_evaluator.can_access(db, fan.id, content) is False

    async def test_subscription_to_another_creator_grants_nothing(self, db, fan, creator, other_creator):
        content = await make_content(db, creator, 1)
        await ledger.create(db, subscriber_id=fan.id, creator_id=other_creator.id, level=3, duration_days=30)

        assert await access_evaluator.can_access(db, fan.id, content) is False

    async def test_sufficient_tier_grants_access(self, db, fan, creator):
        content = await make_content(db, creator, 2)
        await ledger.create(db, subscriber_id=fan.id, creator_id=creator.id, level=2, duration_days=30)

        assert await access_evaluator.can_access(db, fan.id, content) is True

    async def test_access_ends_with_the_validity_window(self, db, fan, creator):
        content = await make_content(db, creator, 1)
        sub = await ledger.create(db, subscriber_id=fan.id, creator_id=creator.id, level=1, duration_days=30)

        later = sub.end_date + timedelta(minutes=1)
        assert await access_evaluator.can_access(db, fan.id, content, now=later) is False

    async def test_owner_and_open_content_skip_the_ledger(self, db, fan, creator):
        gated = await make_content(db, creator, 3)
        open_post = await make_content(db, creator, 0)

        assert await access_evaluator.can_access(db, creator.id, gated) is True
        assert await access_evaluator.can_access(db, fan.id, open_post) is True

    async def test_batch_matches_single_evaluation(self, db, fan, creator, other_creator):
        posts = [await make_content(db, creator, level) for level in range(4)]
        posts.append(await make_content(db, other_creator, 1))
        await ledger.create(db, subscriber_id=fan.id, creator_id=creator.id, level=2, duration_days=30)

        access = await access_evaluator.accessible(db, fan.id, posts, now=utcnow())

        for post in posts:
            assert access[post.id] is await access_evaluator.can_access(db, fan.id, post)
        assert [access[post.id] for post in posts] == [True, True, True, False, False]
