"""
Tests for the scheduled subscription expiry command.
"""
from datetime import timedelta

import pytest

from src.sushflix.crud.crud_subscription import subscription as ledger
from src.sushflix.tasks import expire_subscriptions as task
from src.sushflix.utils.dates import utcnow


class RecordingEngine:
    """Stands in for the module engine and records disposal."""

    def __init__(self):
        self.disposed = 0

    async def dispose(self):
        self.disposed += 1


@pytest.fixture
def task_engine(monkeypatch, session_factory):
    engine = RecordingEngine()
    monkeypatch.setattr(task, "AsyncSessionLocal", session_factory)
    monkeypatch.setattr(task, "engine", engine)
    return engine


class TestRunSweep:
    async def test_expires_stale_records_and_disposes_engine(self, db, fan, creator, task_engine):
        await ledger.create(
            db,
            subscriber_id=fan.id,
            creator_id=creator.id,
            level=1,
            duration_days=30,
            now=utcnow() - timedelta(days=31),
        )

        assert await task.run_sweep() == 1
        assert task_engine.disposed == 1

    async def test_engine_is_disposed_when_sweep_fails(self, monkeypatch, task_engine):
        async def broken_sweep(db):
            raise RuntimeError("database down")

        monkeypatch.setattr(task.subscription_ledger, "expire_stale", broken_sweep)

        with pytest.raises(RuntimeError):
            await task.run_sweep()

        assert task_engine.disposed == 1
