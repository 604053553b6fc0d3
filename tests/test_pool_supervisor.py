"""Tests for PoolSupervisor wiring: snapshot restore, lazy pool start, shutdown flush."""

from __future__ import annotations

import asyncio

import pytest

from core.domain.intervals import MINUTE_MS
from workers.pool_supervisor import PoolSupervisor

from tests.conftest import POOL, POOL_KEY, T0, MemorySnapshotRepository, make_candles

OTHER_POOL = "0x" + "d" * 40


async def _wait_until(predicate, timeout_s: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_s
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def _factory(prices):
    built = []

    def factory(pool_id: str):
        built.append(pool_id)

        async def price():
            return prices[pool_id]

        return price, None

    return factory, built


@pytest.fixture
def repo():
    candles = [c.to_dict() for c in make_candles(T0, MINUTE_MS, [1.0, 2.0])]
    return MemorySnapshotRepository(
        {
            "version": 2,
            "lastSaved": T0,
            "pools": {POOL_KEY: {"pool": POOL, "latestPrice": 2.0, "lastUpdated": T0, "ohlc": {"1m": candles}}},
            "volumeHistory": [],
        }
    )


@pytest.mark.asyncio
async def test_start_restores_and_polls_snapshot_pools(repo):
    factory, built = _factory({POOL_KEY: 3.0})
    supervisor = PoolSupervisor(
        snapshot_repository=repo,
        source_factory=factory,
        price_every_s=3600,
        volume_every_s=3600,
        snapshot_every_s=3600,
    )

    await supervisor.start()
    try:
        await _wait_until(lambda: supervisor.registry.get(POOL).series.latest_price == 3.0)
        await _wait_until(lambda: not supervisor.registry.is_initializing(POOL))
        assert built == [POOL_KEY]
        assert supervisor.poller(POOL).running is True
    finally:
        await supervisor.stop()

    assert repo.saves[-1]["pools"][POOL_KEY]["latestPrice"] == 3.0


@pytest.mark.asyncio
async def test_ensure_pool_starts_producer_once(repo):
    factory, built = _factory({POOL_KEY: 3.0, OTHER_POOL: 7.0})
    supervisor = PoolSupervisor(
        snapshot_repository=repo,
        source_factory=factory,
        price_every_s=3600,
        volume_every_s=3600,
        snapshot_every_s=3600,
    )

    await supervisor.start()
    try:
        assert supervisor.ensure_pool(OTHER_POOL.upper().replace("0X", "0x")) is True
        assert supervisor.ensure_pool(OTHER_POOL) is False
        await _wait_until(lambda: supervisor.registry.get(OTHER_POOL).series.latest_price == 7.0)
        assert built.count(OTHER_POOL) == 1
    finally:
        await supervisor.stop()

    assert supervisor.poller(OTHER_POOL) is None


@pytest.mark.asyncio
async def test_stop_survives_failed_final_save(repo):
    factory, _ = _factory({POOL_KEY: 3.0})
    supervisor = PoolSupervisor(
        snapshot_repository=repo,
        source_factory=factory,
        snapshot_every_s=3600,
    )

    await supervisor.start()
    repo.fail_save = True
    await supervisor.stop()

    assert repo.saves == []
