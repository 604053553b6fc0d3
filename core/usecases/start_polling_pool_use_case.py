# core/usecases/start_polling_pool_use_case.py
from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional

from core.domain.entities.volume_entity import VolumeSampleEntity
from core.domain.errors import UpstreamError, ValidationError
from core.services.periodic_task import PeriodicTask
from core.usecases.ingest_price_sample_use_case import IngestPriceSampleUseCase
from core.usecases.ingest_volume_use_case import IngestVolumeUseCase

PriceFetchFn = Callable[[], Awaitable[Optional[float]]]
VolumeFetchFn = Callable[[], Awaitable[List[VolumeSampleEntity]]]


class StartPollingPoolUseCase:
    """
    Polls a pool's producer on fixed ticks and feeds the aggregation core.

    - price tick (e.g. every 5s): fetch spot price -> IngestPriceSampleUseCase
    - volume tick (e.g. every 10s): fetch new swap events -> IngestVolumeUseCase

    An upstream failure skips the tick; the next tick proceeds normally.
    """

    def __init__(
        self,
        *,
        pool_id: str,
        price_every_s: float,
        ingest_price_uc: IngestPriceSampleUseCase,
        price_fetch_fn: PriceFetchFn,
        volume_every_s: float = 10.0,
        ingest_volume_uc: Optional[IngestVolumeUseCase] = None,
        volume_fetch_fn: Optional[VolumeFetchFn] = None,
        logger: logging.Logger | None = None,
    ):
        self._pool_id = pool_id
        self._ingest_price = ingest_price_uc
        self._ingest_volume = ingest_volume_uc
        self._price_fetch_fn = price_fetch_fn
        self._volume_fetch_fn = volume_fetch_fn
        self._logger = logger or logging.getLogger(self.__class__.__name__)

        self._price_every_s = float(price_every_s)
        self._volume_every_s = float(volume_every_s)
        self._tasks: List[PeriodicTask] = []

    @property
    def pool_id(self) -> str:
        return self._pool_id

    @property
    def running(self) -> bool:
        return any(t.running for t in self._tasks)

    def start(self, *, price_run_immediately: bool = True) -> None:
        """Start the polling loops in background."""
        if self._tasks:
            return

        self._tasks.append(
            PeriodicTask(
                name=f"price:{self._pool_id}",
                every_s=self._price_every_s,
                fn=self.poll_price_once,
                run_immediately=price_run_immediately,
                logger=self._logger,
            )
        )
        if self._volume_fetch_fn is not None and self._ingest_volume is not None:
            self._tasks.append(
                PeriodicTask(
                    name=f"volume:{self._pool_id}",
                    every_s=self._volume_every_s,
                    fn=self.poll_volume_once,
                    logger=self._logger,
                )
            )
        for task in self._tasks:
            task.start()

    async def initialize(self) -> bool:
        """
        Fetch the first price right away, then start the loops.

        Returns:
            Whether the first price was ingested.
        """
        ok = await self.poll_price_once()
        self.start(price_run_immediately=False)
        return ok

    async def stop(self) -> None:
        """Stop the polling loops, waiting for in-flight ticks."""
        for task in self._tasks:
            await task.stop()
        self._tasks = []

    async def poll_price_once(self) -> bool:
        try:
            price = await self._price_fetch_fn()
        except UpstreamError as exc:
            self._logger.warning("Failed to fetch the latest price pool=%s: %s", self._pool_id, exc)
            return False

        if price is None:
            self._logger.warning("No price returned pool=%s", self._pool_id)
            return False

        try:
            await self._ingest_price.execute(pool_id=self._pool_id, price=price)
        except ValidationError as exc:
            self._logger.warning("Rejected price sample pool=%s: %s", self._pool_id, exc)
            return False
        return True

    async def poll_volume_once(self) -> int:
        if self._volume_fetch_fn is None or self._ingest_volume is None:
            return 0

        try:
            events = await self._volume_fetch_fn() or []
        except UpstreamError as exc:
            self._logger.warning("Failed to query swap events pool=%s: %s", self._pool_id, exc)
            return 0

        # an empty tick still expires old entries from the rolling windows
        await self._ingest_volume.execute(pool_id=self._pool_id, events=events)
        return len(events)
