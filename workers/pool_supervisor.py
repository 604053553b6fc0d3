from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable, Dict, Optional, Set, Tuple

from motor.motor_asyncio import AsyncIOMotorClient

from adapters.external.database.mongodb_client import get_mongo_client
from adapters.external.database.snapshot_repository_file import SnapshotRepositoryFile
from adapters.external.database.snapshot_repository_mongodb import SnapshotRepositoryMongoDB
from adapters.external.rpc.json_rpc_http_client import JsonRpcHttpClient
from adapters.external.rpc.uniswap_v3_pool_rpc_client import UniswapV3PoolRpcClient
from adapters.external.thegraph.thegraph_http_client import TheGraphHttpClient
from adapters.external.thegraph.uniswap_v3_subgraph_pool_client import UniswapV3SubgraphPoolClient
from config.settings import settings
from core.domain.errors import PersistenceError
from core.repositories.snapshot_repository import SnapshotRepository
from core.services.candle_aggregation_service import CandleAggregationService
from core.services.continuity_service import ContinuityService
from core.services.interval_derivation_service import IntervalDerivationService
from core.services.periodic_task import PeriodicTask
from core.services.pool_registry import PoolRegistry
from core.services.retention_service import RetentionService
from core.services.volume_window_service import VolumeWindowService
from core.usecases.ingest_price_sample_use_case import IngestPriceSampleUseCase
from core.usecases.ingest_volume_use_case import IngestVolumeUseCase
from core.usecases.query_market_data_use_case import QueryMarketDataUseCase
from core.usecases.snapshot_use_case import SnapshotUseCase
from core.usecases.start_polling_pool_use_case import PriceFetchFn, StartPollingPoolUseCase, VolumeFetchFn

SourceFactory = Callable[[str], Tuple[PriceFetchFn, Optional[VolumeFetchFn]]]


class PoolSupervisor:
    """
    High-level supervisor for api-pool-prices.

    Responsibilities:
    - Own the pool registry and wire the aggregation core.
    - Restore pools from the snapshot and start polling them.
    - Start polling a pool on its first query (registry miss).
    - Save the snapshot periodically; a failed save is retried on the next tick.
    - On stop: stop every poller, then one final best-effort save.
    """

    def __init__(
        self,
        *,
        snapshot_repository: Optional[SnapshotRepository] = None,
        source_factory: Optional[SourceFactory] = None,
        price_every_s: Optional[float] = None,
        volume_every_s: Optional[float] = None,
        snapshot_every_s: Optional[float] = None,
    ) -> None:
        self._logger = logging.getLogger(self.__class__.__name__)

        self._registry = PoolRegistry()
        aggregator = CandleAggregationService()
        self._continuity = ContinuityService(aggregator=aggregator)
        self._derivation = IntervalDerivationService()
        self._retention = RetentionService()
        self._volume_service = VolumeWindowService()

        self._ingest_price_uc = IngestPriceSampleUseCase(
            registry=self._registry,
            aggregator=aggregator,
            retention=self._retention,
        )
        self._ingest_volume_uc = IngestVolumeUseCase(
            registry=self._registry,
            volume_service=self._volume_service,
        )
        self._query_uc = QueryMarketDataUseCase(registry=self._registry, volume_service=self._volume_service)

        self._snapshot_repo = snapshot_repository
        self._snapshot_uc: SnapshotUseCase | None = None
        self._snapshot_task: PeriodicTask | None = None

        self._source_factory = source_factory
        self._price_every_s = float(price_every_s or settings.PRICE_POLL_EVERY_S)
        self._volume_every_s = float(volume_every_s or settings.VOLUME_POLL_EVERY_S)
        self._snapshot_every_s = float(snapshot_every_s or settings.SNAPSHOT_EVERY_S)

        self._pollers: Dict[str, StartPollingPoolUseCase] = {}
        self._init_tasks: Set[asyncio.Task] = set()
        self._started = False

        self._mongo_client: AsyncIOMotorClient | None = None
        self._rpc: JsonRpcHttpClient | None = None
        self._thegraph: TheGraphHttpClient | None = None

    @property
    def registry(self) -> PoolRegistry:
        return self._registry

    @property
    def query_uc(self) -> QueryMarketDataUseCase:
        return self._query_uc

    @property
    def ingest_price_uc(self) -> IngestPriceSampleUseCase:
        return self._ingest_price_uc

    @property
    def ingest_volume_uc(self) -> IngestVolumeUseCase:
        return self._ingest_volume_uc

    @property
    def snapshot_uc(self) -> SnapshotUseCase | None:
        return self._snapshot_uc

    def poller(self, pool_id: str) -> Optional[StartPollingPoolUseCase]:
        return self._pollers.get(PoolRegistry.normalize(pool_id))

    async def start(self) -> None:
        """
        Load the snapshot, start pollers for restored pools and the snapshot loop.
        """
        if self._snapshot_repo is None:
            self._snapshot_repo = await self._build_snapshot_repository()

        self._snapshot_uc = SnapshotUseCase(
            repository=self._snapshot_repo,
            registry=self._registry,
            continuity=self._continuity,
            derivation=self._derivation,
            retention=self._retention,
        )
        await self._snapshot_uc.load()

        if self._source_factory is None:
            self._source_factory = self._default_source_factory

        self._started = True
        for pool_id in self._registry.ids():
            self._schedule_initialization(pool_id)

        self._snapshot_task = PeriodicTask(
            name="snapshot",
            every_s=self._snapshot_every_s,
            fn=self._snapshot_uc.save,
            run_immediately=False,
            logger=self._logger,
        )
        self._snapshot_task.start()

        self._logger.info(
            "Pool supervisor started. pools=%s source=%s snapshot_backend=%s",
            len(self._registry),
            settings.PRICE_SOURCE,
            type(self._snapshot_repo).__name__,
        )

    async def stop(self) -> None:
        """
        Stop pollers and the snapshot loop, save one last time, close clients.
        """
        self._started = False

        for task in list(self._init_tasks):
            with contextlib.suppress(Exception):
                await task

        for poller in self._pollers.values():
            with contextlib.suppress(Exception):
                await poller.stop()
        self._pollers.clear()

        if self._snapshot_task is not None:
            await self._snapshot_task.stop()
            self._snapshot_task = None

        if self._snapshot_uc is not None:
            await self._snapshot_uc.save()

        if self._rpc is not None:
            with contextlib.suppress(Exception):
                await self._rpc.aclose()
            self._rpc = None

        if self._thegraph is not None:
            with contextlib.suppress(Exception):
                await self._thegraph.aclose()
            self._thegraph = None

        if self._snapshot_repo is not None:
            with contextlib.suppress(Exception):
                await self._snapshot_repo.aclose()

        if self._mongo_client:
            self._mongo_client.close()
            self._mongo_client = None

    def ensure_pool(self, pool_address: str) -> bool:
        """
        Register a pool on first reference and start its producer in background.

        Returns:
            True if the pool was unknown.
        """
        if self._registry.contains(pool_address):
            return False

        state = self._registry.get_or_create(pool_address)
        if self._started:
            self._schedule_initialization(state.pool_id)
        return True

    def _schedule_initialization(self, pool_id: str) -> None:
        if pool_id in self._pollers:
            return
        self._registry.mark_initializing(pool_id)
        task = asyncio.create_task(self._initialize_pool(pool_id), name=f"init:{pool_id}")
        self._init_tasks.add(task)
        task.add_done_callback(self._init_tasks.discard)

    async def _initialize_pool(self, pool_id: str) -> None:
        self._logger.info("Initializing pool: %s", pool_id)
        try:
            price_fn, volume_fn = self._source_factory(pool_id)
            poller = StartPollingPoolUseCase(
                pool_id=pool_id,
                price_every_s=self._price_every_s,
                volume_every_s=self._volume_every_s,
                ingest_price_uc=self._ingest_price_uc,
                ingest_volume_uc=self._ingest_volume_uc,
                price_fetch_fn=price_fn,
                volume_fetch_fn=volume_fn,
            )
            self._pollers[pool_id] = poller
            ok = await poller.initialize()
            self._logger.info("Pool %s initialized (first price %s)", pool_id, "ok" if ok else "pending")
        except Exception as exc:
            self._logger.exception("Error initializing pool %s: %s", pool_id, exc)
        finally:
            self._registry.mark_initialized(pool_id)

    def _default_source_factory(self, pool_id: str) -> Tuple[PriceFetchFn, Optional[VolumeFetchFn]]:
        """
        Build the producer for a pool from settings.

        Both clients expose get_price() / get_volume_events(); one shared HTTP
        client per upstream is reused across pools.
        """
        if settings.PRICE_SOURCE == "thegraph":
            if self._thegraph is None:
                self._thegraph = TheGraphHttpClient(
                    endpoint=settings.THEGRAPH_ENDPOINT,
                    api_key=settings.THEGRAPH_API_KEY,
                    timeout_s=settings.UPSTREAM_TIMEOUT_S,
                )
            subgraph_client = UniswapV3SubgraphPoolClient(http=self._thegraph, pool_address=pool_id)
            return subgraph_client.get_price, subgraph_client.get_volume_events

        if self._rpc is None:
            self._rpc = JsonRpcHttpClient(endpoint=settings.RPC_URL, timeout_s=settings.UPSTREAM_TIMEOUT_S)
        rpc_client = UniswapV3PoolRpcClient(
            rpc=self._rpc,
            pool_address=pool_id,
            usd_token_index=settings.USD_TOKEN_INDEX,
            usd_token_decimals=settings.USD_TOKEN_DECIMALS,
            block_chunk=settings.LOG_BLOCK_CHUNK,
            initial_lookback_blocks=settings.INITIAL_LOOKBACK_BLOCKS,
        )
        return rpc_client.get_price, rpc_client.get_volume_events

    async def _build_snapshot_repository(self) -> SnapshotRepository:
        if settings.SNAPSHOT_BACKEND == "mongo":
            self._mongo_client = get_mongo_client()
            repo = SnapshotRepositoryMongoDB(self._mongo_client[settings.MONGODB_DB_NAME], key=settings.SNAPSHOT_KEY)
            try:
                await repo.ensure_indexes()
            except PersistenceError as exc:
                self._logger.exception("Snapshot indexes not ensured: %s", exc)
            return repo

        return SnapshotRepositoryFile(settings.DATA_FILE_PATH)
