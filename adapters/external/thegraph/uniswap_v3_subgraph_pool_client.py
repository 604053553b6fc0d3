from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Set, Tuple

from adapters.external.thegraph.thegraph_http_client import TheGraphHttpClient
from core.domain.entities.volume_entity import VolumeSampleEntity
from core.domain.errors import UpstreamError


class UniswapV3SubgraphPoolClient:
    """
    Reads a V3 pool through a Uniswap-V3-schema subgraph.

    Pricing convention:
      token0Price = token1 per token0, the same orientation as the on-chain
      sqrtPriceX96^2 / 2^192 price, so both producers feed comparable series.

    Volume:
      swaps from the last seen swap second onward, using the subgraph's amountUSD.
      Swaps already counted at that second are skipped by id, so a page that
      ends partway through one second is picked up on the next tick.
    """

    POOL_QUERY = """
    query Pool($id: ID!) {
      pool(id: $id) {
        id
        token0Price
        token1Price
        sqrtPrice
        token0 { id symbol decimals }
        token1 { id symbol decimals }
      }
    }
    """

    SWAPS_QUERY = """
    query Swaps($pool: String!, $since: BigInt!, $first: Int!) {
      swaps(
        where: { pool: $pool, timestamp_gte: $since }
        orderBy: timestamp
        orderDirection: asc
        first: $first
      ) {
        id
        timestamp
        amountUSD
      }
    }
    """

    def __init__(
        self,
        *,
        http: TheGraphHttpClient,
        pool_address: str,
        page_size: int = 1000,
        logger: logging.Logger | None = None,
    ) -> None:
        self._http = http
        self._pool = str(pool_address).strip().lower()
        self._page_size = int(page_size)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

        self._last_swap_ts: Optional[int] = None
        self._seen_at_last_ts: Set[str] = set()

    async def get_pool(self) -> Dict[str, Any]:
        res = await self._http.query(query=self.POOL_QUERY, variables={"id": self._pool})
        return (res or {}).get("data", {}).get("pool") or {}

    async def get_price(self) -> float:
        data = await self.get_pool()
        if not data:
            raise UpstreamError(f"Pool {self._pool} not found in subgraph")

        token0_price = data.get("token0Price")
        if token0_price is None:
            raise UpstreamError("token0Price is missing from pool response")
        return float(token0_price)

    async def get_volume_events(self) -> List[VolumeSampleEntity]:
        if self._last_swap_ts is None:
            # first run: only swaps from now on, the subgraph already aggregates the past
            self._last_swap_ts, self._seen_at_last_ts = await self._latest_swap_second()
            return []

        res = await self._http.query(
            query=self.SWAPS_QUERY,
            variables={"pool": self._pool, "since": str(self._last_swap_ts), "first": self._page_size},
        )
        swaps = (res or {}).get("data", {}).get("swaps") or []

        events: List[VolumeSampleEntity] = []
        for swap in swaps:
            swap_id = str(swap.get("id") or "")
            try:
                ts_s = int(swap["timestamp"])
                amount = abs(float(swap.get("amountUSD") or 0.0))
            except (KeyError, TypeError, ValueError) as exc:
                self._logger.warning("Error processing subgraph swap pool=%s: %s", self._pool, exc)
                continue

            if ts_s < self._last_swap_ts or (ts_s == self._last_swap_ts and swap_id in self._seen_at_last_ts):
                continue
            if ts_s > self._last_swap_ts:
                self._last_swap_ts = ts_s
                self._seen_at_last_ts = set()
            self._seen_at_last_ts.add(swap_id)
            events.append(VolumeSampleEntity(amount=amount, timestamp=ts_s * 1000))
        return events

    async def _latest_swap_second(self) -> Tuple[int, Set[str]]:
        """Timestamp of the newest swap and the ids of every swap in that second."""
        q = """
        query LastSwaps($pool: String!, $first: Int!) {
          swaps(where: { pool: $pool }, orderBy: timestamp, orderDirection: desc, first: $first) {
            id
            timestamp
          }
        }
        """
        res = await self._http.query(query=q, variables={"pool": self._pool, "first": self._page_size})
        swaps = (res or {}).get("data", {}).get("swaps") or []
        if not swaps:
            return 0, set()

        latest = int(swaps[0]["timestamp"])
        seen = {str(s.get("id") or "") for s in swaps if int(s["timestamp"]) == latest}
        return latest, seen
