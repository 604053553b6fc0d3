# adapters/external/rpc/uniswap_v3_pool_rpc_client.py
from __future__ import annotations

import logging
import time
from typing import List, Optional

from adapters.external.rpc.json_rpc_http_client import JsonRpcHttpClient
from adapters.external.rpc.swap_event_decoder import SWAP_TOPICS, DecodedSwap, decode_swap_log
from core.domain.entities.volume_entity import VolumeSampleEntity
from core.domain.errors import UpstreamError

SLOT0_SELECTOR = "0x3850c7bd"
Q192 = 2**192


def sqrt_price_x96_to_price(sqrt_price_x96: int) -> float:
    """price (token1 per token0, raw units) = sqrtPriceX96^2 / 2^192"""
    return (int(sqrt_price_x96) ** 2) / Q192


class UniswapV3PoolRpcClient:
    """
    Reads a Uniswap V3 style pool directly from an EVM node.

    - get_price(): spot price from slot0().sqrtPriceX96
    - get_volume_events(): new Swap logs since the last processed block,
      scanned in fixed block chunks, both Swap shapes in one filter

    Volume convention:
      one of the tokens is assumed USD-denominated; its absolute swap amount,
      scaled by its decimals, is the USD volume of the swap.
    """

    def __init__(
        self,
        *,
        rpc: JsonRpcHttpClient,
        pool_address: str,
        usd_token_index: int = 1,
        usd_token_decimals: int = 18,
        block_chunk: int = 100,
        initial_lookback_blocks: int = 100,
        logger: logging.Logger | None = None,
    ) -> None:
        self._rpc = rpc
        self._pool = str(pool_address).strip()
        self._usd_index = int(usd_token_index)
        self._usd_scale = 10 ** int(usd_token_decimals)
        self._chunk = max(1, int(block_chunk))
        self._lookback = int(initial_lookback_blocks)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

        self._last_processed_block: Optional[int] = None

    @property
    def pool_address(self) -> str:
        return self._pool

    @property
    def last_processed_block(self) -> Optional[int]:
        return self._last_processed_block

    async def get_price(self) -> float:
        result = await self._rpc.call("eth_call", [{"to": self._pool, "data": SLOT0_SELECTOR}, "latest"])
        body = str(result or "0x")[2:]
        if len(body) < 64:
            raise UpstreamError(f"Pool {self._pool} may not be a valid Uniswap V3 pool (empty slot0)")

        sqrt_price_x96 = int(body[:64], 16)
        if sqrt_price_x96 == 0:
            raise UpstreamError(f"Invalid price data for pool {self._pool}")
        return sqrt_price_x96_to_price(sqrt_price_x96)

    async def get_volume_events(self) -> List[VolumeSampleEntity]:
        block = await self._rpc.call("eth_blockNumber")
        try:
            current = int(str(block), 16)
        except ValueError as exc:
            raise UpstreamError(f"Invalid block number from node: {block!r}") from exc

        last = self._last_processed_block
        if last is None:
            last = current - self._lookback
        if current <= last:
            return []

        events: List[VolumeSampleEntity] = []
        for start in range(last + 1, current + 1, self._chunk):
            end = min(start + self._chunk - 1, current)
            try:
                logs = await self._rpc.call(
                    "eth_getLogs",
                    [
                        {
                            "address": self._pool,
                            "topics": [SWAP_TOPICS],
                            "fromBlock": hex(start),
                            "toBlock": hex(end),
                        }
                    ],
                )
            except UpstreamError as exc:
                if not events:
                    raise
                self._logger.warning(
                    "eth_getLogs failed pool=%s blocks=%s-%s, resuming next tick: %s",
                    self._pool,
                    start,
                    end,
                    exc,
                )
                return events

            now_ms = int(time.time() * 1000)
            for log in logs or []:
                try:
                    swap = decode_swap_log(log)
                except ValueError as exc:
                    self._logger.warning("Error processing swap event pool=%s: %s", self._pool, exc)
                    continue
                events.append(VolumeSampleEntity(amount=self.swap_volume_usd(swap), timestamp=now_ms))

            self._last_processed_block = end

        if events:
            self._logger.info(
                "Pool %s: found %s swap events up to block %s", self._pool, len(events), current
            )
        return events

    def swap_volume_usd(self, swap: DecodedSwap) -> float:
        amount = swap.amount0 if self._usd_index == 0 else swap.amount1
        return abs(amount) / self._usd_scale
