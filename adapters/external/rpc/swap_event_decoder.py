# adapters/external/rpc/swap_event_decoder.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

# keccak256 of the event signatures
STANDARD_SWAP_TOPIC = "0xc42079f94a6350d7e6235f29174924f928cc2ac818eb64fed8004e115fbcca67"
EXTENDED_SWAP_TOPIC = "0x19b47279256b2a23a1665c810c8d55a1758940ee09377d4f8d26497a3577dc83"

WORD_HEX_LEN = 64
_UINT256 = 1 << 256
_INT256_MIN = 1 << 255


@dataclass(frozen=True)
class DecodedSwap:
    """Swap event normalized across pool implementations."""

    amount0: int
    amount1: int
    sqrt_price_x96: int
    liquidity: int
    tick: int
    protocol_fees_token0: int = 0
    protocol_fees_token1: int = 0


def _words(data: str) -> List[str]:
    body = data[2:] if data.startswith("0x") else data
    if len(body) % WORD_HEX_LEN:
        raise ValueError(f"log data is not word-aligned (len={len(body)})")
    return [body[i : i + WORD_HEX_LEN] for i in range(0, len(body), WORD_HEX_LEN)]


def _uint(word: str) -> int:
    return int(word, 16)


def _int(word: str) -> int:
    value = int(word, 16)
    return value - _UINT256 if value >= _INT256_MIN else value


class SwapDecoder(ABC):
    """
    Decodes the non-indexed data of a Swap log.

    Both shapes share the leading (amount0, amount1, sqrtPriceX96, liquidity, tick)
    words; subclasses add what their shape carries beyond that.
    """

    name: str
    topic: str
    word_count: int

    def decode(self, data: str) -> DecodedSwap:
        words = _words(data)
        if len(words) < self.word_count:
            raise ValueError(f"{self.name} swap expects {self.word_count} words, got {len(words)}")
        fees = self._protocol_fees(words)
        return DecodedSwap(
            amount0=_int(words[0]),
            amount1=_int(words[1]),
            sqrt_price_x96=_uint(words[2]),
            liquidity=_uint(words[3]),
            tick=_int(words[4]),
            protocol_fees_token0=fees[0],
            protocol_fees_token1=fees[1],
        )

    @abstractmethod
    def _protocol_fees(self, words: List[str]) -> Tuple[int, int]: ...


class StandardSwapDecoder(SwapDecoder):
    """Swap(address,address,int256,int256,uint160,uint128,int24), Uniswap V3."""

    name = "standard"
    topic = STANDARD_SWAP_TOPIC
    word_count = 5

    def _protocol_fees(self, words: List[str]) -> Tuple[int, int]:
        return 0, 0


class ExtendedSwapDecoder(SwapDecoder):
    """Swap(address,address,int256,int256,uint160,uint128,int24,uint128,uint128), PancakeSwap V3 with protocol fees."""

    name = "extended"
    topic = EXTENDED_SWAP_TOPIC
    word_count = 7

    def _protocol_fees(self, words: List[str]) -> Tuple[int, int]:
        return _uint(words[5]), _uint(words[6])


DECODERS: Tuple[SwapDecoder, ...] = (StandardSwapDecoder(), ExtendedSwapDecoder())
SWAP_TOPICS: List[str] = [d.topic for d in DECODERS]


def decoder_for(log: Dict[str, Any]) -> SwapDecoder:
    """
    Pick the decoder by topic0, falling back to the data length for unknown topics.
    """
    topics = log.get("topics") or []
    topic0: Optional[str] = str(topics[0]).lower() if topics else None
    for decoder in DECODERS:
        if decoder.topic == topic0:
            return decoder

    words = len(_words(str(log.get("data") or "0x")))
    return DECODERS[1] if words >= ExtendedSwapDecoder.word_count else DECODERS[0]


def decode_swap_log(log: Dict[str, Any]) -> DecodedSwap:
    return decoder_for(log).decode(str(log.get("data") or "0x"))
