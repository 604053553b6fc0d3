"""Tests for the JSON-RPC producer.

Uses respx to mock the node and verify:
- slot0 price conversion and invalid slot0 handling
- eth_getLogs chunking from the last processed block
- USD volume of decoded swaps
- RPC error objects raised as UpstreamError
"""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from adapters.external.rpc.json_rpc_http_client import JsonRpcHttpClient
from adapters.external.rpc.swap_event_decoder import EXTENDED_SWAP_TOPIC, STANDARD_SWAP_TOPIC
from adapters.external.rpc.uniswap_v3_pool_rpc_client import (
    SLOT0_SELECTOR,
    UniswapV3PoolRpcClient,
    sqrt_price_x96_to_price,
)
from core.domain.errors import UpstreamError

from tests.conftest import POOL
from tests.test_swap_event_decoder import STANDARD_VALUES, swap_data

RPC_URL = "https://rpc.test"


def rpc_router(handlers):
    """Build a respx side effect dispatching on the JSON-RPC method."""
    calls = []

    def _side_effect(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        calls.append(body)
        result = handlers[body["method"]](body["params"])
        if isinstance(result, dict) and "error" in result:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **result})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    return _side_effect, calls


@pytest.fixture
async def rpc():
    client = JsonRpcHttpClient(endpoint=RPC_URL)
    yield client
    await client.aclose()


def test_sqrt_price_conversion():
    assert sqrt_price_x96_to_price(2**96) == 1.0
    assert sqrt_price_x96_to_price(2 * 2**96) == 4.0


@pytest.mark.asyncio
async def test_get_price_reads_slot0(rpc):
    slot0 = "0x" + format(2 * 2**96, "064x") + "0" * 64 * 6
    side_effect, calls = rpc_router({"eth_call": lambda params: slot0})

    with respx.mock:
        respx.post(RPC_URL).mock(side_effect=side_effect)
        price = await UniswapV3PoolRpcClient(rpc=rpc, pool_address=POOL).get_price()

    assert price == 4.0
    assert calls[0]["params"][0] == {"to": POOL, "data": SLOT0_SELECTOR}


@pytest.mark.asyncio
@pytest.mark.parametrize("slot0", ["0x", "0x" + "0" * 64 * 7])
async def test_get_price_rejects_empty_or_zero_slot0(rpc, slot0):
    side_effect, _ = rpc_router({"eth_call": lambda params: slot0})

    with respx.mock:
        respx.post(RPC_URL).mock(side_effect=side_effect)
        with pytest.raises(UpstreamError):
            await UniswapV3PoolRpcClient(rpc=rpc, pool_address=POOL).get_price()


@pytest.mark.asyncio
async def test_rpc_error_object_is_upstream_error(rpc):
    side_effect, _ = rpc_router({"eth_call": lambda params: {"error": {"code": -32000, "message": "boom"}}})

    with respx.mock:
        respx.post(RPC_URL).mock(side_effect=side_effect)
        with pytest.raises(UpstreamError) as exc_info:
            await rpc.call("eth_call", [])

    assert "boom" in str(exc_info.value)


@pytest.mark.asyncio
async def test_http_failure_is_upstream_error(rpc):
    with respx.mock:
        respx.post(RPC_URL).mock(return_value=httpx.Response(502))
        with pytest.raises(UpstreamError):
            await rpc.call("eth_blockNumber")


@pytest.mark.asyncio
async def test_volume_scan_chunks_blocks_and_converts_usd_leg(rpc):
    logs = [
        {"topics": [STANDARD_SWAP_TOPIC], "data": swap_data(*STANDARD_VALUES)},
        {"topics": [EXTENDED_SWAP_TOPIC], "data": swap_data(5, -3 * 10**18, 2**96, 1, 0, 0, 0)},
        {"topics": [STANDARD_SWAP_TOPIC], "data": "0x12"},
    ]
    block = {"n": 1_250}

    def get_logs(params):
        return logs if params[0]["fromBlock"] == hex(1_151) else []

    side_effect, calls = rpc_router({"eth_blockNumber": lambda params: hex(block["n"]), "eth_getLogs": get_logs})
    client = UniswapV3PoolRpcClient(rpc=rpc, pool_address=POOL, block_chunk=50, initial_lookback_blocks=100)

    with respx.mock:
        respx.post(RPC_URL).mock(side_effect=side_effect)
        events = await client.get_volume_events()
        block["n"] = 1_260
        later = await client.get_volume_events()

    ranges = [(c["params"][0]["fromBlock"], c["params"][0]["toBlock"]) for c in calls if c["method"] == "eth_getLogs"]
    assert ranges == [
        (hex(1_151), hex(1_200)),
        (hex(1_201), hex(1_250)),
        (hex(1_251), hex(1_260)),
    ]
    assert calls[1]["params"][0]["topics"] == [[STANDARD_SWAP_TOPIC, EXTENDED_SWAP_TOPIC]]
    assert [e.amount for e in events] == [2.0, 3.0]
    assert later == []
    assert client.last_processed_block == 1_260


@pytest.mark.asyncio
async def test_volume_scan_without_new_blocks(rpc):
    side_effect, calls = rpc_router({"eth_blockNumber": lambda params: hex(10), "eth_getLogs": lambda params: []})
    client = UniswapV3PoolRpcClient(rpc=rpc, pool_address=POOL, initial_lookback_blocks=0)

    with respx.mock:
        respx.post(RPC_URL).mock(side_effect=side_effect)
        events = await client.get_volume_events()

    assert events == []
    assert [c["method"] for c in calls] == ["eth_blockNumber"]


@pytest.mark.asyncio
async def test_volume_scan_failure_on_first_chunk_raises(rpc):
    side_effect, _ = rpc_router(
        {
            "eth_blockNumber": lambda params: hex(500),
            "eth_getLogs": lambda params: {"error": {"code": -32005, "message": "limit exceeded"}},
        }
    )
    client = UniswapV3PoolRpcClient(rpc=rpc, pool_address=POOL)

    with respx.mock:
        respx.post(RPC_URL).mock(side_effect=side_effect)
        with pytest.raises(UpstreamError):
            await client.get_volume_events()

    assert client.last_processed_block is None


@pytest.mark.asyncio
@pytest.mark.parametrize("block", [None, "latest"])
async def test_unparseable_block_number_is_upstream_error(rpc, block):
    side_effect, calls = rpc_router({"eth_blockNumber": lambda params: block})
    client = UniswapV3PoolRpcClient(rpc=rpc, pool_address=POOL)

    with respx.mock:
        respx.post(RPC_URL).mock(side_effect=side_effect)
        with pytest.raises(UpstreamError):
            await client.get_volume_events()

    assert [c["method"] for c in calls] == ["eth_blockNumber"]
    assert client.last_processed_block is None
