"""Tests for Swap log decoding (standard and extended shapes)."""

from __future__ import annotations

import pytest

from adapters.external.rpc.swap_event_decoder import (
    EXTENDED_SWAP_TOPIC,
    STANDARD_SWAP_TOPIC,
    ExtendedSwapDecoder,
    StandardSwapDecoder,
    decode_swap_log,
    decoder_for,
)


def encode_word(value: int) -> str:
    return format(value % (1 << 256), "064x")


def swap_data(*values: int) -> str:
    return "0x" + "".join(encode_word(v) for v in values)


STANDARD_VALUES = (-1_000, 2 * 10**18, 2**96, 12_345, -5)


def test_standard_log_decodes_signed_words():
    log = {"topics": [STANDARD_SWAP_TOPIC], "data": swap_data(*STANDARD_VALUES)}

    swap = decode_swap_log(log)

    assert swap.amount0 == -1_000
    assert swap.amount1 == 2 * 10**18
    assert swap.sqrt_price_x96 == 2**96
    assert swap.liquidity == 12_345
    assert swap.tick == -5
    assert swap.protocol_fees_token0 == 0


def test_extended_log_carries_protocol_fees():
    log = {"topics": [EXTENDED_SWAP_TOPIC.upper().replace("0X", "0x")], "data": swap_data(*STANDARD_VALUES, 7, 9)}

    swap = decode_swap_log(log)

    assert isinstance(decoder_for(log), ExtendedSwapDecoder)
    assert swap.amount1 == 2 * 10**18
    assert (swap.protocol_fees_token0, swap.protocol_fees_token1) == (7, 9)


@pytest.mark.parametrize(
    "values,expected",
    [
        (STANDARD_VALUES, StandardSwapDecoder),
        (STANDARD_VALUES + (1, 2), ExtendedSwapDecoder),
    ],
)
def test_unknown_topic_falls_back_to_data_length(values, expected):
    log = {"topics": ["0x" + "ab" * 32], "data": swap_data(*values)}

    assert isinstance(decoder_for(log), expected)


def test_extended_topic_with_short_data_is_rejected():
    log = {"topics": [EXTENDED_SWAP_TOPIC], "data": swap_data(*STANDARD_VALUES)}

    with pytest.raises(ValueError):
        decode_swap_log(log)


def test_misaligned_data_is_rejected():
    with pytest.raises(ValueError):
        decode_swap_log({"topics": [STANDARD_SWAP_TOPIC], "data": "0x1234"})
