from __future__ import annotations

import random

import pytest

from feed_core.decoder import (
    FILL_LOG_SIZE,
    PLACE_ORDER_LOG_SIZE,
    TruncatedPayloadError,
    decode,
    encode_fill_log,
    encode_place_order_log,
)
from feed_core.discriminator import FILL_LOG_DISCRIMINATOR, PLACE_ORDER_LOG_DISCRIMINATOR
from feed_core.numbers import U64_MAX, convert_u128, price_to_u128
from feed_core.types import FillEvent, OrderType, PlaceOrderEvent
from tests._fixtures import make_fill, make_place_order


def test_layout_sizes_match_venue_structs():
    assert FILL_LOG_SIZE == 160
    assert PLACE_ORDER_LOG_SIZE == 112


def test_fill_log_round_trip():
    event = make_fill(signature="abc", slot=321, taker_is_buy=False, is_maker_global=True, price=123.456)
    decoded = decode(FILL_LOG_DISCRIMINATOR, encode_fill_log(event), signature="abc", slot=321)

    assert isinstance(decoded, FillEvent)
    assert decoded == event


def test_place_order_round_trip_with_wrapped_sequence_number():
    event = make_place_order(
        signature="def",
        slot=654,
        order_sequence_number=U64_MAX,
        order_type=OrderType.POST_ONLY,
        is_bid=False,
        last_valid_slot=999,
        padding=(1, 2, 3, 4, 5, 6),
    )
    decoded = decode(PLACE_ORDER_LOG_DISCRIMINATOR, encode_place_order_log(event), signature="def", slot=654)

    assert isinstance(decoded, PlaceOrderEvent)
    assert decoded == event
    assert decoded.to_dict()["orderSequenceNumber"] == str(U64_MAX)


@pytest.mark.parametrize(
    "discriminator,size",
    [(FILL_LOG_DISCRIMINATOR, FILL_LOG_SIZE), (PLACE_ORDER_LOG_DISCRIMINATOR, PLACE_ORDER_LOG_SIZE)],
)
def test_short_bodies_are_truncated(discriminator, size):
    for length in (0, 1, size // 2, size - 1):
        with pytest.raises(TruncatedPayloadError) as exc_info:
            decode(discriminator, bytes(length), signature="s", slot=1)
        assert exc_info.value.expected == size
        assert exc_info.value.actual == length


def test_unknown_discriminator_is_not_an_error():
    assert decode(b"\x00" * 8, bytes(FILL_LOG_SIZE), signature="s", slot=1) is None


def test_trailing_bytes_are_ignored():
    event = make_fill(signature="s", slot=1)
    body = encode_fill_log(event) + b"\xff" * 8
    assert decode(FILL_LOG_DISCRIMINATOR, body, signature="s", slot=1) == event


def test_unknown_order_type_keeps_raw_value():
    body = bytearray(encode_place_order_log(make_place_order(signature="s", slot=1)))
    # order_type sits after market, trader, price, base_atoms, seq, index, last_valid_slot
    body[32 + 32 + 16 + 8 + 8 + 4 + 4] = 9
    decoded = decode(PLACE_ORDER_LOG_DISCRIMINATOR, bytes(body), signature="s", slot=1)
    assert decoded.order_type == 9
    assert decoded.to_dict()["orderType"] == 9


def test_price_uses_d18_scale():
    assert convert_u128(15 * 10**17) == 1.5
    assert convert_u128(0) == 0.0
    assert price_to_u128("0.000000000000000001") == 1
    assert price_to_u128(2.5) == 25 * 10**17


def _sample_raws():
    rng = random.Random(20240601)
    raws = [0, 1, 9, 10**17, 10**18, 2**52, 2**53 + 1, 2**64 - 1, 2**100, 2**127]
    for bits in range(1, 128):
        raws.extend(rng.getrandbits(bits) for _ in range(4))
    return raws


def test_u128_prices_survive_encode_decode():
    for raw in _sample_raws():
        price = convert_u128(raw)
        assert convert_u128(price_to_u128(price)) == price, raw


@pytest.mark.parametrize("price", [1.2345678901234567e-05, "0.0000000000000000001", float("nan"), float("inf"), -1.0])
def test_unrepresentable_prices_rejected(price):
    with pytest.raises(ValueError):
        price_to_u128(price)


def test_trailing_zeros_beyond_d18_are_exact():
    assert price_to_u128("1.50000000000000000000") == 15 * 10**17


def test_fill_wire_shape():
    data = make_fill(signature="sig", slot=9).to_dict()
    assert data["baseAtoms"] == "1000000"
    assert data["quoteAtoms"] == "1500000"
    assert data["priceAtoms"] == 1.5
    assert data["takerIsBuy"] is True
    assert data["isMakerGlobal"] is False
    assert data["makerSequenceNumber"] == "41"
    assert data["signature"] == "sig"
    assert data["slot"] == 9
