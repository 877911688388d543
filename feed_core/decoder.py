"""Fixed-layout decoder for the venue's FillLog and PlaceOrderLog records.

Layouts are little-endian and carry no length prefixes:

  FillLog (160 bytes)
    market[32] maker[32] taker[32] price:u128 base_atoms:u64 quote_atoms:u64
    maker_sequence_number:u64 taker_sequence_number:u64 taker_is_buy:u8
    is_maker_global:u8 padding[14]

  PlaceOrderLog (112 bytes)
    market[32] trader[32] price:u128 base_atoms:u64 order_sequence_number:u64
    order_index:u32 last_valid_slot:u32 order_type:u8 is_bid:u8 padding[6]
"""

from __future__ import annotations

import struct
from typing import Optional, Union

from feed_core.discriminator import FILL_LOG_DISCRIMINATOR, PLACE_ORDER_LOG_DISCRIMINATOR
from feed_core.numbers import convert_u128, decode_pubkey, encode_pubkey, price_to_u128
from feed_core.types import FillEvent, OrderType, PlaceOrderEvent

_FILL_LOG = struct.Struct("<32s32s32s16sQQQQBB14s")
_PLACE_ORDER_LOG = struct.Struct("<32s32s16sQQIIBB6s")

FILL_LOG_SIZE = _FILL_LOG.size
PLACE_ORDER_LOG_SIZE = _PLACE_ORDER_LOG.size

DecodedEvent = Union[FillEvent, PlaceOrderEvent]


class DecodeError(ValueError):
    pass


class TruncatedPayloadError(DecodeError):
    def __init__(self, kind: str, expected: int, actual: int) -> None:
        super().__init__(f"{kind} payload truncated: expected {expected} bytes, got {actual}")
        self.kind = kind
        self.expected = expected
        self.actual = actual


def _require(kind: str, body: bytes, size: int) -> None:
    if len(body) < size:
        raise TruncatedPayloadError(kind, size, len(body))


def _order_type(raw: int) -> OrderType | int:
    try:
        return OrderType(raw)
    except ValueError:
        return raw


def decode_fill_log(body: bytes, *, signature: str, slot: int) -> FillEvent:
    _require("FillLog", body, FILL_LOG_SIZE)
    (
        market,
        maker,
        taker,
        price_raw,
        base_atoms,
        quote_atoms,
        maker_seq,
        taker_seq,
        taker_is_buy,
        is_maker_global,
        _padding,
    ) = _FILL_LOG.unpack_from(body, 0)
    return FillEvent(
        market=encode_pubkey(market),
        maker=encode_pubkey(maker),
        taker=encode_pubkey(taker),
        base_atoms=base_atoms,
        quote_atoms=quote_atoms,
        price=convert_u128(int.from_bytes(price_raw, "little")),
        taker_is_buy=bool(taker_is_buy),
        is_maker_global=bool(is_maker_global),
        maker_sequence_number=maker_seq,
        taker_sequence_number=taker_seq,
        signature=signature,
        slot=slot,
    )


def decode_place_order_log(body: bytes, *, signature: str, slot: int) -> PlaceOrderEvent:
    _require("PlaceOrderLog", body, PLACE_ORDER_LOG_SIZE)
    (
        market,
        trader,
        price_raw,
        base_atoms,
        order_seq,
        order_index,
        last_valid_slot,
        order_type,
        is_bid,
        padding,
    ) = _PLACE_ORDER_LOG.unpack_from(body, 0)
    return PlaceOrderEvent(
        market=encode_pubkey(market),
        trader=encode_pubkey(trader),
        base_atoms=base_atoms,
        price=convert_u128(int.from_bytes(price_raw, "little")),
        order_sequence_number=order_seq,
        order_index=order_index,
        last_valid_slot=last_valid_slot,
        order_type=_order_type(order_type),
        is_bid=bool(is_bid),
        padding=tuple(padding),
        signature=signature,
        slot=slot,
    )


def decode(discriminator: bytes, body: bytes, *, signature: str, slot: int) -> Optional[DecodedEvent]:
    """Decode one payload; ``None`` means the discriminator is not an event we relay."""
    if discriminator == FILL_LOG_DISCRIMINATOR:
        return decode_fill_log(body, signature=signature, slot=slot)
    if discriminator == PLACE_ORDER_LOG_DISCRIMINATOR:
        return decode_place_order_log(body, signature=signature, slot=slot)
    return None


def encode_fill_log(event: FillEvent) -> bytes:
    return _FILL_LOG.pack(
        decode_pubkey(event.market),
        decode_pubkey(event.maker),
        decode_pubkey(event.taker),
        price_to_u128(event.price).to_bytes(16, "little"),
        event.base_atoms,
        event.quote_atoms,
        event.maker_sequence_number,
        event.taker_sequence_number,
        int(event.taker_is_buy),
        int(event.is_maker_global),
        bytes(14),
    )


def encode_place_order_log(event: PlaceOrderEvent) -> bytes:
    return _PLACE_ORDER_LOG.pack(
        decode_pubkey(event.market),
        decode_pubkey(event.trader),
        price_to_u128(event.price).to_bytes(16, "little"),
        event.base_atoms,
        event.order_sequence_number,
        event.order_index,
        event.last_valid_slot,
        int(event.order_type),
        int(event.is_bid),
        bytes(event.padding),
    )
