"""Pure decoding and cursor logic shared by the relay and its tests."""

from .classifier import extract_payloads
from .decoder import DecodeError, TruncatedPayloadError, decode
from .discriminator import FILL_LOG_DISCRIMINATOR, PLACE_ORDER_LOG_DISCRIMINATOR
from .tracker import CursorTracker, RecentSet
from .types import (
    Cursor,
    EventPayload,
    EventSignatureRef,
    FillEvent,
    OrderType,
    PlaceOrderEvent,
    RawTransactionRecord,
)

__all__ = [
    "extract_payloads",
    "DecodeError",
    "TruncatedPayloadError",
    "decode",
    "FILL_LOG_DISCRIMINATOR",
    "PLACE_ORDER_LOG_DISCRIMINATOR",
    "CursorTracker",
    "RecentSet",
    "Cursor",
    "EventPayload",
    "EventSignatureRef",
    "FillEvent",
    "OrderType",
    "PlaceOrderEvent",
    "RawTransactionRecord",
]
