from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional, Sequence, Tuple


@dataclass(frozen=True)
class EventSignatureRef:
    id: str
    slot: int

    @classmethod
    def from_rpc_item(cls, item: Dict[str, Any]) -> "EventSignatureRef":
        """Build from a single getSignaturesForAddress result item."""
        return cls(id=str(item["signature"]), slot=int(item["slot"]))


@dataclass(frozen=True)
class RawTransactionRecord:
    id: str
    slot: int
    log_lines: Tuple[str, ...]
    failed: bool = False

    @classmethod
    def from_rpc_result(cls, signature: str, result: Optional[Dict[str, Any]]) -> Optional["RawTransactionRecord"]:
        # A null result means the ledger no longer has the transaction.
        if result is None:
            return None
        meta = result.get("meta") or {}
        return cls(
            id=signature,
            slot=int(result.get("slot", 0)),
            log_lines=tuple(meta.get("logMessages") or ()),
            failed=meta.get("err") is not None,
        )


@dataclass(frozen=True)
class EventPayload:
    discriminator: bytes
    body: bytes


class OrderType(IntEnum):
    LIMIT = 0
    IMMEDIATE_OR_CANCEL = 1
    POST_ONLY = 2
    GLOBAL = 3
    REVERSE = 4


@dataclass(frozen=True)
class PlaceOrderEvent:
    market: str
    trader: str
    base_atoms: int
    price: float
    order_sequence_number: int
    order_index: int
    last_valid_slot: int
    order_type: OrderType | int
    is_bid: bool
    padding: Tuple[int, ...]
    signature: str
    slot: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "market": self.market,
            "trader": self.trader,
            "baseAtoms": str(self.base_atoms),
            "price": self.price,
            # Wraps at u64::MAX on the venue side; relayed as-is.
            "orderSequenceNumber": str(self.order_sequence_number),
            "orderIndex": self.order_index,
            "lastValidSlot": self.last_valid_slot,
            "orderType": int(self.order_type),
            "isBid": self.is_bid,
            "padding": list(self.padding),
            "signature": self.signature,
            "slot": self.slot,
        }


@dataclass(frozen=True)
class FillEvent:
    market: str
    maker: str
    taker: str
    base_atoms: int
    quote_atoms: int
    price: float
    taker_is_buy: bool
    is_maker_global: bool
    maker_sequence_number: int
    taker_sequence_number: int
    signature: str
    slot: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "market": self.market,
            "maker": self.maker,
            "taker": self.taker,
            "baseAtoms": str(self.base_atoms),
            "quoteAtoms": str(self.quote_atoms),
            "priceAtoms": self.price,
            "takerIsBuy": self.taker_is_buy,
            "isMakerGlobal": self.is_maker_global,
            "makerSequenceNumber": str(self.maker_sequence_number),
            "takerSequenceNumber": str(self.taker_sequence_number),
            "signature": self.signature,
            "slot": self.slot,
        }


@dataclass
class Cursor:
    last_signature: Optional[str] = None
    last_slot: int = 0


def refs_from_rpc(items: Sequence[Dict[str, Any]]) -> list[EventSignatureRef]:
    return [EventSignatureRef.from_rpc_item(item) for item in items]
