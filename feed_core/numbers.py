from __future__ import annotations

from decimal import Decimal, localcontext

import base58

# Prices are QuoteAtomsPerBaseAtom stored as a u128 with 18 implied decimals.
D18 = 10**18
U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1


def convert_u128(raw: int) -> float:
    """Convert the venue's u128 fixed-point price into a float."""
    with localcontext() as ctx:
        ctx.prec = 60
        return float(Decimal(raw) / Decimal(D18))


def price_to_u128(price: float | Decimal | str) -> int:
    """Inverse of ``convert_u128`` for prices on the D18 grid.

    Floats go through their shortest repr, so every value ``convert_u128``
    returns encodes back to a raw that decodes to the same float. Prices with
    more than 18 decimal places are rejected rather than truncated.
    """
    value = Decimal(str(price))
    if not value.is_finite():
        raise ValueError(f"price must be finite: {price!r}")
    with localcontext() as ctx:
        ctx.prec = 60
        scaled = value.scaleb(18)
        if scaled != scaled.to_integral_value():
            raise ValueError(f"price has more than 18 decimal places: {price!r}")
        raw = int(scaled)
    if raw < 0 or raw > U128_MAX:
        raise ValueError(f"price out of u128 range: {price!r}")
    return raw


def encode_pubkey(raw: bytes) -> str:
    return base58.b58encode(bytes(raw)).decode("ascii")


def decode_pubkey(value: str) -> bytes:
    raw = base58.b58decode(value)
    if len(raw) != 32:
        raise ValueError(f"public key must decode to 32 bytes (got {len(raw)})")
    return raw
