"""Event discriminators for the venue's program logs.

Each log struct is prefixed with the first 8 bytes of
``sha256(program_id || "<namespace>::logs::<Name>")``.
"""

from __future__ import annotations

import hashlib

from feed_core.numbers import decode_pubkey

PROGRAM_ID = "MNFSTqtC93rEfYHB6hF82sKdZpUDFWkViLByLd1k1Ms"
LOG_NAMESPACE = "manifest"

DISCRIMINATOR_LEN = 8


def gen_discriminator(name: str, program_id: str = PROGRAM_ID) -> bytes:
    digest = hashlib.sha256(decode_pubkey(program_id) + name.encode("utf-8")).digest()
    return digest[:DISCRIMINATOR_LEN]


def log_name(struct_name: str, namespace: str = LOG_NAMESPACE) -> str:
    return f"{namespace}::logs::{struct_name}"


FILL_LOG_DISCRIMINATOR = gen_discriminator(log_name("FillLog"))
PLACE_ORDER_LOG_DISCRIMINATOR = gen_discriminator(log_name("PlaceOrderLog"))
