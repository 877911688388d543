from __future__ import annotations

import base64
import binascii
from typing import Iterable, List, Optional

from feed_core.discriminator import DISCRIMINATOR_LEN
from feed_core.types import EventPayload

PROGRAM_DATA_MARKER = "Program data: "


def _payload_token(line: str) -> Optional[str]:
    idx = line.find(PROGRAM_DATA_MARKER)
    if idx < 0:
        return None
    rest = line[idx + len(PROGRAM_DATA_MARKER) :].split()
    return rest[0] if rest else None


def extract_payloads(log_lines: Iterable[str]) -> List[EventPayload]:
    """Pull ``Program data:`` payloads out of a transaction's log, in log order.

    Unrelated lines, undecodable base64 and payloads shorter than a
    discriminator are dropped.
    """
    payloads: List[EventPayload] = []
    for line in log_lines:
        token = _payload_token(line)
        if token is None:
            continue
        try:
            raw = base64.b64decode(token, validate=True)
        except (binascii.Error, ValueError):
            continue
        if len(raw) < DISCRIMINATOR_LEN:
            continue
        payloads.append(EventPayload(discriminator=raw[:DISCRIMINATOR_LEN], body=raw[DISCRIMINATOR_LEN:]))
    return payloads


def program_data_line(raw: bytes) -> str:
    return f"{PROGRAM_DATA_MARKER}{base64.b64encode(raw).decode('ascii')}"
