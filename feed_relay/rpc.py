from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, List, Optional

import requests

from feed_core.types import EventSignatureRef, RawTransactionRecord, refs_from_rpc
from feed_relay.errors import RpcError
from feed_relay.settings import (
    MAX_SUPPORTED_TRANSACTION_VERSION,
    SIGNATURE_COMMITMENT,
    TRANSACTION_COMMITMENT,
)

log = logging.getLogger("feed_relay.rpc")


class LedgerRpcClient:
    """Minimal Solana JSON-RPC client for the two ledger queries the feed needs."""

    def __init__(self, url: str, timeout_s: float = 30.0) -> None:
        self.url = url
        self.timeout_s = float(timeout_s)
        self._ids = itertools.count(1)

    def _call(self, method: str, params: List[Any]) -> Any:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            resp = requests.post(self.url, json=body, timeout=self.timeout_s)
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as exc:
            raise RpcError(method, str(exc)) from exc
        except ValueError as exc:
            raise RpcError(method, f"invalid JSON response: {exc}") from exc
        error = payload.get("error") if isinstance(payload, dict) else None
        if error:
            raise RpcError(method, str(error.get("message", error)), code=error.get("code"))
        if not isinstance(payload, dict) or "result" not in payload:
            raise RpcError(method, "response missing result")
        return payload["result"]

    def get_signatures_for_address(
        self,
        address: str,
        *,
        limit: Optional[int] = None,
        until: Optional[str] = None,
        commitment: str = SIGNATURE_COMMITMENT,
    ) -> List[EventSignatureRef]:
        """Return signatures newest-first, as the ledger does."""
        config: Dict[str, Any] = {"commitment": commitment}
        if limit is not None:
            config["limit"] = int(limit)
        if until:
            config["until"] = until
        result = self._call("getSignaturesForAddress", [address, config]) or []
        return refs_from_rpc(result)

    def get_latest_signature(self, address: str, commitment: str = SIGNATURE_COMMITMENT) -> Optional[EventSignatureRef]:
        refs = self.get_signatures_for_address(address, limit=1, commitment=commitment)
        return refs[0] if refs else None

    def get_transaction(
        self,
        signature: str,
        *,
        max_supported_version: int = MAX_SUPPORTED_TRANSACTION_VERSION,
        commitment: str = TRANSACTION_COMMITMENT,
    ) -> Optional[RawTransactionRecord]:
        config = {
            "encoding": "json",
            "commitment": commitment,
            "maxSupportedTransactionVersion": max_supported_version,
        }
        result = self._call("getTransaction", [signature, config])
        return RawTransactionRecord.from_rpc_result(signature, result)
