from __future__ import annotations

from typing import Any, Dict, List

import requests

from feed_relay.errors import CatalogError


_ADDRESSES_PATH = "/markets/addresses"
_RECONCILE_PATH = "/cron/checkOrdersAndFills"


class CatalogClient:
    """Client for the market catalog: the watch list and the reconcile hint."""

    def __init__(self, base_url: str, token: str = "", timeout_s: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout_s = float(timeout_s)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    def _get(self, path: str, params: Dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = requests.get(url, params=params, headers=self._headers(), timeout=self.timeout_s)
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as exc:
            raise CatalogError(f"GET {path} failed: {exc}") from exc
        except ValueError as exc:
            raise CatalogError(f"GET {path} returned invalid JSON: {exc}") from exc

    def fetch_market_addresses(self) -> List[str]:
        payload = self._get(_ADDRESSES_PATH)
        if not isinstance(payload, list):
            raise CatalogError(f"GET {_ADDRESSES_PATH} returned {type(payload).__name__}, expected a list")
        return [str(addr) for addr in payload if addr]

    def check_orders_and_fills(self, market: str) -> Any:
        return self._get(_RECONCILE_PATH, params={"marketAddress": market})
