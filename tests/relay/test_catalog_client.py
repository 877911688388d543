from __future__ import annotations

import pytest
import requests

import feed_relay.catalog as catalog_mod
from feed_relay.catalog import CatalogClient
from feed_relay.errors import CatalogError


class _Resp:
    def __init__(self, payload, status: int = 200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


def test_fetch_market_addresses_sends_bearer(monkeypatch):
    seen = {}

    def fake_get(url, params=None, headers=None, timeout=None):
        seen.update(url=url, params=params, headers=headers, timeout=timeout)
        return _Resp(["m1", "", "m2"])

    monkeypatch.setattr(catalog_mod.requests, "get", fake_get)
    client = CatalogClient("https://catalog.test/api/", token="s3cret", timeout_s=2)

    assert client.fetch_market_addresses() == ["m1", "m2"]
    assert seen["url"] == "https://catalog.test/api/markets/addresses"
    assert seen["headers"] == {"Authorization": "Bearer s3cret"}
    assert seen["timeout"] == 2.0


def test_fetch_market_addresses_rejects_non_list(monkeypatch):
    monkeypatch.setattr(catalog_mod.requests, "get", lambda *a, **k: _Resp({"markets": []}))
    client = CatalogClient("https://catalog.test/api")

    with pytest.raises(CatalogError):
        client.fetch_market_addresses()


def test_reconcile_passes_market_param(monkeypatch):
    seen = {}

    def fake_get(url, params=None, headers=None, timeout=None):
        seen.update(url=url, params=params)
        return _Resp({"ok": True})

    monkeypatch.setattr(catalog_mod.requests, "get", fake_get)
    client = CatalogClient("https://catalog.test/api")

    assert client.check_orders_and_fills("m9") == {"ok": True}
    assert seen["url"] == "https://catalog.test/api/cron/checkOrdersAndFills"
    assert seen["params"] == {"marketAddress": "m9"}


def test_http_errors_become_catalog_errors(monkeypatch):
    monkeypatch.setattr(catalog_mod.requests, "get", lambda *a, **k: _Resp(None, status=401))
    client = CatalogClient("https://catalog.test/api")

    with pytest.raises(CatalogError):
        client.check_orders_and_fills("m1")
