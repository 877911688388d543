from __future__ import annotations

import pytest
import requests

import feed_relay.rpc as rpc_mod
from feed_relay.errors import RpcError
from feed_relay.rpc import LedgerRpcClient


class _Resp:
    def __init__(self, payload, status: int = 200, bad_json: bool = False):
        self._payload = payload
        self.status_code = status
        self._bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._bad_json:
            raise ValueError("Expecting value")
        return self._payload


def _install(monkeypatch, *responses):
    calls = []
    queue = list(responses)

    def fake_post(url, json=None, timeout=None):
        calls.append({"url": url, "body": json, "timeout": timeout})
        resp = queue.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp

    monkeypatch.setattr(rpc_mod.requests, "post", fake_post)
    return calls


def test_signatures_request_and_parsing(monkeypatch):
    calls = _install(
        monkeypatch,
        _Resp({"jsonrpc": "2.0", "id": 1, "result": [
            {"signature": "s9", "slot": 9, "err": None},
            {"signature": "s4", "slot": 4, "err": None},
        ]}),
    )
    client = LedgerRpcClient("http://rpc.test", timeout_s=3)

    refs = client.get_signatures_for_address("market1", until="s1")

    assert [(r.id, r.slot) for r in refs] == [("s9", 9), ("s4", 4)]
    body = calls[0]["body"]
    assert body["method"] == "getSignaturesForAddress"
    assert body["params"] == ["market1", {"commitment": "finalized", "until": "s1"}]
    assert calls[0]["timeout"] == 3.0


def test_latest_signature_uses_limit_one(monkeypatch):
    calls = _install(
        monkeypatch,
        _Resp({"result": [{"signature": "head", "slot": 77}]}),
        _Resp({"result": []}),
    )
    client = LedgerRpcClient("http://rpc.test")

    latest = client.get_latest_signature("program")
    assert (latest.id, latest.slot) == ("head", 77)
    assert calls[0]["body"]["params"][1]["limit"] == 1

    assert client.get_latest_signature("program") is None


def test_get_transaction_reads_logs_and_failure(monkeypatch):
    calls = _install(
        monkeypatch,
        _Resp({"result": {"slot": 12, "meta": {"err": {"InstructionError": [0, "Custom"]}, "logMessages": ["a", "b"]}}}),
        _Resp({"result": None}),
    )
    client = LedgerRpcClient("http://rpc.test")

    record = client.get_transaction("sigX")
    assert record.id == "sigX"
    assert record.slot == 12
    assert record.failed is True
    assert record.log_lines == ("a", "b")
    assert calls[0]["body"]["params"][1] == {
        "encoding": "json",
        "commitment": "confirmed",
        "maxSupportedTransactionVersion": 0,
    }

    assert client.get_transaction("gone") is None


def test_rpc_error_object_raises(monkeypatch):
    _install(monkeypatch, _Resp({"error": {"code": -32005, "message": "Node is behind"}}))
    client = LedgerRpcClient("http://rpc.test")

    with pytest.raises(RpcError) as excinfo:
        client.get_signatures_for_address("market1")
    assert excinfo.value.code == -32005
    assert "Node is behind" in str(excinfo.value)


@pytest.mark.parametrize(
    "response",
    [
        requests.ConnectionError("refused"),
        _Resp({}, status=502),
        _Resp(None, bad_json=True),
        _Resp({"jsonrpc": "2.0", "id": 1}),
    ],
)
def test_transport_failures_become_rpc_errors(monkeypatch, response):
    _install(monkeypatch, response)
    client = LedgerRpcClient("http://rpc.test")

    with pytest.raises(RpcError):
        client.get_transaction("sig")


def test_request_ids_increase(monkeypatch):
    calls = _install(monkeypatch, _Resp({"result": []}), _Resp({"result": []}))
    client = LedgerRpcClient("http://rpc.test")

    client.get_signatures_for_address("a")
    client.get_signatures_for_address("b")

    assert [c["body"]["id"] for c in calls] == [1, 2]
