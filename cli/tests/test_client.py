from __future__ import annotations

import io
import json

import httpx
import jwt
import pytest

from billingo_client import APIClient, BillingoClient, NetworkError, RequestError
from billingo_client import transport as transport_mod

SECRET = "private-key-that-is-long-enough-for-hs256"
OPTS = {
    "host": "https://api.example.test/v2/",
    "private_key": SECRET,
    "public_key": "pub-key",
}
PDF = b"%PDF-1.4\n" + b"x" * 100_000 + b"\n%%EOF"


def _client(handler, **opts) -> BillingoClient:
    return BillingoClient({**OPTS, **opts}, transport=httpx.MockTransport(handler))


def _ok(data) -> httpx.Response:
    return httpx.Response(200, json={"success": 1, "data": data})


@pytest.mark.parametrize("method", ["GET", "DELETE"])
def test_query_verbs_send_params(method: str) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return _ok({"ok": True})

    with _client(handler) as client:
        result = client.request(method, "invoices", {"page": 2, "per_page": 10})

    request = seen["request"]
    assert result == {"ok": True}
    assert request.method == method
    assert request.url.path == "/v2/invoices"
    assert dict(request.url.params) == {"page": "2", "per_page": "10"}
    assert request.content == b""


@pytest.mark.parametrize("method", ["POST", "PUT", "PATCH"])
def test_body_verbs_send_json(method: str) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return _ok({"id": 7})

    payload = {"partner_id": 1, "items": [{"description": "Widget", "qty": 2}]}
    with _client(handler) as client:
        result = client.request(method.lower(), "invoices", payload)

    request = seen["request"]
    assert result == {"id": 7}
    assert request.method == method
    assert not request.url.params
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content) == payload


def test_verb_helpers() -> None:
    methods = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return _ok({})

    with _client(handler) as client:
        client.get("partners")
        client.post("partners", {"name": "ACME"})
        client.put("partners/1", {"name": "ACME Kft."})
        client.delete("partners/1")

    assert methods == ["GET", "POST", "PUT", "DELETE"]


def test_every_request_gets_a_fresh_bearer_token() -> None:
    tokens = []

    def handler(request: httpx.Request) -> httpx.Response:
        scheme, _, token = request.headers["authorization"].partition(" ")
        assert scheme == "Bearer"
        tokens.append(token)
        return _ok({})

    with _client(handler, leeway=30) as client:
        client.get("invoices", issuer_hint="/checkout")
        client.get("invoices")

    assert len(tokens) == 2
    first = jwt.decode(tokens[0], SECRET, algorithms=["HS256"], options={"verify_iat": False})
    second = jwt.decode(tokens[1], SECRET, algorithms=["HS256"], options={"verify_iat": False})
    assert first["sub"] == "pub-key"
    assert first["iss"] == "/checkout"
    assert second["iss"] == "cli"
    assert first["exp"] - first["iat"] == 60


def test_request_error_from_envelope() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"success": 0, "error": "Not found"})

    with _client(handler) as client:
        with pytest.raises(RequestError) as exc_info:
            client.get("invoices/999")

    assert exc_info.value.message == "Not found"
    assert exc_info.value.status_code == 404


def test_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _client(handler) as client:
        with pytest.raises(NetworkError):
            client.get("invoices")


def test_download_into_file_object() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, content=PDF, headers={"content-type": "application/pdf"})

    sink = io.BytesIO()
    with _client(handler) as client:
        result = client.download_invoice(123, sink)

    assert result is None
    assert sink.getvalue() == PDF
    assert seen["request"].method == "GET"
    assert seen["request"].url.path == "/v2/invoices/123/download"
    assert seen["request"].headers["authorization"].startswith("Bearer ")
    assert seen["request"].content == b""


def test_download_into_path(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=PDF)

    target = tmp_path / "invoice.pdf"
    with _client(handler) as client:
        assert client.download_invoice(5, target) is None

    assert target.read_bytes() == PDF


def test_download_without_sink_returns_bytes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=PDF)

    with _client(handler) as client:
        body = client.download_invoice(5)

    assert isinstance(body, io.BytesIO)
    assert body.getvalue() == PDF


def test_download_error_does_not_touch_sink(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"success": 0, "error": "Invoice not found"})

    target = tmp_path / "invoice.pdf"
    with _client(handler) as client:
        with pytest.raises(RequestError) as exc_info:
            client.download_invoice(5, target)

    assert exc_info.value.message == "Invoice not found"
    assert not target.exists()


def test_auth_header() -> None:
    with _client(lambda request: _ok({})) as client:
        assert client.auth_header().startswith("Bearer ")


def test_transport_verifies_certificates_by_default(monkeypatch) -> None:
    captured = {}

    class _FakeHttpxClient:
        def __init__(self, **kwargs):
            captured.update(kwargs)

        def close(self) -> None:
            return None

    monkeypatch.setattr(transport_mod.httpx, "Client", _FakeHttpxClient)

    APIClient(OPTS).close()
    assert captured["verify"] is True
    assert captured["base_url"] == OPTS["host"]
    assert captured["timeout"] == 15.0
    assert captured["event_hooks"] is None

    APIClient({**OPTS, "verify_tls": False, "timeout_s": 3}).close()
    assert captured["verify"] is False
    assert captured["timeout"] == 3.0


def test_nested_query_payload_uses_bracket_keys() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return _ok([])

    payload = {
        "filter": {"status": "paid", "tags": ["a", "b"]},
        "draft": True,
        "archived": False,
        "partner": None,
        "page": 2,
    }
    with _client(handler) as client:
        client.get("invoices", payload)

    assert seen["request"].url.params.multi_items() == [
        ("filter[status]", "paid"),
        ("filter[tags][0]", "a"),
        ("filter[tags][1]", "b"),
        ("draft", "1"),
        ("archived", "0"),
        ("page", "2"),
    ]


def test_delete_query_payload_drops_none() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return _ok({})

    with _client(handler) as client:
        client.delete("partners/1", {"force": True, "reason": None})

    assert str(seen["request"].url) == "https://api.example.test/v2/partners/1?force=1"


class _BrokenStream(httpx.SyncByteStream):
    def __iter__(self):
        yield b"%PDF-1.4\n"
        raise httpx.ReadError("connection reset by peer")


def test_interrupted_download_leaves_no_file(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, stream=_BrokenStream())

    target = tmp_path / "invoice.pdf"
    with _client(handler) as client:
        with pytest.raises(NetworkError):
            client.download_invoice(5, target)

    assert list(tmp_path.iterdir()) == []


def test_download_replaces_existing_file_only_when_complete(tmp_path) -> None:
    target = tmp_path / "invoice.pdf"
    target.write_bytes(b"old copy")

    def broken(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, stream=_BrokenStream())

    with _client(broken) as client:
        with pytest.raises(NetworkError):
            client.download_invoice(5, target)
    assert target.read_bytes() == b"old copy"

    with _client(lambda request: httpx.Response(200, content=PDF)) as client:
        client.download_invoice(5, target)
    assert target.read_bytes() == PDF
    assert list(tmp_path.iterdir()) == [target]
