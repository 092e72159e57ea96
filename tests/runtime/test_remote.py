"""Tests for resolvespine.runtime.remote: HTTP dispatch to external providers."""

from __future__ import annotations

import json
import time

import httpx
import pytest

from resolvespine.core.context import CallContext
from resolvespine.core.errors import RemoteCallError, UnsupportedProtocolError
from resolvespine.runtime.remote import FUNCTION_HEADER, RemoteProviderFn, RemoteProviderSpec
from resolvespine.runtime.tracer import with_baggage

ENDPOINT = "http://provider.test/ext"


def _mock_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestRemoteProviderFn:
    def test_round_trip_through_provider_app(self, ctx, provider_client):
        fn = RemoteProviderFn("test", "upper", RemoteProviderSpec(endpoint=ENDPOINT), client=provider_client)
        out = fn.call(ctx, {"$do": "upper", "$provider": "test", "$params": {"input": "hello"}})
        assert out == {"$returns": {"output": "HELLO"}}

    def test_request_shape(self, ctx):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        spec = RemoteProviderSpec(endpoint=ENDPOINT, headers={"Authorization": "Bearer t"})
        fn = RemoteProviderFn("test", "upper", spec, client=_mock_client(handler))
        ctx = with_baggage(ctx, {"tenant": "acme"})
        fn.call(ctx, {"$params": {"input": "x"}, "other": 1})

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == ENDPOINT
        assert json.loads(request.content) == {"input": "x"}
        assert request.headers["content-type"] == "application/json"
        assert request.headers[FUNCTION_HEADER] == "upper"
        assert request.headers["authorization"] == "Bearer t"
        assert request.headers["x-spine-tenant"] == "acme"
        assert "traceparent" in request.headers

    def test_missing_params_sends_null(self, ctx):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(request.content)
            return httpx.Response(200, json={})

        RemoteProviderFn("p", "f", RemoteProviderSpec(endpoint=ENDPOINT), client=_mock_client(handler)).call(
            ctx, {"$do": "f"}
        )
        assert json.loads(bodies[0]) is None

    def test_unsupported_protocol_before_io(self, ctx):
        calls = []
        client = _mock_client(lambda r: calls.append(r) or httpx.Response(200, json={}))
        fn = RemoteProviderFn("p", "f", RemoteProviderSpec(protocol="grpc", endpoint=ENDPOINT), client=client)
        with pytest.raises(UnsupportedProtocolError, match="protocol grpc not supported yet"):
            fn.call(ctx, {"$params": {}})
        assert calls == []

    def test_https_accepted(self, ctx):
        client = _mock_client(lambda r: httpx.Response(200, json={"v": 1}))
        spec = RemoteProviderSpec(protocol="HTTPS", endpoint="https://provider.test/ext")
        assert RemoteProviderFn("p", "f", spec, client=client).call(ctx, {"$params": {}}) == {"$returns": {"v": 1}}

    def test_server_error(self, ctx, provider_client):
        fn = RemoteProviderFn("test", "upper", RemoteProviderSpec(endpoint=ENDPOINT), client=provider_client)
        with pytest.raises(RemoteCallError) as exc:
            fn.call(ctx, {"$params": {"input": "boom"}})
        assert exc.value.status_code == 500
        assert "boom requested" in str(exc.value)

    def test_unknown_function(self, ctx, provider_client):
        fn = RemoteProviderFn("test", "lower", RemoteProviderSpec(endpoint=ENDPOINT), client=provider_client)
        with pytest.raises(RemoteCallError) as exc:
            fn.call(ctx, {"$params": {"input": "x"}})
        assert exc.value.status_code == 404

    def test_invalid_json(self, ctx):
        client = _mock_client(lambda r: httpx.Response(200, content=b"<html>"))
        fn = RemoteProviderFn("p", "f", RemoteProviderSpec(endpoint=ENDPOINT), client=client)
        with pytest.raises(RemoteCallError, match="invalid JSON"):
            fn.call(ctx, {"$params": {}})

    def test_non_object_response(self, ctx):
        client = _mock_client(lambda r: httpx.Response(200, json=[1, 2]))
        fn = RemoteProviderFn("p", "f", RemoteProviderSpec(endpoint=ENDPOINT), client=client)
        with pytest.raises(RemoteCallError, match="expected an object"):
            fn.call(ctx, {"$params": {}})

    def test_transport_error(self, ctx):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        fn = RemoteProviderFn("p", "f", RemoteProviderSpec(endpoint=ENDPOINT), client=_mock_client(handler))
        with pytest.raises(RemoteCallError) as exc:
            fn.call(ctx, {"$params": {}})
        assert isinstance(exc.value.__cause__, httpx.ConnectError)

    def test_timeout_from_deadline(self):
        timeouts = []

        def handler(request: httpx.Request) -> httpx.Response:
            timeouts.append(request.extensions["timeout"]["read"])
            return httpx.Response(200, json={})

        fn = RemoteProviderFn("p", "f", RemoteProviderSpec(endpoint=ENDPOINT), client=_mock_client(handler))
        fn.call(CallContext.background().with_deadline(time.monotonic() + 5), {"$params": {}})
        fn.call(CallContext.background(), {"$params": {}})
        assert 0 < timeouts[0] <= 5
        assert timeouts[1] == 30.0
