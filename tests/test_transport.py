"""Tests for the resilient transport: headers, compression, session refresh."""

import gzip
import json

import httpx
import pytest

from conftest import INSTANCE_URL, api_requests
from sforce_batch_manager.core.batching.transport import CSV_TYPE
from sforce_batch_manager.core.errors import (
    AuthenticationError,
    CodecError,
    SalesforceAPIError,
    TransportError,
    ValidationError,
)
from sforce_batch_manager.core.utils.auth import Credentials
from sforce_batch_manager.core.utils.config import Configuration

TOKEN_PATH = "/services/oauth2/token"
EXPIRED = [{"message": "Session expired or invalid", "errorCode": "INVALID_SESSION_ID"}]


def token_response(token="token-2"):
    return httpx.Response(200, json={
        "access_token": token,
        "instance_url": INSTANCE_URL,
        "issued_at": "1700000000000",
        "signature": "sig",
        "id": f"{INSTANCE_URL}/id/00D/005",
    })


class TestExecute:
    def test_signs_request_and_builds_versioned_url(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(200, json={}))

        transport.execute("GET", "/limits")

        request = transport.requests[0]
        assert str(request.url) == f"{INSTANCE_URL}/services/data/v62.0/limits"
        assert request.headers["Authorization"] == "Bearer token-1"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["Accept"] == "application/json"

    def test_content_type_applies_to_accept(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(201))

        transport.execute("PUT", "/jobs/ingest/750/batches", body="Name\nAcme\n", content_type=CSV_TYPE)

        request = transport.requests[0]
        assert request.headers["Content-Type"] == "text/csv"
        assert request.headers["Accept"] == "text/csv"
        assert request.content == b"Name\nAcme\n"

    def test_compression_gzips_body_and_sets_headers(self, make_transport):
        transport = make_transport(
            lambda request: httpx.Response(200, json={}),
            config=Configuration(compression_headers=True),
        )

        transport.execute("POST", "/composite", body='{"a": 1}')

        request = transport.requests[0]
        assert request.headers["Content-Encoding"] == "gzip"
        assert request.headers["Accept-Encoding"] == "gzip"
        assert gzip.decompress(request.content) == b'{"a": 1}'

    def test_gzip_response_decoded_without_compression_enabled(self, make_transport):
        payload = gzip.compress(json.dumps({"ok": True}).encode())
        transport = make_transport(
            lambda request: httpx.Response(200, content=payload, headers={"Content-Encoding": "gzip"})
        )

        response = transport.execute("GET", "/limits")

        assert response.json() == {"ok": True}

    def test_missing_token_is_a_validation_error(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(200), access_token="")

        with pytest.raises(ValidationError):
            transport.execute("GET", "/limits")
        assert transport.requests == []

    def test_connectivity_failure_raises_transport_error(self, make_transport):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = make_transport(handler)

        with pytest.raises(TransportError, match="connection refused"):
            transport.execute("GET", "/limits")

    def test_remote_error_carries_status_codes_and_payload(self, make_transport):
        errors = [{"message": "unexpected token", "errorCode": "MALFORMED_QUERY"}]
        transport = make_transport(lambda request: httpx.Response(400, json=errors))

        with pytest.raises(SalesforceAPIError) as exc_info:
            transport.execute("GET", "/query/")

        assert exc_info.value.status_code == 400
        assert exc_info.value.error_codes == ["MALFORMED_QUERY"]
        assert "unexpected token" in exc_info.value.payload
        assert len(transport.requests) == 1

    def test_non_json_error_body_is_kept_raw(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(502, text="Bad Gateway"))

        with pytest.raises(SalesforceAPIError) as exc_info:
            transport.execute("GET", "/limits")

        assert exc_info.value.errors == []
        assert exc_info.value.payload == "Bad Gateway"


class TestSessionRefresh:
    def test_expired_session_refreshes_and_retries_once(self, make_transport):
        def handler(request):
            if request.url.path == "/services/oauth2/token":
                return token_response("token-2")
            if request.headers["Authorization"] == "Bearer token-1":
                return httpx.Response(401, json=EXPIRED)
            return httpx.Response(200, json={"done": True})

        transport = make_transport(handler)

        response = transport.execute("GET", "/limits")

        assert response.json() == {"done": True}
        calls = api_requests(transport)
        assert [r.headers["Authorization"] for r in calls] == ["Bearer token-1", "Bearer token-2"]
        assert len([r for r in transport.requests if r.url.path == TOKEN_PATH]) == 1
        assert transport.auth.access_token == "token-2"

    def test_retry_replays_identical_request(self, make_transport):
        def handler(request):
            if request.url.path == TOKEN_PATH:
                return token_response()
            if request.headers["Authorization"] == "Bearer token-1":
                return httpx.Response(401, json=EXPIRED)
            return httpx.Response(200, json=[])

        transport = make_transport(handler)

        transport.execute("PATCH", "/composite/sobjects/", body='{"records": []}', params={"x": "1"})

        first, second = api_requests(transport)
        assert (first.method, first.url.path, first.url.params) == (second.method, second.url.path, second.url.params)
        assert first.content == second.content

    def test_second_expired_session_is_not_retried(self, make_transport):
        def handler(request):
            if request.url.path == TOKEN_PATH:
                return token_response()
            return httpx.Response(401, json=EXPIRED)

        transport = make_transport(handler)

        with pytest.raises(SalesforceAPIError) as exc_info:
            transport.execute("GET", "/limits")

        assert exc_info.value.error_codes == ["INVALID_SESSION_ID"]
        assert len(api_requests(transport)) == 2
        assert len([r for r in transport.requests if r.url.path == TOKEN_PATH]) == 1

    def test_refresh_failure_surfaces_refresh_error(self, make_transport):
        def handler(request):
            if request.url.path == TOKEN_PATH:
                return httpx.Response(400, json={"error": "invalid_client"})
            return httpx.Response(401, json=EXPIRED)

        transport = make_transport(handler)

        with pytest.raises(AuthenticationError, match="failed authentication"):
            transport.execute("GET", "/limits")
        assert len(api_requests(transport)) == 1

    def test_pre_issued_token_cannot_be_refreshed(self, make_transport):
        transport = make_transport(
            lambda request: httpx.Response(401, json=EXPIRED),
            credentials=Credentials(domain=INSTANCE_URL, access_token="token-1"),
        )

        with pytest.raises(AuthenticationError, match="unable to refresh session"):
            transport.execute("GET", "/limits")

    def test_other_remote_errors_do_not_refresh(self, make_transport):
        transport = make_transport(
            lambda request: httpx.Response(403, json=[{"errorCode": "REQUEST_LIMIT_EXCEEDED", "message": "limit"}])
        )

        with pytest.raises(SalesforceAPIError):
            transport.execute("GET", "/limits")
        assert all(r.url.path != TOKEN_PATH for r in transport.requests)


class TestRequestJson:
    def test_sends_json_and_decodes_response(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(200, json={"id": "750"}))

        data = transport.request_json("POST", "/jobs/ingest", {"object": "Account"})

        assert data == {"id": "750"}
        assert json.loads(transport.requests[0].content) == {"object": "Account"}

    def test_empty_response_gives_none(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(204))

        assert transport.request_json("PATCH", "/jobs/ingest/750", {"state": "Aborted"}) is None

    def test_non_json_success_body_is_a_codec_error(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(200, text="<html>Down for maintenance</html>"))

        with pytest.raises(CodecError, match="non-JSON response from GET /services/data/v62.0/limits"):
            transport.request_json("GET", "/limits")


def test_absolute_urls_are_used_as_is(make_transport):
    transport = make_transport(lambda request: httpx.Response(200, json={}))

    transport.execute("GET", "https://other.example.com/services/data/v62.0/query/")

    assert transport.requests[0].url.host == "other.example.com"
