"""Shared fixtures: a Transport wired to an in-memory Salesforce stand-in."""

import json

import httpx
import pytest

from sforce_batch_manager.core.batching.transport import Transport
from sforce_batch_manager.core.utils.auth import Authenticator, Credentials
from sforce_batch_manager.core.utils.config import Configuration
from sforce_batch_manager.core.utils.environment import ENV_VARS

INSTANCE_URL = "https://example.my.salesforce.com"
API_PREFIX = "/services/data/v62.0"


def api_path(request: httpx.Request) -> str:
    """Request path relative to /services/data/<version>."""
    path = request.url.path
    return path[len(API_PREFIX):] if path.startswith(API_PREFIX) else path


def json_body(request: httpx.Request):
    return json.loads(request.content) if request.content else None


def client_credentials() -> Credentials:
    return Credentials(domain=INSTANCE_URL, consumer_key="key", consumer_secret="secret")


@pytest.fixture
def make_transport():
    """
    Build a Transport whose HTTP traffic is answered by `handler`.

    Every request (API and token) is appended to the returned transport's
    `requests` list.
    """
    def _make(handler, credentials=None, config=None, access_token="token-1"):
        requests = []

        def recording_handler(request):
            requests.append(request)
            return handler(request)

        http_client = httpx.Client(transport=httpx.MockTransport(recording_handler))
        auth = Authenticator(credentials or client_credentials(), http_client=http_client)
        auth.access_token = access_token
        transport = Transport(auth, config or Configuration(), http_client=http_client)
        transport.requests = requests
        return transport

    return _make


def api_requests(transport, method=None, path=None):
    """Requests sent to the data API, optionally filtered by method and path."""
    return [
        r for r in transport.requests
        if r.url.path.startswith(API_PREFIX)
        and (method is None or r.method == method)
        and (path is None or api_path(r) == path)
    ]


@pytest.fixture
def clean_env(monkeypatch):
    """Unset every SF_* credential variable for the duration of a test."""
    for var in ENV_VARS.values():
        # set first so variables loaded from .env files are undone too
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    return monkeypatch
