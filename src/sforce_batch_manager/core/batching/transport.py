# -*- coding: utf-8 -*-
"""
Single-request executor for the Salesforce REST API.

Every network call of the package goes through Transport.execute(), which
signs the request with the current bearer token, optionally gzips the body,
and turns non-2xx responses into SalesforceAPIError. A response reporting
INVALID_SESSION_ID triggers one credential refresh followed by one retry of
the identical request; the retried request is never retried again.
"""

import gzip
import json
import logging

import httpx

from ..errors import CodecError, SalesforceAPIError, TransportError, ValidationError
from ..utils.auth import Authenticator
from ..utils.config import Configuration

JSON_TYPE = "application/json"
CSV_TYPE = "text/csv"
USER_AGENT = "sforce-batch-manager"
INVALID_SESSION_ID = "INVALID_SESSION_ID"


def parse_error_entries(response: httpx.Response) -> list:
    """Decode the structured error list Salesforce sends with failed requests."""
    try:
        data = response.json()
    except ValueError:
        return []
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [e for e in data if isinstance(e, dict)]
    return []


def decode_json(response: httpx.Response):
    """
    Decode the JSON body of a successful response.

    Raises:
        CodecError: If the body is not valid JSON.
    """
    try:
        return response.json()
    except ValueError as e:
        raise CodecError(
            f"unexpected non-JSON response from {response.request.method} {response.request.url.path}: {e}"
        ) from e


class Transport:
    """Executes signed HTTP requests against one Salesforce instance."""

    def __init__(
        self,
        auth: Authenticator,
        config: Configuration | None = None,
        http_client: httpx.Client | None = None
    ):
        self.auth = auth
        self.config = config or Configuration()
        self.http_client = http_client or httpx.Client(timeout=self.config.http_timeout)

    def build_url(self, uri: str) -> str:
        """Resolve an API-relative uri (e.g. '/jobs/ingest') to a full URL."""
        if uri.startswith(("http://", "https://")):
            return uri
        _, instance_url = self.auth.current_credential()
        return f"{instance_url.rstrip('/')}/services/data/{self.config.api_version}{uri}"

    def execute(
        self,
        method: str,
        uri: str,
        body: str | bytes | None = None,
        content_type: str = JSON_TYPE,
        headers: dict | None = None,
        compress: bool | None = None,
        params: dict | None = None,
        stream: bool = False,
        retried: bool = False
    ) -> httpx.Response:
        """
        Send one request and return the successful response.

        Args:
            method: HTTP method.
            uri: Path relative to /services/data/<version>, or an absolute URL.
            body: Request body. Empty bodies are not sent.
            content_type: Used for both Content-Type and Accept.
            headers: Extra headers, applied last.
            compress: Gzip the body and ask for a gzipped response.
                Defaults to config.compression_headers.
            params: Query string parameters.
            stream: Leave the response body unread (caller must close it).
            retried: Set on the single retry after a session refresh.

        Returns:
            httpx.Response: A 2xx response. Gzipped bodies are decoded
            transparently whether or not compression was requested.

        Raises:
            ValidationError: If the authenticator holds no credential.
            TransportError: On connectivity failures.
            AuthenticationError: If a session refresh fails.
            SalesforceAPIError: On any other non-2xx response.
        """
        access_token, _ = self.auth.current_credential()
        if not access_token:
            raise ValidationError("not authenticated: please create the client with valid credentials")
        if compress is None:
            compress = self.config.compression_headers

        request_headers = {
            "User-Agent": USER_AGENT,
            "Content-Type": content_type,
            "Accept": content_type,
            "Authorization": f"Bearer {access_token}",
        }
        content = None
        if body:
            content = body.encode("utf-8") if isinstance(body, str) else body
            if compress:
                content = gzip.compress(content)
        if compress:
            request_headers["Content-Encoding"] = "gzip"
            request_headers["Accept-Encoding"] = "gzip"
        if headers:
            request_headers.update(headers)

        request = self.http_client.build_request(
            method, self.build_url(uri), content=content, headers=request_headers, params=params
        )
        logging.debug(f"{method} {request.url}{' (retry)' if retried else ''}")
        try:
            response = self.http_client.send(request, stream=stream)
        except httpx.TransportError as e:
            raise TransportError(f"{method} {uri} failed: {e}") from e

        if response.is_success:
            return response

        if stream:
            response.read()
        return self._handle_error(
            response, method, uri, body, content_type, headers, compress, params, stream, retried
        )

    def _handle_error(self, response, method, uri, body, content_type, headers, compress, params, stream, retried):
        entries = parse_error_entries(response)
        expired = any(e.get("errorCode") == INVALID_SESSION_ID for e in entries)
        if expired and not retried:
            logging.warning(f"Session expired during {method} {uri}, refreshing and retrying once")
            self.auth.refresh()
            return self.execute(
                method, uri, body=body, content_type=content_type, headers=headers,
                compress=compress, params=params, stream=stream, retried=True
            )
        raise SalesforceAPIError(response.status_code, entries, response.text)

    def request_json(self, method: str, uri: str, payload=None, **kwargs):
        """Send a JSON payload (if any) and decode the JSON response (None if empty)."""
        body = json.dumps(payload) if payload is not None else None
        response = self.execute(method, uri, body=body, content_type=JSON_TYPE, **kwargs)
        if not response.content:
            return None
        return decode_json(response)

    def close(self):
        self.http_client.close()
