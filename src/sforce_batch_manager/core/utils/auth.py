# -*- coding: utf-8 -*-

"""
OAuth credential acquisition and refresh.

The Authenticator is the one piece of mutable state shared by every request
in flight: it is read on each call and written only by refresh(). Refreshes
are not serialised, so two requests that both hit an expired session will
each run their own refresh.
"""

import logging
import time
from dataclasses import dataclass, fields
from enum import Enum

import httpx
import jwt

from ..errors import AuthenticationError, ValidationError


JWT_EXPIRATION_SECONDS = 5 * 60
TOKEN_ENDPOINT = "/services/oauth2/token"


class AuthFlow(str, Enum):
    USERNAME_PASSWORD = "password"
    CLIENT_CREDENTIALS = "client_credentials"
    ACCESS_TOKEN = "access_token"
    JWT = "urn:ietf:params:oauth:grant-type:jwt-bearer"

    def __str__(self):
        return self.name.replace("_", " ").title()


@dataclass(frozen=True)
class Credentials:
    domain: str = ""
    username: str = ""
    password: str = ""
    security_token: str = ""
    consumer_key: str = ""
    consumer_secret: str = ""
    consumer_rsa_pem: str = ""
    access_token: str = ""

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))

    def resolve_flow(self) -> AuthFlow | None:
        """Pick the grant flow implied by the populated fields."""
        if (self.domain and self.consumer_key and self.consumer_secret and self.username
                and self.password and self.security_token):
            return AuthFlow.USERNAME_PASSWORD
        if self.domain and self.consumer_key and self.consumer_secret:
            return AuthFlow.CLIENT_CREDENTIALS
        if self.access_token:
            return AuthFlow.ACCESS_TOKEN
        if self.domain and self.username and self.consumer_key and self.consumer_rsa_pem:
            return AuthFlow.JWT
        return None


def _jwt_audience(domain: str) -> str:
    if "test.salesforce" in domain or "sandbox" in domain:
        return "https://test.salesforce.com"
    return "https://login.salesforce.com"


class Authenticator:
    """Holds the bearer credential and knows how to obtain it again."""

    def __init__(self, credentials: Credentials, http_client: httpx.Client | None = None):
        self.credentials = credentials
        self.flow = credentials.resolve_flow()
        self.access_token = ""
        self.instance_url = credentials.domain
        self.issued_at = ""
        self.signature = ""
        self.identity_url = ""
        self._http_client = http_client or httpx.Client()

    @classmethod
    def from_credentials(cls, credentials: Credentials, http_client: httpx.Client | None = None):
        """
        Create an authenticator and acquire the first credential.

        Raises:
            ValidationError: If no usable combination of fields was supplied.
            AuthenticationError: If Salesforce rejects the credentials.
        """
        if credentials.is_empty():
            raise ValidationError("creds is empty")
        auth = cls(credentials, http_client=http_client)
        if auth.flow is None:
            raise ValidationError(
                "credentials do not match any supported flow "
                "(username-password, client credentials, access token or JWT)"
            )
        if auth.flow == AuthFlow.ACCESS_TOKEN:
            auth.access_token = credentials.access_token
        else:
            auth._apply(auth._request_token(credentials.domain))
        if not auth.access_token:
            raise AuthenticationError("unknown authentication error")
        logging.info(f"Authenticated against {auth.instance_url} using {auth.flow} flow")
        return auth

    def current_credential(self):
        """Return the (access_token, instance_url) pair used to sign requests."""
        return self.access_token, self.instance_url

    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def refresh(self):
        """
        Replay the original grant flow and update the held token in place.

        Raises:
            AuthenticationError: If the flow cannot be replayed or fails.
        """
        if self.flow in (None, AuthFlow.ACCESS_TOKEN):
            raise AuthenticationError("invalid session, unable to refresh session")
        logging.info(f"Refreshing Salesforce session ({self.flow} flow)")
        data = self._request_token(self.instance_url)
        if not data.get("access_token"):
            raise AuthenticationError("missing refresh auth")
        self.access_token = data["access_token"]
        self.issued_at = data.get("issued_at", "")
        self.signature = data.get("signature", "")
        self.identity_url = data.get("id", "")

    def _apply(self, data: dict):
        self.access_token = data.get("access_token", "")
        self.instance_url = data.get("instance_url") or self.instance_url
        self.issued_at = data.get("issued_at", "")
        self.signature = data.get("signature", "")
        self.identity_url = data.get("id", "")

    def _grant_payload(self, domain: str) -> dict:
        creds = self.credentials
        if self.flow == AuthFlow.USERNAME_PASSWORD:
            return {
                "grant_type": self.flow.value,
                "client_id": creds.consumer_key,
                "client_secret": creds.consumer_secret,
                "username": creds.username,
                "password": creds.password + creds.security_token,
            }
        if self.flow == AuthFlow.CLIENT_CREDENTIALS:
            return {
                "grant_type": self.flow.value,
                "client_id": creds.consumer_key,
                "client_secret": creds.consumer_secret,
            }
        if self.flow == AuthFlow.JWT:
            claims = {
                "exp": int(time.time()) + JWT_EXPIRATION_SECONDS,
                "aud": _jwt_audience(domain),
                "iss": creds.consumer_key,
                "sub": creds.username,
            }
            try:
                assertion = jwt.encode(claims, creds.consumer_rsa_pem, algorithm="RS256")
            except (ValueError, TypeError, jwt.PyJWTError) as e:
                raise AuthenticationError(f"unable to sign JWT assertion: {e}") from e
            return {"grant_type": self.flow.value, "assertion": assertion}
        raise AuthenticationError(f"unsupported grant flow: {self.flow}")

    def _request_token(self, domain: str) -> dict:
        payload = self._grant_payload(domain)
        try:
            resp = self._http_client.post(domain.rstrip("/") + TOKEN_ENDPOINT, data=payload)
        except httpx.TransportError as e:
            raise AuthenticationError(f"token request failed: {e}") from e
        if resp.status_code != 200:
            raise AuthenticationError(f"{resp.status_code} {resp.reason_phrase}: failed authentication")
        try:
            return resp.json()
        except ValueError as e:
            raise AuthenticationError(f"invalid token response: {e}") from e
