"""Authenticated HTTP session for Microsoft Graph.

Token acquisition and caching are handled by msal; transport, connection
reuse and transport-level retries by requests/urllib3.
"""
from __future__ import annotations
import json
import logging
from typing import Any, Dict, Mapping, Optional

import jwt
import msal
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from entralab.config.settings import LabConfig
from .exceptions import GraphAPIError, GraphAuthenticationError

logger = logging.getLogger(__name__)

RETRY_STATUS_CODES = (429, 500, 502, 503, 504)


def build_http_session(max_retries: int = 3, backoff_factor: float = 1.0) -> requests.Session:
    """Create a requests session that retries throttled/unavailable responses.

    Only idempotent verbs are retried (urllib3 default). ``Retry-After`` is
    honored. The final response is returned rather than raised so the caller
    can translate it into a GraphAPIError.
    """
    retry = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=RETRY_STATUS_CODES,
        respect_retry_after_header=True,
        raise_on_status=False,
    )
    session = requests.Session()
    session.mount("https://", HTTPAdapter(max_retries=retry))
    return session


class GraphSession:
    """HTTP session for Microsoft Graph with client-credentials authentication.

    Usage:
        session = GraphSession(load_settings())
        users = session.send("GET", "https://graph.microsoft.com/v1.0/users")
    """

    def __init__(
        self,
        config: LabConfig,
        app: Optional[msal.ConfidentialClientApplication] = None,
        http: Optional[requests.Session] = None,
    ):
        """Initialize Graph session.

        Args:
            config: Lab configuration holding tenant and app registration
            app: Pre-built msal application (created lazily otherwise)
            http: Pre-built requests session (created with retries otherwise)
        """
        self.config = config
        self._app = app
        self.http = http if http is not None else build_http_session()

    @property
    def app(self) -> msal.ConfidentialClientApplication:
        if self._app is None:
            if not self.config.has_credentials:
                raise GraphAuthenticationError(
                    "AZURE_TENANT_ID, AZURE_CLIENT_ID and AZURE_CLIENT_SECRET are required"
                )
            self._app = msal.ConfidentialClientApplication(
                self.config.client_id,
                authority=self.config.authority,
                client_credential=self.config.client_secret,
            )
        return self._app

    @property
    def scopes(self) -> list[str]:
        return [f"https://{self.config.graph_host}/.default"]

    def acquire_token(self) -> str:
        """Return an app-only access token (served from msal's cache when valid).

        Raises:
            GraphAuthenticationError: If msal does not return a token
        """
        result = self.app.acquire_token_for_client(scopes=self.scopes)
        if not result or "access_token" not in result:
            result = result or {}
            raise GraphAuthenticationError(
                f"Could not acquire token: {result.get('error')}: {result.get('error_description')}"
            )
        logger.debug("Token acquired for %s (source=%s)", self.scopes[0], result.get("token_source", "unknown"))
        return result["access_token"]

    def context(self) -> Dict[str, Any]:
        """Describe the identity behind the current token.

        Claims are decoded without signature verification; Graph validates
        the token, this is for display and logging only.
        """
        claims = jwt.decode(self.acquire_token(), options={"verify_signature": False})
        return {
            "tenant_id": claims.get("tid"),
            "app_id": claims.get("appid") or claims.get("azp"),
            "app_name": claims.get("app_displayname"),
            "roles": sorted(claims.get("roles", [])),
            "expires": claims.get("exp"),
        }

    def send(
        self,
        method: str,
        uri: str,
        headers: Optional[Mapping[str, str]] = None,
        content_type: str = "application/json",
        body: Any = None,
    ) -> Any:
        """Execute one authenticated request against an absolute Graph URI.

        Args:
            method: HTTP verb
            uri: Absolute request URI
            headers: Extra request headers (ConsistencyLevel, Prefer, ...)
            content_type: Content-Type of the body
            body: Payload; dicts/lists are serialized as JSON, str/bytes sent as-is

        Returns:
            Parsed JSON, raw text for non-JSON bodies, or None for empty responses

        Raises:
            GraphAuthenticationError: If no token can be obtained
            GraphAPIError: On HTTP error
        """
        request_headers = {
            "Authorization": f"Bearer {self.acquire_token()}",
            "Content-Type": content_type,
        }
        request_headers.update(headers or {})

        data = None
        if body is not None:
            data = body if isinstance(body, (str, bytes)) else json.dumps(body)

        resp = self.http.request(
            method,
            uri,
            headers=request_headers,
            data=data,
            timeout=self.config.timeout,
        )
        self._handle_error(resp)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text

    def _handle_error(self, resp: requests.Response) -> None:
        """Raise GraphAPIError for status codes >= 400."""
        if resp.status_code >= 400:
            raise GraphAPIError(resp.status_code, resp.text, resp.url)
