"""Pytest shared fixtures."""
import json
import pathlib
import sys
from types import SimpleNamespace

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import msal
import pytest
import requests

from entralab.config import settings
from entralab.config.settings import LabConfig


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, tmp_path):
    """
    Prevent unit tests from reaching Entra ID or Microsoft Graph.

    Any real HTTP call or msal application construction fails loudly; tests
    inject fake sessions instead. /run/secrets is redirected to an empty
    temporary directory so host secrets never leak into tests.
    """
    def _no_http(self, method, url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")

    class _NoMsal:
        def __init__(self, *args, **kwargs):
            raise RuntimeError("Unexpected msal application in unit test")

    monkeypatch.setattr(requests.Session, "request", _no_http)
    monkeypatch.setattr(msal, "ConfidentialClientApplication", _NoMsal)
    monkeypatch.setattr(settings, "SECRETS_DIR", tmp_path / "secrets")
    for var in ("AZURE_TENANT_ID", "AZURE_CLIENT_ID", "AZURE_CLIENT_SECRET"):
        monkeypatch.delenv(var, raising=False)


# ─────────────────────────────────────────────────────────────────────────────
# Fakes
# ─────────────────────────────────────────────────────────────────────────────
class FakeGraphSession:
    """Stand-in for GraphSession.send.

    Either replays ``responses`` in order (exceptions are raised) or
    delegates to ``handler(method, uri, body)``. Every call is recorded.
    """

    def __init__(self, responses=None, handler=None):
        self.responses = list(responses or [])
        self.handler = handler
        self.calls = []

    def send(self, method, uri, headers=None, content_type="application/json", body=None):
        self.calls.append(SimpleNamespace(
            method=method, uri=uri, headers=headers, content_type=content_type, body=body,
        ))
        if self.handler is not None:
            response = self.handler(method, uri, body)
        elif self.responses:
            response = self.responses.pop(0)
        else:
            raise AssertionError(f"Unexpected Graph call: {method} {uri}")
        if isinstance(response, BaseException):
            raise response
        return response


class FakeHttpResponse:
    def __init__(self, status_code=200, payload=None, text=None, url="https://graph.microsoft.com/beta/users"):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text
        self.content = text.encode("utf-8")
        self.url = url

    def json(self):
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeMsalApp:
    def __init__(self, result=None):
        self.result = result if result is not None else {"access_token": "test-token", "expires_in": 3599}
        self.scopes = []

    def acquire_token_for_client(self, scopes):
        self.scopes.append(scopes)
        return self.result


@pytest.fixture()
def make_session():
    """Factory for FakeGraphSession."""
    return FakeGraphSession


@pytest.fixture()
def lab_config():
    return LabConfig(
        project_name="Lab",
        tenant_id="00000000-0000-0000-0000-000000000001",
        client_id="00000000-0000-0000-0000-000000000002",
        client_secret="client-secret",
    )


@pytest.fixture()
def fake_msal_app():
    return FakeMsalApp()


@pytest.fixture()
def http_response():
    """Factory for FakeHttpResponse."""
    return FakeHttpResponse
