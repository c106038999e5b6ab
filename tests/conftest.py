import pytest

from gwsheets.config import SheetsClientConfig
from gwsheets.resources import AuthError
from gwsheets.storage import FileStorage
from gwsheets.transport import HttpResponse
from gwsheets.sheets.client import SheetsClient

class FakeAuth:
    name = "google auth"

    def __init__(self, token="tok-123", fail=False):
        self.token = token
        self.fail = fail
        self.calls = []
        self.config = {}

    def auth(self, scope=None):
        self.calls.append(scope)
        if self.fail:
            raise AuthError("no credentials")
        return self.token

class FakeTransport:
    """Records every call, answers from a queue (last answer repeats)."""

    def __init__(self, responses=None, error=None):
        self.responses = list(responses or [HttpResponse(status=200, json={})])
        self.error = error
        self.calls = []

    def _next(self):
        if self.error is not None:
            raise self.error
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    def json(self, url, method="GET", headers=None, bodyObj=None, timeout=None, retry=True):
        self.calls.append({"kind": "json", "url": url, "method": method, "headers": headers,
                           "bodyObj": bodyObj, "timeout": timeout, "retry": retry})
        return self._next()

    def fetch(self, url, method="GET", headers=None, timeout=None, retry=True):
        self.calls.append({"kind": "fetch", "url": url, "method": method, "headers": headers})
        return self._next()

@pytest.fixture
def config(tmp_path):
    return SheetsClientConfig(client_secrets=tmp_path / "secrets.json",
                              cred_cache=tmp_path / "tokens.json",
                              service_account=None,
                              storage_root=tmp_path)

@pytest.fixture
def auth():
    return FakeAuth()

@pytest.fixture
def transport():
    return FakeTransport()

@pytest.fixture
def client(config, auth, transport, tmp_path):
    return SheetsClient(config, auth=auth, transport=transport,
                        storage=FileStorage("gsheet", tmp_path))
