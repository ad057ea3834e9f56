import pytest
import requests

from mobius_query.api import session as session_mod
from mobius_query.api.config_loaders import MobiusSettings
from mobius_query.errors import MobiusAuthError, MobiusConnectionError


class DummyResp:
    status_code = 200

    def __init__(self, payload=None):
        self._payload = payload

    def json(self):
        return self._payload

    def raise_for_status(self):
        pass


class DummySession:
    instances = []
    login_error = None

    def __init__(self):
        self.posts = []
        self.gets = []
        DummySession.instances.append(self)

    def post(self, url, data=None, timeout=None):
        self.posts.append({"url": url, "data": data, "timeout": timeout})
        if self.login_error is not None:
            raise self.login_error
        return DummyResp()

    def get(self, url, params=None, timeout=None):
        self.gets.append({"url": url, "params": params, "timeout": timeout})
        return DummyResp({"patients": []})


@pytest.fixture
def dummy_session(monkeypatch):
    DummySession.instances = []
    DummySession.login_error = None
    monkeypatch.setattr(session_mod.requests, "Session", DummySession)
    return DummySession


def test_missing_credentials(dummy_session):
    with pytest.raises(MobiusAuthError):
        session_mod.create_session("m3d", "physicist", "")
    assert dummy_session.instances == []


def test_login_and_verify(dummy_session):
    client = session_mod.create_session("m3d.local", "physicist", "secret", timeout=9)

    sess = dummy_session.instances[0]
    assert client.session is sess
    assert client.base_url == "http://m3d.local"
    assert sess.posts == [
        {
            "url": "http://m3d.local/auth/login",
            "data": {"username": "physicist", "password": "secret"},
            "timeout": 9,
        }
    ]
    assert sess.gets[0]["url"] == "http://m3d.local/_plan/list"
    assert sess.gets[0]["params"]["limit"] == 1


def test_login_failure(dummy_session):
    dummy_session.login_error = requests.exceptions.ConnectionError("refused")
    with pytest.raises(MobiusConnectionError):
        session_mod.create_session("m3d", "physicist", "secret")


def test_connect_uses_settings(dummy_session):
    settings = MobiusSettings(
        server="https://m3d", username="u", password="p", timeout=4, roster_limit=10
    )
    client = session_mod.connect(settings)
    assert client.base_url == "https://m3d"
    assert client.timeout == 4
    assert client.roster_limit == 10
