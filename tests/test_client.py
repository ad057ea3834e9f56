import pytest
import requests

from mobius_query.api import client as client_mod
from mobius_query.api.client import MobiusClient, normalize_base_url
from mobius_query.errors import MobiusConnectionError


class DummyResp:
    def __init__(self, payload=None, text="", status_code=200):
        self._payload = payload
        self.text = text
        self.status_code = status_code

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class DummySession:
    def __init__(self, resp=None, exc=None):
        self.resp = resp or DummyResp({"patients": []})
        self.exc = exc
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.resp


def test_normalize_base_url():
    assert normalize_base_url("10.0.0.5") == "http://10.0.0.5"
    assert normalize_base_url(" https://m3d.local/ ") == "https://m3d.local"


def test_default_timeout():
    session = DummySession()
    MobiusClient("m3d", session).get("_plan/list")
    assert session.calls[0]["timeout"] == client_mod.DEFAULT_TIMEOUT


def test_env_timeout(monkeypatch):
    monkeypatch.setenv("MOBIUS_TIMEOUT", "7")
    session = DummySession()
    MobiusClient("m3d", session).get("_plan/list")
    assert session.calls[0]["timeout"] == 7.0


def test_explicit_timeout_wins(monkeypatch):
    monkeypatch.setenv("MOBIUS_TIMEOUT", "7")
    session = DummySession()
    client = MobiusClient("m3d", session, timeout=3)
    client.get("_plan/list")
    client.get("_plan/list", timeout=1)
    assert [c["timeout"] for c in session.calls] == [3, 1]


def test_fetch_roster_params():
    session = DummySession(DummyResp({"patients": [{"patientId": "1"}]}))
    client = MobiusClient("m3d", session, roster_limit=50)
    assert client.fetch_roster() == [{"patientId": "1"}]
    client.fetch_roster(limit=1)

    assert session.calls[0]["url"] == "http://m3d/_plan/list"
    assert session.calls[0]["params"] == {"sort": "date", "descending": 1, "limit": 50}
    assert session.calls[1]["params"]["limit"] == 1


@pytest.mark.parametrize("payload", [None, {"error": "denied"}, {"patients": "x"}])
def test_fetch_roster_bad_payload(payload):
    client = MobiusClient("m3d", DummySession(DummyResp(payload)))
    with pytest.raises(MobiusConnectionError):
        client.fetch_roster()


def test_detail_and_dvh_return_raw_text():
    session = DummySession(DummyResp(text='{"data": {}}'))
    client = MobiusClient("m3d", session)
    assert client.fetch_check_detail("abc") == '{"data": {}}'
    assert client.fetch_dvh("abc") == '{"data": {}}'
    assert session.calls[0]["url"] == "http://m3d/check/details/abc"
    assert session.calls[0]["params"] == {"format": "json"}
    assert session.calls[1]["url"] == "http://m3d/check/attachment/abc/dvhChart_data.json"


def test_transport_error_is_wrapped():
    session = DummySession(exc=requests.exceptions.ConnectionError("refused"))
    with pytest.raises(MobiusConnectionError):
        MobiusClient("m3d", session).get("_plan/list")


def test_http_error_is_wrapped():
    session = DummySession(DummyResp(status_code=502))
    with pytest.raises(MobiusConnectionError):
        MobiusClient("m3d", session).fetch_check_detail("abc")


def test_concurrent_use_is_refused():
    client = MobiusClient("m3d", DummySession())
    client._busy.acquire()
    try:
        with pytest.raises(RuntimeError):
            client.get("_plan/list")
    finally:
        client._busy.release()
    client.get("_plan/list")
