import asyncio

import pytest
import requests

from tezsetup.errors import BootstrapError, ProtocolLookupError
from tezsetup.node.monitor import (
    BootstrapMonitor,
    BootstrapStatus,
    RpcBootstrapQuery,
    current_protocol,
)

# ----------------- Fakes -----------------

class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        if self.exc:
            raise self.exc
        return self.response


class ScriptedQuery:
    def __init__(self, statuses):
        self.statuses = list(statuses)
        self.last_detail = None

    async def __call__(self):
        return self.statuses.pop(0)


class FakeSleep:
    def __init__(self): self.calls = []
    async def __call__(self, seconds): self.calls.append(seconds)

# ----------------- Monitor -----------------

def test_waits_until_bootstrapped_with_fixed_delay():
    sleep = FakeSleep()
    query = ScriptedQuery([BootstrapStatus.NOT_YET, BootstrapStatus.NOT_YET, BootstrapStatus.BOOTSTRAPPED])
    mon = BootstrapMonitor(query, retry_delay=10.0, sleep=sleep)

    asyncio.run(mon.wait_until_bootstrapped())

    assert mon.queries == 3
    assert mon.retries == 2
    assert sleep.calls == [10.0, 10.0]


def test_error_status_is_fatal_without_retry():
    sleep = FakeSleep()
    mon = BootstrapMonitor(ScriptedQuery([BootstrapStatus.ERROR]), sleep=sleep)

    with pytest.raises(BootstrapError):
        asyncio.run(mon.wait_until_bootstrapped())
    assert mon.queries == 1 and sleep.calls == []

# ----------------- RPC query -----------------

@pytest.mark.parametrize(
    "session, expected",
    [
        (FakeSession(FakeResponse(body={"bootstrapped": True, "sync_state": "synced"})), BootstrapStatus.BOOTSTRAPPED),
        (FakeSession(FakeResponse(body={"bootstrapped": False, "sync_state": "unsynced"})), BootstrapStatus.NOT_YET),
        (FakeSession(FakeResponse(body={"bootstrapped": False, "sync_state": "stuck"})), BootstrapStatus.ERROR),
        (FakeSession(FakeResponse(status_code=500, text="boom")), BootstrapStatus.ERROR),
        (FakeSession(FakeResponse(text="<html>")), BootstrapStatus.ERROR),
        (FakeSession(exc=requests.ConnectionError("refused")), BootstrapStatus.NOT_YET),
        (FakeSession(exc=requests.ReadTimeout("busy after restart")), BootstrapStatus.NOT_YET),
        (FakeSession(exc=requests.ConnectTimeout("slow")), BootstrapStatus.NOT_YET),
        (FakeSession(exc=requests.TooManyRedirects("loop")), BootstrapStatus.ERROR),
    ],
)
def test_rpc_query_classification(session, expected):
    query = RpcBootstrapQuery("http://127.0.0.1:8732/", session=session)

    assert asyncio.run(query()) is expected
    assert session.urls == ["http://127.0.0.1:8732/chains/main/is_bootstrapped"]
    assert query.last_detail

# ----------------- Protocol -----------------

def test_current_protocol_reads_head():
    session = FakeSession(FakeResponse(body={"protocol": "PsParisCZo7KAh1Z1smVd9ZMZ1HHn5gkzbM94V3PLCpknFWhUAi", "level": 1}))

    proto = current_protocol("http://127.0.0.1:8732", session=session)

    assert proto == "PsParisCZo7KAh1Z1smVd9ZMZ1HHn5gkzbM94V3PLCpknFWhUAi"
    assert session.urls == ["http://127.0.0.1:8732/chains/main/blocks/head"]


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(FakeResponse(status_code=503)),
        FakeSession(FakeResponse(body={"level": 1})),
        FakeSession(exc=requests.ConnectionError("refused")),
    ],
)
def test_current_protocol_failures(session):
    with pytest.raises(ProtocolLookupError) as ei:
        current_protocol("http://127.0.0.1:8732", session=session)
    assert ei.value.stage == "bootstrap"
