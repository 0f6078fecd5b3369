import asyncio
import errno
import socket

import pytest

import tezsetup.node.ports as ports_mod
from tezsetup.errors import PortCheckError
from tezsetup.node.models import PortPair
from tezsetup.node.ports import PortNegotiator, is_port_in_use

# ----------------- Fakes -----------------

class FakePrompter:
    def __init__(self, answers):
        self.answers = list(answers)
        self.calls = 0

    def ask_ports(self, default_rpc, default_net):
        self.calls += 1
        return self.answers.pop(0)


class FakePortCheck:
    def __init__(self, busy=()):
        self.busy = set(busy)
        self.checked = []

    async def __call__(self, port):
        self.checked.append(port)
        return port in self.busy

# ----------------- Tests -----------------

def test_free_defaults_are_accepted_in_one_round():
    check = FakePortCheck()
    neg = PortNegotiator(FakePrompter([(8732, 9732)]), check=check)

    pair = asyncio.run(neg.negotiate())

    assert pair == PortPair(8732, 9732)
    assert neg.rounds == 1
    assert sorted(check.checked) == [8732, 9732]


def test_conflict_on_either_port_reasks_both():
    check = FakePortCheck(busy={9732})
    prompter = FakePrompter([(8732, 9732), (8733, 9733)])
    neg = PortNegotiator(prompter, check=check)

    pair = asyncio.run(neg.negotiate())

    assert pair == PortPair(8733, 9733)
    assert neg.rounds == 2 and prompter.calls == 2


def test_identical_ports_are_rejected_without_checking():
    check = FakePortCheck()
    neg = PortNegotiator(FakePrompter([(8732, 8732), (8732, 9732)]), check=check)

    pair = asyncio.run(neg.negotiate())

    assert pair == PortPair(8732, 9732)
    assert neg.rounds == 2
    assert sorted(check.checked) == [8732, 9732]


def test_out_of_range_port_is_reasked():
    neg = PortNegotiator(FakePrompter([(0, 9732), (70000, 9732), (8732, 9732)]), check=FakePortCheck())
    assert asyncio.run(neg.negotiate()) == PortPair(8732, 9732)
    assert neg.rounds == 3


def test_port_pair_validation():
    with pytest.raises(ValueError):
        PortPair(8732, 8732)
    with pytest.raises(ValueError):
        PortPair(8732, 65536)


def test_is_port_in_use_detects_a_listener():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.listen(1)
        port = s.getsockname()[1]
        assert asyncio.run(is_port_in_use(port, host="127.0.0.1")) is True


def test_is_port_in_use_reports_free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]
    assert asyncio.run(is_port_in_use(port, host="127.0.0.1")) is False


def test_unexpected_bind_error_is_not_treated_as_busy(monkeypatch):
    class DeniedSocket:
        def __init__(self, *a): pass
        def setsockopt(self, *a): pass
        def bind(self, addr): raise PermissionError(errno.EACCES, "Permission denied")
        def listen(self, n): pass
        def close(self): pass

    monkeypatch.setattr(ports_mod.socket, "socket", DeniedSocket)
    with pytest.raises(PortCheckError):
        ports_mod._bind_check(80, "0.0.0.0")


def test_port_check_socket_allows_address_reuse(monkeypatch):
    opts = []

    class RecordingSocket:
        def __init__(self, *a): pass
        def setsockopt(self, level, name, value): opts.append((level, name, value))
        def bind(self, addr): opts.append(("bind", addr))
        def listen(self, n): pass
        def close(self): pass

    monkeypatch.setattr(ports_mod.socket, "socket", RecordingSocket)

    assert ports_mod._bind_check(9732, "0.0.0.0") is False
    # set before bind, so TIME_WAIT connections do not block the check
    assert opts == [(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1), ("bind", ("0.0.0.0", 9732))]
