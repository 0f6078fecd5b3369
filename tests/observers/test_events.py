import json
import logging
from pathlib import Path

from tezsetup.observers.dispatcher import EventBus
from tezsetup.observers.events import AttemptFailed, ProvisioningSummary, StageStarted, StageSucceeded, new_ctx
from tezsetup.observers.jsonfile import JsonFileObserver
from tezsetup.observers.logger import LoggerObserver


class Exploding:
    def notify(self, event): raise RuntimeError("observer bug")


class Recorder:
    def __init__(self): self.events = []
    def notify(self, event): self.events.append(event)


def test_new_ctx_keeps_given_run_id():
    ctx = new_ctx(network="ghostnet", endpoint="http://127.0.0.1:8732", run_id="run-1")
    assert ctx["run_id"] == "run-1"
    assert ctx["ts"].endswith("Z")
    assert new_ctx(None, None)["run_id"] != new_ctx(None, None)["run_id"]


def test_jsonfile_observer_appends_typed_lines(tmp_path: Path):
    path = tmp_path / "logs" / "run-1.jsonl"
    obs = JsonFileObserver(path)
    ctx = new_ctx("ghostnet", None, run_id="run-1")

    obs.notify(StageStarted(stage="snapshot", message="Importing", **ctx))
    obs.notify(ProvisioningSummary(status="OK", data_dir="/home/tezos/tezos-node", **ctx))

    lines = [json.loads(l) for l in path.read_text().splitlines()]
    assert [l["type"] for l in lines] == ["StageStarted", "ProvisioningSummary"]
    assert lines[0]["stage"] == "snapshot" and lines[0]["run_id"] == "run-1"
    assert lines[1]["status"] == "OK" and lines[1]["baker_address"] is None


def test_jsonfile_observer_writes_paths_and_tez_symbol(tmp_path: Path):
    path = tmp_path / "run-2.jsonl"
    ctx = new_ctx("ghostnet", None, run_id="run-2")

    JsonFileObserver(path).notify(StageSucceeded(stage="baker", message="balance 6000 ꜩ", **ctx))
    JsonFileObserver(path).notify(ProvisioningSummary(status="OK", data_dir=tmp_path / "tezos-node", **ctx))

    lines = [json.loads(l) for l in path.read_text(encoding="utf-8").splitlines()]
    assert lines[0]["message"] == "balance 6000 ꜩ"
    assert "ꜩ" in path.read_text(encoding="utf-8")
    assert lines[1]["data_dir"] == str(tmp_path / "tezos-node")


def test_bus_survives_failing_observer():
    rec = Recorder()
    bus = EventBus([Exploding(), rec])
    event = AttemptFailed(stage="identity", attempt=1, error="timeout", **new_ctx(None, None))

    bus.emit(event)

    assert rec.events == [event]


def test_logger_observer_logs_at_debug(caplog):
    logger = logging.getLogger("observer-test")
    with caplog.at_level(logging.DEBUG, logger="observer-test"):
        LoggerObserver(logger).notify(StageStarted(stage="ports", message="Selecting", **new_ctx("mainnet", None)))
    assert "StageStarted" in caplog.text and "stage=ports" in caplog.text
