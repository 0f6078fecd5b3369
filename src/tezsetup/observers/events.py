# src/tezsetup/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str                  # ISO timestamp
    run_id: str              # correlates all events of one provisioning run
    network: Optional[str]   # mainnet/ghostnet
    endpoint: Optional[str]  # node RPC endpoint, once known

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(network: Optional[str], endpoint: Optional[str], run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "network": network,
        "endpoint": endpoint,
    }


# ---------------------------------------------------------------------
# Stage lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class StageStarted(BaseEvent):
    stage: str
    message: str

@dataclass(frozen=True)
class StageSucceeded(BaseEvent):
    stage: str
    message: str

@dataclass(frozen=True)
class StageFailed(BaseEvent):
    stage: str
    error: str

@dataclass(frozen=True)
class AttemptFailed(BaseEvent):
    stage: str
    attempt: int
    error: str


# ---------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ProvisioningSummary(BaseEvent):
    status: str                    # "OK" | "FAILED" | "ABORTED"
    data_dir: Optional[str] = None
    protocol_hash: Optional[str] = None
    baker_address: Optional[str] = None
    error: Optional[str] = None
