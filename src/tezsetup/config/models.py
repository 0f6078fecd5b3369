# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/config/models.py

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field, field_validator

from tezsetup.baker.activator import BALANCE_POLL_INTERVAL, FAUCET_COMMAND
from tezsetup.baker.models import MIN_BAKER_BALANCE
from tezsetup.node.identity import (
    IDENTITY_MAX_ATTEMPTS,
    IDENTITY_POLL_INTERVAL,
    NODE_SETTLE_DELAY,
    NODE_STOP_TIMEOUT,
)
from tezsetup.node.monitor import BOOTSTRAP_RETRY_DELAY
from tezsetup.service.systemd import BAKER_ARGS
from tezsetup.snapshot.download import DEFAULT_SNAPSHOT_BASE_URL
from tezsetup.snapshot.pipeline import DEFAULT_STAGING_PATH


def _default_user() -> str:
    return os.environ.get("USER") or "tezos"


class Timings(BaseModel):
    identity_poll_interval: float = Field(IDENTITY_POLL_INTERVAL, gt=0)
    identity_max_attempts: int = Field(IDENTITY_MAX_ATTEMPTS, ge=1)
    node_settle_delay: float = Field(NODE_SETTLE_DELAY, ge=0)
    node_stop_timeout: float = Field(NODE_STOP_TIMEOUT, gt=0)
    bootstrap_retry_delay: float = Field(BOOTSTRAP_RETRY_DELAY, gt=0)
    balance_poll_interval: float = Field(BALANCE_POLL_INTERVAL, gt=0)


class SetupConfig(BaseModel):
    user: str = Field(default_factory=_default_user)
    base_dir: Path = Field(default_factory=Path.home)
    default_dir_name: str = "tezos-node"

    rpc_port: int = Field(8732, gt=0, lt=65536)
    net_port: int = Field(9732, gt=0, lt=65536)

    snapshot_base_url: str = DEFAULT_SNAPSHOT_BASE_URL
    snapshot_staging_path: Path = DEFAULT_STAGING_PATH

    node_binary: str = "octez-node"
    client_binary: str = "octez-client"
    baker_binary: str = "octez-baker"
    baker_args: List[str] = Field(default_factory=lambda: list(BAKER_ARGS))
    faucet_command: List[str] = Field(default_factory=lambda: list(FAUCET_COMMAND))

    unit_dir: Path = Path("/etc/systemd/system")
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".tezsetup" / "logs")
    password_dir: Path = Field(default_factory=lambda: Path.home() / ".tezsetup" / "secrets")

    timings: Timings = Field(default_factory=Timings)
    min_baker_balance: Decimal = Field(MIN_BAKER_BALANCE, ge=0)

    @field_validator("base_dir", "log_dir", "password_dir", "snapshot_staging_path", "unit_dir", mode="before")
    @classmethod
    def _expand_home(cls, v):
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    @field_validator("snapshot_base_url")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("faucet_command")
    @classmethod
    def _non_empty_command(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("faucet_command must name an executable")
        return v
