# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/node/identity.py

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional

from tezsetup.errors import CommandError, ConfigInitError, IdentityTimeout
from tezsetup.node.directory import NODE_STATE_PATHS, clean_node_data
from tezsetup.node.models import HistoryMode, Network
from tezsetup.node.process import node_process
from tezsetup.observers.dispatcher import EventBus
from tezsetup.observers.events import AttemptFailed, new_ctx
from tezsetup.utils.retry import RetryError, Sleep, poll

log = logging.getLogger("tezsetup")

IDENTITY_POLL_INTERVAL = 2.0
IDENTITY_MAX_ATTEMPTS = 15
NODE_SETTLE_DELAY = 5.0
NODE_STOP_TIMEOUT = 30.0
IDENTITY_FILE = "identity.json"


class IdentityState(str, Enum):
    INIT_CONFIG = "INIT_CONFIG"
    RUNNING_FOR_IDENTITY = "RUNNING_FOR_IDENTITY"
    CLEANUP_AND_RETRY = "CLEANUP_AND_RETRY"
    IDENTITY_READY = "IDENTITY_READY"


class IdentityBootstrapper:
    """
    Drives a short-lived ``octez-node run`` until identity.json appears.

      INIT_CONFIG -> RUNNING_FOR_IDENTITY -> IDENTITY_READY
                                          -> CLEANUP_AND_RETRY -> INIT_CONFIG

    The outer loop has no attempt limit. config_inits, cleanups and
    history record what happened.
    """

    def __init__(
        self,
        node,
        *,
        poll_interval: float = IDENTITY_POLL_INTERVAL,
        max_attempts: int = IDENTITY_MAX_ATTEMPTS,
        settle_delay: float = NODE_SETTLE_DELAY,
        stop_timeout: float = NODE_STOP_TIMEOUT,
        sleep: Sleep = asyncio.sleep,
        bus: Optional[EventBus] = None,
        run_ctx: Optional[dict] = None,
    ):
        self.node = node
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.settle_delay = settle_delay
        self.stop_timeout = stop_timeout
        self.sleep = sleep
        self.bus = bus
        self.run_ctx = run_ctx or new_ctx(network=None, endpoint=None)

        self.config_inits = 0
        self.cleanups = 0
        self.history: List[IdentityState] = []

    async def _init_config(self, data_dir: Path, network: Network, mode: HistoryMode) -> None:
        self.config_inits += 1
        log.info("[identity] Initializing node configuration (%s, %s)...", Network(network).value, HistoryMode(mode).value)
        try:
            await self.node.config_init(data_dir, network, mode)
        except CommandError as e:
            raise ConfigInitError(f"Error initializing the node: {e}") from e

    async def _wait_for_identity(self, identity: Path) -> None:
        async def exists() -> bool:
            return identity.exists()

        try:
            await poll(
                exists,
                interval=self.poll_interval,
                max_attempts=self.max_attempts,
                sleep=self.sleep,
            )
        except RetryError as e:
            raise IdentityTimeout(f"Timeout waiting for {identity.name} ({e.attempts} checks)") from e

    async def _run_for_identity(self, data_dir: Path) -> bool:
        log.info("[identity] Starting the node to create identity...")
        async with node_process(
            self.node.runner,
            self.node.run_argv(data_dir),
            settle_delay=self.settle_delay,
            stop_timeout=self.stop_timeout,
            sleep=self.sleep,
        ):
            try:
                await self._wait_for_identity(data_dir / IDENTITY_FILE)
            except IdentityTimeout as e:
                log.warning("[identity] %s", e)
                if self.bus:
                    ctx = new_ctx(self.run_ctx.get("network"), self.run_ctx.get("endpoint"), self.run_ctx.get("run_id"))
                    self.bus.emit(AttemptFailed(stage="identity", attempt=self.config_inits, error=str(e), **ctx))
                return False
            log.info("[identity] Identity created, stopping the node...")
            return True

    async def run(self, data_dir: Path, network: Network, mode: HistoryMode) -> Path:
        data_dir = Path(data_dir)
        state = IdentityState.INIT_CONFIG
        while True:
            self.history.append(state)
            if state is IdentityState.INIT_CONFIG:
                await self._init_config(data_dir, network, mode)
                state = IdentityState.RUNNING_FOR_IDENTITY
            elif state is IdentityState.RUNNING_FOR_IDENTITY:
                ready = await self._run_for_identity(data_dir)
                state = IdentityState.IDENTITY_READY if ready else IdentityState.CLEANUP_AND_RETRY
            elif state is IdentityState.CLEANUP_AND_RETRY:
                self.cleanups += 1
                log.info("[identity] Cleaning node data and reinitializing (retry %d)...", self.cleanups)
                clean_node_data(data_dir, NODE_STATE_PATHS)
                state = IdentityState.INIT_CONFIG
            else:
                return data_dir / IDENTITY_FILE
