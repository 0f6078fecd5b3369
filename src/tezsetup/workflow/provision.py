# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/workflow/provision.py

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterator, Optional

from tezsetup.baker.models import BakerIdentity
from tezsetup.errors import ProvisioningAborted, SetupError
from tezsetup.node.models import HistoryMode, Network, NodeInstance
from tezsetup.node.monitor import current_protocol
from tezsetup.observers.dispatcher import EventBus
from tezsetup.observers.events import (
    ProvisioningSummary,
    StageFailed,
    StageStarted,
    StageSucceeded,
    new_ctx,
)
from tezsetup.service.interface import ServiceRegistrar
from tezsetup.workflow.baker import BakerWorkflow
from tezsetup.workflow.interface import Prompter

log = logging.getLogger("tezsetup")


@dataclass
class ProvisioningResult:
    node: NodeInstance
    baker: Optional[BakerIdentity] = None


async def lookup_protocol(endpoint: str) -> str:
    return await asyncio.to_thread(current_protocol, endpoint)


class ProvisioningWorkflow:
    """
    Runs the node stages strictly in order:

      directory -> ports -> identity -> snapshot -> service -> bootstrap
      -> (optional) baker

    Each stage's output feeds the next. Failures propagate as SetupError
    subclasses after a StageFailed event; nothing is rolled back, so a
    registered service keeps running.
    """

    def __init__(
        self,
        prompter: Prompter,
        *,
        directory,
        ports,
        identity,
        snapshot,
        service: ServiceRegistrar,
        monitor_factory: Callable[[str], object],
        protocol_lookup: Callable[[str], Awaitable[str]] = lookup_protocol,
        sizes_lookup: Optional[Callable[[str], Dict[str, Optional[int]]]] = None,
        baker: Optional[BakerWorkflow] = None,
        bus: Optional[EventBus] = None,
        run_ctx: Optional[dict] = None,
        on_complete: Optional[Callable[[ProvisioningResult], None]] = None,
    ):
        self.prompter = prompter
        self.directory = directory
        self.ports = ports
        self.identity = identity
        self.snapshot = snapshot
        self.service = service
        self.monitor_factory = monitor_factory
        self.protocol_lookup = protocol_lookup
        self.sizes_lookup = sizes_lookup
        self.baker = baker
        self.bus = bus
        self.run_ctx = run_ctx if run_ctx is not None else new_ctx(network=None, endpoint=None)
        self.on_complete = on_complete
        self.stages: list[str] = []

    def _emit(self, cls, **kw) -> None:
        if self.bus:
            ctx = new_ctx(self.run_ctx.get("network"), self.run_ctx.get("endpoint"), self.run_ctx.get("run_id"))
            self.bus.emit(cls(**kw, **ctx))

    @contextmanager
    def _stage(self, name: str, message: str) -> Iterator[None]:
        self.stages.append(name)
        log.info("[%s] %s", name, message)
        self._emit(StageStarted, stage=name, message=message)
        try:
            yield
        except ProvisioningAborted:
            raise
        except SetupError as e:
            self._emit(StageFailed, stage=name, error=str(e))
            raise
        self._emit(StageSucceeded, stage=name, message=message)

    # ------------------------------------------------------------------
    async def _choose_chain(
        self, network: Optional[Network], history_mode: Optional[HistoryMode]
    ) -> tuple[Network, HistoryMode]:
        network = Network(network) if network else Network(self.prompter.ask_network())
        if history_mode:
            return network, HistoryMode(history_mode)
        sizes: Dict[str, Optional[int]] = {}
        if self.sizes_lookup:
            sizes = await asyncio.to_thread(self.sizes_lookup, network.value)
        return network, HistoryMode(self.prompter.ask_history_mode(sizes))

    async def run(
        self,
        *,
        network: Optional[Network] = None,
        history_mode: Optional[HistoryMode] = None,
        with_baker: bool = False,
    ) -> ProvisioningResult:
        instance: Optional[NodeInstance] = None
        try:
            network, history_mode = await self._choose_chain(network, history_mode)
            self.run_ctx["network"] = network.value

            with self._stage("directory", "Preparing the node data directory..."):
                data_dir = self.directory.provision()

            with self._stage("ports", "Selecting RPC and network ports..."):
                pair = await self.ports.negotiate()

            instance = NodeInstance(
                data_dir=Path(data_dir),
                rpc_port=pair.rpc_port,
                net_port=pair.net_port,
                network=network,
                history_mode=history_mode,
            )
            self.run_ctx["endpoint"] = instance.rpc_endpoint

            with self._stage("identity", "Initializing the node and generating its identity..."):
                await self.identity.run(instance.data_dir, network, history_mode)

            fast = self.prompter.ask_fast_import()
            with self._stage("snapshot", f"Importing the {network.value}/{history_mode.value} snapshot..."):
                await self.snapshot.run(instance, fast=fast)

            result = ProvisioningResult(node=instance)
            if not self.prompter.confirm_service_setup(instance.service_name):
                log.warning(
                    "[service] Service setup skipped. Start the node yourself with: octez-node run "
                    "--rpc-addr 127.0.0.1:%d --net-addr 0.0.0.0:%d --data-dir %s",
                    instance.rpc_port, instance.net_port, instance.data_dir,
                )
                if with_baker:
                    log.warning("[baker] Baker setup needs a running node; run `tezsetup baker` once it is up.")
                with_baker = False
            else:
                with self._stage("service", f"Configuring service {instance.service_name}..."):
                    await self.service.register(instance, instance.service_name)

                with self._stage("bootstrap", "Waiting for the node to bootstrap..."):
                    await self.monitor_factory(instance.rpc_endpoint).wait_until_bootstrapped()
                    instance.protocol_hash = await self.protocol_lookup(instance.rpc_endpoint)
                log.info("[bootstrap] Current protocol: %s", instance.protocol_hash)

            if with_baker and self.baker:
                # node already synchronized above
                result.baker = await self.baker.run(
                    instance.rpc_endpoint, network, wait_bootstrapped=False, data_dir=instance.data_dir
                )

        except ProvisioningAborted as e:
            self._emit(ProvisioningSummary, status="ABORTED", error=str(e),
                       data_dir=str(instance.data_dir) if instance else None)
            raise
        except SetupError as e:
            self._emit(
                ProvisioningSummary,
                status="FAILED",
                error=f"[{e.stage}] {e}",
                data_dir=str(instance.data_dir) if instance else None,
                protocol_hash=instance.protocol_hash if instance else None,
            )
            raise

        self._emit(
            ProvisioningSummary,
            status="OK",
            data_dir=str(instance.data_dir),
            protocol_hash=instance.protocol_hash,
            baker_address=result.baker.address if result.baker else None,
        )
        log.info("[done] Installation completed. Node data directory: %s", instance.data_dir)
        if self.on_complete:
            self.on_complete(result)
        return result
