# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/workflow/baker.py

from __future__ import annotations

import logging
from decimal import Decimal
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from tezsetup.baker.activator import BakerActivator
from tezsetup.baker.models import (
    TEZ,
    BakerIdentity,
    FaucetFund,
    GenerateKey,
    ImportLedgerKey,
    ImportSecretKey,
    KeyChoice,
    SelfFund,
    UseExistingKey,
    format_balance,
)
from tezsetup.errors import CommandError, InsufficientFaucetAmount, RegistrationError, SetupError
from tezsetup.node.models import Network
from tezsetup.observers.dispatcher import EventBus
from tezsetup.observers.events import StageFailed, StageStarted, StageSucceeded, new_ctx
from tezsetup.service.interface import BakerServiceInstaller
from tezsetup.service.systemd import baker_service_name
from tezsetup.workflow.interface import Prompter

log = logging.getLogger("tezsetup")

KEY_EXISTING = "existing"
KEY_NEW = "new"
KEY_LEDGER = "ledger"
KEY_SECRET = "secret"

FUND_SELF = "self"
FUND_FAUCET = "faucet"


class BakerWorkflow:
    """
    Interactive baker activation against a running node:

      point octez-client at the node -> wait bootstrapped (optional)
      -> choose key -> fund to the threshold -> register as delegate
      -> (confirmed) baker daemon service

    A failed registration offers a retry: the operator may send more
    funds first, the balance is re-awaited, then registration reruns.
    """

    def __init__(
        self,
        prompter: Prompter,
        activator: BakerActivator,
        *,
        monitor_factory: Optional[Callable[[str], object]] = None,
        service: Optional[BakerServiceInstaller] = None,
        default_data_dir: Optional[Path] = None,
        bus: Optional[EventBus] = None,
        run_ctx: Optional[dict] = None,
    ):
        self.prompter = prompter
        self.activator = activator
        self.client = activator.client
        self.monitor_factory = monitor_factory
        self.service = service
        self.default_data_dir = default_data_dir
        self.bus = bus
        self.run_ctx = run_ctx or new_ctx(network=None, endpoint=None)
        self.registrations = 0

    def _emit(self, cls, **kw) -> None:
        if self.bus:
            ctx = new_ctx(self.run_ctx.get("network"), self.run_ctx.get("endpoint"), self.run_ctx.get("run_id"))
            self.bus.emit(cls(**kw, **ctx))

    # ------------------------------------------------------------------
    async def _known_keys(self) -> List[Tuple[str, str, Decimal]]:
        known = []
        for addr in await self.client.list_known_addresses():
            try:
                balance = await self.client.get_balance(addr.alias)
            except (SetupError, CommandError) as e:
                log.warning("[baker] Failed to retrieve balance for %s. Assuming 0 %s. (%s)", addr.alias, TEZ, e)
                balance = Decimal(0)
            known.append((addr.alias, addr.address, balance))
        return known

    async def choose_key(self) -> KeyChoice:
        known = await self._known_keys()
        option = self.prompter.ask_key_option(bool(known))

        if option == KEY_EXISTING and known:
            return UseExistingKey(alias=self.prompter.ask_existing_key(known))
        if option == KEY_LEDGER:
            log.info("[baker] Listing connected Ledgers...")
            connected = await self.client.list_connected_ledgers()
            ledger_path, alias = self.prompter.ask_ledger_key(connected)
            return ImportLedgerKey(alias=alias, ledger_path=ledger_path)
        if option == KEY_SECRET:
            alias, secret = self.prompter.ask_secret_key()
            return ImportSecretKey(alias=alias, secret_key=secret)
        return GenerateKey(alias=self.prompter.ask_new_key_alias(GenerateKey().alias))

    async def _fund(self, alias: str, network: Network) -> Optional[BakerIdentity]:
        identity = await self.activator.inspect(alias)

        if identity.balance >= self.activator.min_balance:
            if not self.prompter.confirm_continue_with_balance(alias, identity.balance):
                log.info("[baker] Baker setup aborted.")
                return None
            return identity

        option = self.prompter.ask_fund_option(identity.balance)
        if option == FUND_FAUCET:
            while True:
                amount = self.prompter.ask_faucet_amount(self.activator.shortfall(identity.balance))
                try:
                    return await self.activator.fund(alias, FaucetFund(amount=amount), network)
                except InsufficientFaucetAmount as e:
                    log.warning("[baker] %s", e)
        return await self.activator.fund(alias, SelfFund(), network)

    async def _register(self, identity: BakerIdentity, *, ledger: bool) -> None:
        while True:
            self.registrations += 1
            try:
                await self.activator.register(identity.alias, ledger=ledger)
                return
            except RegistrationError as e:
                log.error("[baker] %s", e)
                if not self.prompter.confirm_retry_registration(identity.alias, identity.address):
                    raise
            log.info(
                "[baker] Send more funds to %s if needed; registration resumes once the balance is at least %s %s.",
                identity.address, format_balance(self.activator.min_balance), TEZ,
            )
            identity.balance = await self.activator.wait_for_balance(identity.alias)

    async def _start_service(self, identity: BakerIdentity, endpoint: str, data_dir: Optional[Path]) -> Optional[str]:
        service_name = baker_service_name(identity.alias)
        if not self.prompter.confirm_baker_service(service_name):
            log.info("[baker] Baker service skipped. Start octez-baker yourself to bake with %s.", identity.alias)
            return None

        if data_dir is None:
            default = str(self.default_data_dir) if self.default_data_dir else ""
            data_dir = Path(self.prompter.ask_node_data_dir(default)).expanduser()

        password = None
        if await self.client.is_key_encrypted(identity.alias):
            password = self.prompter.ask_key_password(identity.alias)

        return await self.service.register_baker(
            identity.alias, data_dir=Path(data_dir), endpoint=endpoint, password=password
        )

    async def run(
        self,
        endpoint: str,
        network: Network,
        *,
        wait_bootstrapped: bool = True,
        data_dir: Optional[Path] = None,
    ) -> Optional[BakerIdentity]:
        network = Network(network)
        self._emit(StageStarted, stage="baker", message=f"Setting up a baker on {endpoint}")
        try:
            await self.client.config_update(endpoint)
            if wait_bootstrapped and self.monitor_factory:
                await self.monitor_factory(endpoint).wait_until_bootstrapped()

            choice = await self.choose_key()
            alias = await self.activator.acquire_key(choice)

            identity = await self._fund(alias, network)
            if identity is None:
                self._emit(StageSucceeded, stage="baker", message="skipped by operator")
                return None

            await self._register(identity, ledger=isinstance(choice, ImportLedgerKey))
            if self.service is not None:
                await self._start_service(identity, endpoint, data_dir)
        except SetupError as e:
            self._emit(StageFailed, stage="baker", error=str(e))
            raise

        log.info("[baker] Baker setup completed: %s (%s), balance %s.", identity.alias, identity.address, identity.display_balance)
        self._emit(StageSucceeded, stage="baker", message=f"{identity.alias} registered as delegate")
        return identity
