# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/baker/activator.py

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Awaitable, Callable, Optional, Sequence

from tezsetup.baker.models import (
    MIN_BAKER_BALANCE,
    TEZ,
    BakerIdentity,
    FaucetFund,
    FundingOption,
    GenerateKey,
    ImportLedgerKey,
    ImportSecretKey,
    KeyChoice,
    SelfFund,
    UseExistingKey,
    format_balance,
)
from tezsetup.errors import CommandError, FaucetError, InsufficientFaucetAmount, RegistrationError, SetupError
from tezsetup.node.models import Network
from tezsetup.utils.retry import Sleep, poll

log = logging.getLogger("tezsetup")

BALANCE_POLL_INTERVAL = 10.0
FAUCET_COMMAND = ("npx", "@oxheadalpha/get-tez")

BalanceSource = Callable[[str], Awaitable[Decimal]]


class BakerActivator:
    """
    Baking key lifecycle against a bootstrapped node:

      acquire_key(choice)  -> alias
      fund(alias, option)  -> BakerIdentity with balance >= min_balance
      register(alias)      -> delegate registration (not retried here)

    The balance wait has no timeout: funding is done by a human.
    """

    def __init__(
        self,
        client,
        *,
        runner=None,
        min_balance: Decimal = MIN_BAKER_BALANCE,
        poll_interval: float = BALANCE_POLL_INTERVAL,
        faucet_command: Sequence[str] = FAUCET_COMMAND,
        balance_source: Optional[BalanceSource] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.client = client
        self.runner = runner or client.runner
        self.min_balance = Decimal(min_balance)
        self.poll_interval = poll_interval
        self.faucet_command = list(faucet_command)
        self.balance_source = balance_source or client.get_balance
        self.sleep = sleep
        self.polls = 0

    # ------------------------------------------------------------------
    # Key acquisition
    # ------------------------------------------------------------------
    async def acquire_key(self, choice: KeyChoice) -> str:
        if isinstance(choice, UseExistingKey):
            log.info("[baker] Using existing key %s", choice.alias)
        elif isinstance(choice, GenerateKey):
            await self.client.gen_keys(choice.alias)
        elif isinstance(choice, ImportLedgerKey):
            log.info("[baker] Importing key %s from Ledger %s...", choice.alias, choice.ledger_path)
            await self.client.import_secret_key(choice.alias, choice.ledger_path)
        elif isinstance(choice, ImportSecretKey):
            log.info("[baker] Importing secret key as %s...", choice.alias)
            await self.client.import_secret_key(choice.alias, choice.secret_key, secret=True)
        else:
            raise TypeError(f"Unknown key choice: {choice!r}")
        return choice.alias

    # ------------------------------------------------------------------
    # Funding
    # ------------------------------------------------------------------
    def shortfall(self, balance: Decimal) -> Decimal:
        return max(self.min_balance - Decimal(balance), Decimal(0))

    async def inspect(self, alias: str) -> BakerIdentity:
        address = await self.client.show_address(alias)
        balance = await self.balance_source(alias)
        return BakerIdentity(alias=alias, address=address, balance=balance)

    async def wait_for_balance(self, alias: str) -> Decimal:
        log.info("[baker] Waiting for the balance of %s to reach %s %s...", alias, format_balance(self.min_balance), TEZ)
        seen = Decimal(0)

        async def sufficient() -> bool:
            nonlocal seen
            self.polls += 1
            seen = await self.balance_source(alias)
            return seen >= self.min_balance

        def waiting(_attempt: int) -> None:
            log.info("[baker] Current balance: %s %s. Waiting for funds...", format_balance(seen), TEZ)

        await poll(sufficient, interval=self.poll_interval, sleep=self.sleep, on_wait=waiting)
        log.info("[baker] Balance of %s is sufficient: %s %s.", alias, format_balance(seen), TEZ)
        return seen

    async def request_faucet(self, address: str, amount: Decimal, network: Network) -> None:
        network = Network(network)
        if network is Network.MAINNET:
            raise FaucetError("No faucet exists for mainnet; fund the key yourself.")
        log.info("[baker] Using faucet to send %s %s to %s on %s...", amount, TEZ, address, network.value)
        argv = [*self.faucet_command, address, "--amount", str(amount), "--network", network.value]
        try:
            await self.runner.run_attached(argv)
        except CommandError as e:
            raise FaucetError(f"Faucet operation failed with code {e.returncode}") from e
        except OSError as e:
            raise FaucetError(f"Faucet could not be started: {e}") from e
        log.info("[baker] Faucet operation completed successfully.")

    async def fund(self, alias: str, option: FundingOption, network: Network) -> BakerIdentity:
        identity = await self.inspect(alias)
        needed = self.shortfall(identity.balance)

        if isinstance(option, SelfFund):
            log.info(
                "[baker] Please send at least %s %s to the address %s.",
                format_balance(needed), TEZ, identity.address,
            )
        elif isinstance(option, FaucetFund):
            amount = Decimal(option.amount)
            if amount < needed:
                raise InsufficientFaucetAmount(
                    f"You must request at least {needed} {TEZ} (requested {amount})."
                )
            await self.request_faucet(identity.address, amount, network)
        else:
            raise TypeError(f"Unknown funding option: {option!r}")

        identity.balance = await self.wait_for_balance(alias)
        return identity

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    async def register(self, alias: str, *, ledger: bool = False) -> None:
        if ledger:
            log.info("[baker] Confirm the baking setup for %s on your Ledger...", alias)
            try:
                await self.client.setup_ledger_to_bake(alias)
            except (CommandError, SetupError) as e:
                log.warning("[baker] Ledger baking setup for %s did not complete: %s", alias, e)

        log.info("[baker] Registering %s as a delegate...", alias)
        try:
            await self.client.register_delegate(alias)
        except CommandError as e:
            raise RegistrationError(f"Failed to register {alias} as a delegate: {e}") from e
        log.info("[baker] Key %s has been registered as a delegate.", alias)
