# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/cli/prompts.py

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Sequence, Tuple

import typer
from rich.console import Console
from rich.prompt import Confirm, Prompt

from tezsetup.baker.models import TEZ, format_balance
from tezsetup.node.models import HistoryMode, Network
from tezsetup.snapshot.download import format_size_gb
from tezsetup.workflow.baker import FUND_FAUCET, FUND_SELF, KEY_EXISTING, KEY_LEDGER, KEY_NEW, KEY_SECRET

SETUP_NODE = "node"
SETUP_NODE_AND_BAKER = "node+baker"
SETUP_BAKER = "baker"

console = Console()


def _non_empty(label: str, default: Optional[str] = None, *, hide_input: bool = False) -> str:
    while True:
        value = typer.prompt(label, default=default, hide_input=hide_input).strip()
        if value:
            return value
        typer.echo("A value is required.")


class TyperPrompter:
    """Terminal implementation of the workflow Prompter (typer + rich)."""

    def __init__(self, console: Console = console):
        self.console = console

    def _choose(self, title: str, options: Sequence[Tuple[str, str]], default: Optional[str] = None) -> str:
        """Numbered menu. options are (value, label); returns the chosen value."""
        self.console.print(f"[bold]{title}[/bold]")
        for i, (_value, label) in enumerate(options, start=1):
            self.console.print(f"  {i}) {label}")
        numbers = [str(i) for i in range(1, len(options) + 1)]
        default_no = "1"
        if default is not None:
            default_no = str(next(i for i, (v, _) in enumerate(options, start=1) if v == default))
        picked = Prompt.ask("Choice", choices=numbers, default=default_no, console=self.console)
        return options[int(picked) - 1][0]

    # ------------------------------------------------------------------
    # Node
    # ------------------------------------------------------------------
    def ask_setup_type(self) -> str:
        return self._choose(
            "What would you like to set up?",
            [
                (SETUP_NODE, "Node only"),
                (SETUP_NODE_AND_BAKER, "Node + Baker"),
                (SETUP_BAKER, "Baker only (on an existing node)"),
            ],
        )

    def ask_directory_location(self, default_name: str, default_parent: str) -> Tuple[str, str]:
        name = _non_empty("Node name (directory)", default_name)
        parent = _non_empty("Node location (parent directory)", default_parent)
        return name, parent

    def confirm_directory_deletion(self, path: str) -> bool:
        return Confirm.ask(
            f"The directory {path} already exists. Remove it and continue?",
            default=False,
            console=self.console,
        )

    def choose_different_directory(self) -> bool:
        return Confirm.ask("Would you like to choose a different directory?", default=True, console=self.console)

    def ask_ports(self, default_rpc: int, default_net: int) -> Tuple[int, int]:
        rpc = typer.prompt("RPC port", default=default_rpc, type=int)
        net = typer.prompt("Network (P2P) port", default=default_net, type=int)
        return rpc, net

    def ask_network(self) -> Network:
        return Network(self._choose("Choose the network:", [(n.value, n.value) for n in Network]))

    def ask_history_mode(self, sizes: Dict[str, Optional[int]]) -> HistoryMode:
        options = [(m.value, f"{m.value} ({format_size_gb(sizes.get(m.value))} GB)") for m in HistoryMode]
        return HistoryMode(self._choose("Choose the history mode:", options))

    def ask_fast_import(self) -> bool:
        mode = self._choose(
            "Choose the snapshot import mode:",
            [("safe", "Safe mode (verify the snapshot)"), ("fast", "Fast mode (skip integrity checks)")],
        )
        return mode == "fast"

    def confirm_service_setup(self, service_name: str) -> bool:
        return Confirm.ask(f"Set up and start the {service_name} service?", default=True, console=self.console)

    def confirm_baker_service(self, service_name: str) -> bool:
        return Confirm.ask(f"Set up and start the {service_name} baker service?", default=True, console=self.console)

    def ask_node_data_dir(self, default: str) -> str:
        return _non_empty("Data directory of the running node", default or None)

    def ask_key_password(self, alias: str) -> str:
        return _non_empty(f"Password of the encrypted key {alias}", hide_input=True)

    # ------------------------------------------------------------------
    # Baker
    # ------------------------------------------------------------------
    def ask_key_option(self, has_known_keys: bool) -> str:
        options = [
            (KEY_NEW, "Create a new key"),
            (KEY_LEDGER, "Import a key from a Ledger"),
            (KEY_SECRET, "Import a secret key"),
        ]
        if has_known_keys:
            options.insert(0, (KEY_EXISTING, "Use an existing key"))
        return self._choose("Which key should bake?", options)

    def ask_existing_key(self, known: List[Tuple[str, str, Decimal]]) -> str:
        options = [
            (alias, f"{alias}: {address} (Balance: {format_balance(balance)} {TEZ})")
            for alias, address, balance in known
        ]
        return self._choose("Choose an existing address:", options)

    def ask_new_key_alias(self, default: str) -> str:
        return _non_empty("Alias for the new baker key", default)

    def ask_ledger_key(self, connected: str) -> Tuple[str, str]:
        if connected.strip():
            self.console.print(connected)
        ledger_path = _non_empty("Ledger path (e.g. ledger://0)")
        alias = _non_empty("Alias for the imported key")
        return ledger_path, alias

    def ask_secret_key(self) -> Tuple[str, str]:
        alias = _non_empty("Alias for the imported key")
        secret = _non_empty("Secret key", hide_input=True)
        return alias, secret

    def confirm_continue_with_balance(self, alias: str, balance: Decimal) -> bool:
        return Confirm.ask(
            f"The balance of {alias} is sufficient ({format_balance(balance)} {TEZ}). Do you want to continue?",
            default=True,
            console=self.console,
        )

    def ask_fund_option(self, balance: Decimal) -> str:
        return self._choose(
            f"Current balance is {format_balance(balance)} {TEZ}. How would you like to fund the baker key?",
            [(FUND_SELF, "Self-fund"), (FUND_FAUCET, "Use faucet (test networks only)")],
        )

    def ask_faucet_amount(self, minimum: Decimal) -> Decimal:
        while True:
            raw = typer.prompt(f"Amount of {TEZ} to request from the faucet (minimum {minimum})")
            try:
                amount = Decimal(raw.strip())
            except InvalidOperation:
                typer.echo(f"Not a number: {raw!r}")
                continue
            if amount.is_finite() and amount >= minimum:
                return amount
            typer.echo(f"You must request at least {minimum} {TEZ}.")

    def confirm_retry_registration(self, alias: str, address: str) -> bool:
        return Confirm.ask(
            f"Registration of {alias} failed. Send funds to {address} if needed, then retry?",
            default=True,
            console=self.console,
        )
