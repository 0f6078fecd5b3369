# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional, Protocol, Tuple

from tezsetup.node.models import HistoryMode, Network


class Prompter(Protocol):
    """
    Everything the workflow needs to ask the operator. Each call blocks
    until answered. Implementations only enforce "non-empty" and numeric
    minimums where stated.
    """

    def ask_setup_type(self) -> str: ...

    def ask_directory_location(self, default_name: str, default_parent: str) -> Tuple[str, str]: ...

    def confirm_directory_deletion(self, path: str) -> bool: ...

    def choose_different_directory(self) -> bool: ...

    def ask_ports(self, default_rpc: int, default_net: int) -> Tuple[int, int]: ...

    def ask_network(self) -> Network: ...

    def ask_history_mode(self, sizes: Dict[str, Optional[int]]) -> HistoryMode: ...

    def ask_fast_import(self) -> bool: ...

    def ask_key_option(self, has_known_keys: bool) -> str: ...

    def ask_existing_key(self, known: List[Tuple[str, str, Decimal]]) -> str: ...

    def ask_new_key_alias(self, default: str) -> str: ...

    def ask_ledger_key(self, connected: str) -> Tuple[str, str]: ...

    def ask_secret_key(self) -> Tuple[str, str]: ...

    def confirm_continue_with_balance(self, alias: str, balance: Decimal) -> bool: ...

    def ask_fund_option(self, balance: Decimal) -> str: ...

    def ask_faucet_amount(self, minimum: Decimal) -> Decimal: ...

    def confirm_retry_registration(self, alias: str, address: str) -> bool: ...

    def confirm_service_setup(self, service_name: str) -> bool: ...

    def confirm_baker_service(self, service_name: str) -> bool: ...

    def ask_node_data_dir(self, default: str) -> str: ...

    def ask_key_password(self, alias: str) -> str: ...
