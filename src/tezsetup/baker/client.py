# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/baker/client.py

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from tezsetup.baker.models import TEZ, KnownAddress
from tezsetup.errors import ClientError, CommandError, SetupError

log = logging.getLogger("tezsetup")

_TESTNET_BANNER = ("This is NOT the Tezos Mainnet", "Do NOT use your fundraiser keys")
_KNOWN_RE = re.compile(r"^\s*([^:\s][^:]*):\s*(tz[1-4][1-9A-HJ-NP-Za-km-z]{33})\s*(?:\((.*)\))?")
_HASH_RE = re.compile(r"Hash:\s*(tz[1-4][1-9A-HJ-NP-Za-km-z]{33})")


def strip_banner(output: str) -> str:
    """Drop the test network warning octez-client prints on every call."""
    lines = [ln for ln in output.splitlines() if not any(b in ln for b in _TESTNET_BANNER)]
    return "\n".join(lines)


class OctezClient:
    def __init__(self, runner, binary: str = "octez-client", endpoint: Optional[str] = None):
        self.runner = runner
        self.binary = binary
        self.endpoint = endpoint

    def _argv(self, *args: str) -> List[str]:
        base = [self.binary]
        if self.endpoint:
            base += ["--endpoint", self.endpoint]
        return base + list(args)

    async def _run(self, *args: str, secret: bool = False) -> str:
        try:
            result = await self.runner.run(self._argv(*args), secret=secret)
        except CommandError as e:
            # command words only: later args may hold key material
            what = " ".join(args[:2])
            detail = strip_banner(e.stderr or e.stdout).strip() or f"rc={e.returncode}"
            raise ClientError(f"octez-client {what} failed: {detail}") from e
        return strip_banner(result.stdout)

    async def config_update(self, endpoint: str) -> None:
        log.info("[baker] Updating octez-client configuration to use %s...", endpoint)
        self.endpoint = endpoint
        await self._run("config", "update")

    async def list_known_addresses(self) -> List[KnownAddress]:
        out = await self._run("list", "known", "addresses")
        known = []
        for line in out.splitlines():
            m = _KNOWN_RE.match(line)
            if m:
                known.append(KnownAddress(alias=m.group(1).strip(), address=m.group(2), detail=m.group(3) or ""))
        return known

    async def gen_keys(self, alias: str) -> None:
        log.info("[baker] Generating new key with alias %s...", alias)
        await self._run("gen", "keys", alias)

    async def show_address(self, alias: str) -> str:
        out = await self._run("show", "address", alias)
        m = _HASH_RE.search(out)
        if not m:
            raise SetupError(f"Could not read the address of {alias}", stage="baker")
        return m.group(1)

    async def get_balance(self, alias: str) -> Decimal:
        out = await self._run("get", "balance", "for", alias)
        line = next((ln for ln in out.splitlines() if TEZ in ln), None)
        try:
            return Decimal(line.strip().split()[0])
        except (AttributeError, IndexError, InvalidOperation) as e:
            raise SetupError(f"Invalid balance format for alias {alias}: {out.strip()!r}", stage="baker") from e

    async def import_secret_key(self, alias: str, key_uri: str, *, secret: bool = False) -> None:
        await self._run("import", "secret", "key", alias, key_uri, secret=secret)

    async def list_connected_ledgers(self) -> str:
        return await self._run("list", "connected", "ledgers")

    async def is_key_encrypted(self, alias: str) -> bool:
        for known in await self.list_known_addresses():
            if known.alias == alias:
                return known.encrypted
        return False

    async def setup_ledger_to_bake(self, alias: str) -> None:
        # attached: the operator confirms on the device
        await self.runner.run_attached(self._argv("setup", "ledger", "to", "bake", "for", alias))

    async def register_delegate(self, alias: str) -> None:
        # attached: encrypted keys prompt for their password
        await self.runner.run_attached(self._argv("register", "key", alias, "as", "delegate"))
