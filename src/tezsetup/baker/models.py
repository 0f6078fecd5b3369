# src/tezsetup/baker/models.py

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Union

MIN_BAKER_BALANCE = Decimal(6000)
TEZ = "ꜩ"


def format_balance(balance: Decimal) -> str:
    """Whole tez for display. Truncates, never rounds up."""
    return str(int(Decimal(balance)))


@dataclass
class BakerIdentity:
    alias: str
    address: str               # tz1/tz2/tz3/tz4
    balance: Decimal = Decimal(0)

    @property
    def display_balance(self) -> str:
        return f"{format_balance(self.balance)} {TEZ}"


@dataclass(frozen=True)
class KnownAddress:
    alias: str
    address: str
    detail: str = ""           # e.g. "unencrypted sk known"

    @property
    def encrypted(self) -> bool:
        return "encrypted sk" in self.detail and "unencrypted" not in self.detail


# ---------------------------------------------------------------------
# Key acquisition: one variant per way of getting a baking key
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class UseExistingKey:
    alias: str

@dataclass(frozen=True)
class GenerateKey:
    alias: str = "baker_key"

@dataclass(frozen=True)
class ImportLedgerKey:
    alias: str
    ledger_path: str           # e.g. ledger://0 or ledger://<animals>/ed25519/0h/0h

@dataclass(frozen=True)
class ImportSecretKey:
    alias: str
    secret_key: str

    def __repr__(self) -> str:
        return f"ImportSecretKey(alias={self.alias!r}, secret_key=<redacted>)"


KeyChoice = Union[UseExistingKey, GenerateKey, ImportLedgerKey, ImportSecretKey]


# ---------------------------------------------------------------------
# Funding
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class SelfFund:
    pass

@dataclass(frozen=True)
class FaucetFund:
    amount: Decimal


FundingOption = Union[SelfFund, FaucetFund]
