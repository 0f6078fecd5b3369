# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations
from pathlib import Path
from typing import Optional, Protocol

from tezsetup.node.models import NodeInstance


class ServiceRegistrar(Protocol):
    """Turns a provisioned node into a supervised, auto-restarting service."""

    async def register(self, instance: NodeInstance, service_name: str) -> None: ...


class BakerServiceInstaller(Protocol):
    """Runs the baking daemon for a registered delegate. Returns the unit name."""

    async def register_baker(
        self,
        alias: str,
        *,
        data_dir: Path,
        endpoint: str,
        password: Optional[str] = None,
    ) -> str: ...
