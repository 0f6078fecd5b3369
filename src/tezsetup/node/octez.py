# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/node/octez.py

from __future__ import annotations

from pathlib import Path
from typing import List

from tezsetup.node.models import HistoryMode, Network


class OctezNode:
    """Thin argv builder / runner for the octez-node binary."""

    def __init__(self, runner, binary: str = "octez-node"):
        self.runner = runner
        self.binary = binary

    def config_init_argv(self, data_dir: Path, network: Network, mode: HistoryMode) -> List[str]:
        return [
            self.binary, "config", "init",
            "--data-dir", str(data_dir),
            f"--network={Network(network).value}",
            f"--history-mode={HistoryMode(mode).value}",
        ]

    def run_argv(self, data_dir: Path) -> List[str]:
        return [self.binary, "run", "--data-dir", str(data_dir)]

    def snapshot_import_argv(self, snapshot: Path, data_dir: Path, *, no_check: bool) -> List[str]:
        argv = [self.binary, "snapshot", "import", str(snapshot), "--data-dir", str(data_dir)]
        if no_check:
            argv.append("--no-check")
        return argv

    async def config_init(self, data_dir: Path, network: Network, mode: HistoryMode):
        return await self.runner.run(self.config_init_argv(data_dir, network, mode))

    async def snapshot_import(self, snapshot: Path, data_dir: Path, *, no_check: bool):
        return await self.runner.run(self.snapshot_import_argv(snapshot, data_dir, no_check=no_check))
