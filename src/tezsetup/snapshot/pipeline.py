# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/snapshot/pipeline.py

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable

from tezsetup.errors import CommandError, SnapshotImportError
from tezsetup.node.directory import IMPORT_CLEANUP_PATHS, clean_node_data
from tezsetup.node.models import HistoryMode, Network, NodeInstance, SnapshotArtifact
from tezsetup.snapshot.download import DEFAULT_SNAPSHOT_BASE_URL, download_file, snapshot_url

log = logging.getLogger("tezsetup")

DEFAULT_STAGING_PATH = Path("/tmp/snapshot")


class SnapshotPipeline:
    """
    clean chain state -> download to staging path -> octez-node snapshot import

    fast=True skips the integrity checks (--no-check). Import failures are
    not retried: the staged file would fail the same way again.
    """

    def __init__(
        self,
        node,
        *,
        base_url: str = DEFAULT_SNAPSHOT_BASE_URL,
        staging_path: Path = DEFAULT_STAGING_PATH,
        fetch: Callable[[str, Path], int] = download_file,
    ):
        self.node = node
        self.base_url = base_url
        self.staging_path = Path(staging_path)
        self.fetch = fetch

    async def run(self, instance: NodeInstance, *, fast: bool) -> SnapshotArtifact:
        network = Network(instance.network)
        mode = HistoryMode(instance.history_mode)
        data_dir = Path(instance.data_dir)

        log.info("[snapshot] Cleaning files before snapshot import...")
        clean_node_data(data_dir, IMPORT_CLEANUP_PATHS)

        url = snapshot_url(self.base_url, network.value, mode.value)
        try:
            size = await asyncio.to_thread(self.fetch, url, self.staging_path)
            artifact = SnapshotArtifact(
                network=network,
                history_mode=mode,
                size_bytes=size,
                local_path=self.staging_path,
            )

            log.info("[snapshot] Importing snapshot (%s mode)...", "fast" if fast else "safe")
            try:
                await self.node.snapshot_import(self.staging_path, data_dir, no_check=fast)
            except CommandError as e:
                raise SnapshotImportError(f"Snapshot import failed: {e}") from e
        finally:
            self.staging_path.unlink(missing_ok=True)

        log.info("[snapshot] Snapshot imported into %s", data_dir)
        return artifact
