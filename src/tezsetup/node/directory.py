# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/node/directory.py

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Iterable

from tezsetup.errors import DirectoryError, ProvisioningAborted
from tezsetup.workflow.interface import Prompter

log = logging.getLogger("tezsetup")

# Everything `octez-node config init` / `run` leaves behind, minus identity.json.
NODE_STATE_PATHS = ("context", "daily_logs", "lock", "store", "version.json", "config.json")

# Chain state only: config.json and identity.json survive so the imported
# snapshot keeps the configured network and the generated identity.
IMPORT_CLEANUP_PATHS = ("context", "daily_logs", "lock", "store")


def clean_node_data(data_dir: Path, names: Iterable[str]) -> list[Path]:
    """
    Remove the listed entries under *data_dir*. The directory itself stays.
    Returns the paths actually removed.
    """
    removed: list[Path] = []
    for name in names:
        p = Path(data_dir) / name
        if p.is_dir() and not p.is_symlink():
            shutil.rmtree(p)
        elif p.exists() or p.is_symlink():
            p.unlink()
        else:
            continue
        log.debug("[cleanup] removed %s", p)
        removed.append(p)
    return removed


def chown_tree(path: Path, user: str) -> None:
    shutil.chown(path, user=user, group=user)
    for root, dirs, files in os.walk(path):
        for name in dirs + files:
            shutil.chown(os.path.join(root, name), user=user, group=user)


class DirectoryProvisioner:
    """
    Produces a data directory that is either freshly created or was
    explicitly wiped by the operator. Never merges with stale content.
    """

    def __init__(
        self,
        prompter: Prompter,
        *,
        user: str,
        default_parent: Path,
        default_name: str = "tezos-node",
        chown: Callable[[Path, str], None] = chown_tree,
    ):
        self.prompter = prompter
        self.user = user
        self.default_parent = Path(default_parent)
        self.default_name = default_name
        self.chown = chown
        self.attempts = 0
        self.deletions = 0

    def _remove(self, path: Path) -> None:
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise DirectoryError(
                f"Failed to remove existing directory {path}: {e}. "
                "Remove it manually and rerun."
            ) from e
        self.deletions += 1
        log.info("[directory] Removed %s", path)

    def provision(self) -> Path:
        while True:
            self.attempts += 1
            name, parent = self.prompter.ask_directory_location(
                self.default_name, str(self.default_parent)
            )
            data_dir = Path(parent).expanduser() / name

            if data_dir.exists():
                if self.prompter.confirm_directory_deletion(str(data_dir)):
                    self._remove(data_dir)
                else:
                    log.info("[directory] Keeping existing %s", data_dir)
                    if not self.prompter.choose_different_directory():
                        raise ProvisioningAborted("Operation cancelled by operator.")
                    continue

            try:
                data_dir.mkdir(parents=True, exist_ok=False)
                self.chown(data_dir, self.user)
            except (OSError, LookupError) as e:
                raise DirectoryError(f"Failed to create {data_dir}: {e}") from e

            log.info("[directory] Using %s (owner %s)", data_dir, self.user)
            return data_dir
