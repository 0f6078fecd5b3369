# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/utils/execution.py

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence

from tezsetup.errors import CommandError, MissingBinaryError

log = logging.getLogger("tezsetup")


@dataclass(frozen=True)
class CommandResult:
    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """
    Runs octez binaries (and friends) as asyncio subprocesses.

    run()          -> captured output, raises CommandError on rc != 0 if check
    run_attached() -> inherits the terminal (ledger confirmations, faucet)
    spawn()        -> long-lived background process, caller owns it
    """

    def __init__(self, *, env: Optional[Mapping[str, str]] = None):
        self.env = dict(env) if env is not None else None

    def _show(self, argv: Sequence[str], secret: bool) -> str:
        if secret:
            return f"{argv[0]} <redacted>"
        return " ".join(argv)

    async def run(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        secret: bool = False,
    ) -> CommandResult:
        log.debug("$ %s", self._show(argv, secret))
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=self.env,
        )
        out, err = await proc.communicate()
        result = CommandResult(
            argv=list(argv),
            returncode=proc.returncode,
            stdout=out.decode("utf-8", errors="replace"),
            stderr=err.decode("utf-8", errors="replace"),
        )
        if check and not result.ok:
            shown = [self._show(argv, secret)] if secret else list(argv)
            raise CommandError(shown, result.returncode, result.stdout, result.stderr)
        return result

    async def run_attached(self, argv: Sequence[str], *, check: bool = True) -> int:
        log.debug("$ %s (attached)", " ".join(argv))
        proc = await asyncio.create_subprocess_exec(*argv, env=self.env)
        rc = await proc.wait()
        if check and rc != 0:
            raise CommandError(argv, rc)
        return rc

    async def spawn(self, argv: Sequence[str]) -> asyncio.subprocess.Process:
        log.debug("$ %s &", " ".join(argv))
        return await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
            env=self.env,
        )


def require_binaries(names: Iterable[str]) -> None:
    """Fail fast when the installer did not put the octez tools on PATH."""
    missing = [n for n in names if shutil.which(n) is None]
    if missing:
        raise MissingBinaryError(
            f"Required executables not found on PATH: {', '.join(missing)}. "
            "Install the octez packages for this host first."
        )
