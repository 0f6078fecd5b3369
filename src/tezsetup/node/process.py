# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/node/process.py

from __future__ import annotations

import asyncio
import logging
import signal
from contextlib import asynccontextmanager
from typing import AsyncIterator, Sequence

from tezsetup.utils.retry import Sleep

log = logging.getLogger("tezsetup")


async def stop_process(proc, *, stop_timeout: float) -> None:
    """SIGINT, wait up to *stop_timeout*, then SIGKILL."""
    if proc.returncode is not None:
        return
    try:
        proc.send_signal(signal.SIGINT)
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(proc.wait(), timeout=stop_timeout)
    except asyncio.TimeoutError:
        log.warning("[node] pid %s ignored SIGINT for %ss, killing", proc.pid, stop_timeout)
        proc.kill()
        await proc.wait()


@asynccontextmanager
async def node_process(
    runner,
    argv: Sequence[str],
    *,
    settle_delay: float,
    stop_timeout: float = 30.0,
    sleep: Sleep = asyncio.sleep,
) -> AsyncIterator[object]:
    """
    Background node process scoped to the ``async with`` block. Whatever
    happens inside the block, the process is interrupted, reaped, and the
    settle delay elapses before control returns.
    """
    proc = await runner.spawn(argv)
    log.debug("[node] started pid %s", proc.pid)
    try:
        yield proc
    finally:
        await stop_process(proc, stop_timeout=stop_timeout)
        await sleep(settle_delay)
        log.debug("[node] pid %s stopped (rc=%s)", proc.pid, proc.returncode)
