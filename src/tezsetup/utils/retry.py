# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

Sleep = Callable[[float], Awaitable[None]]


class RetryError(RuntimeError):
    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


async def poll(
    check: Callable[[], Awaitable[bool]],
    *,
    interval: float,
    max_attempts: Optional[int] = None,
    sleep: Sleep = asyncio.sleep,
    on_wait: Callable[[int], None] | None = None,
) -> int:
    """
    Call *check* until it returns True, sleeping *interval* between calls.

    max_attempts: None means wait forever
    on_wait: callback(attempt) before each sleep, for liveness output

    Returns the number of checks made. Exceptions raised by *check* are
    not retried. No sleep happens after the final check.
    """
    attempt = 0
    while True:
        attempt += 1
        if await check():
            return attempt
        if max_attempts is not None and attempt >= max_attempts:
            raise RetryError(f"condition not met after {attempt} attempts", attempt)
        if on_wait:
            on_wait(attempt)
        await sleep(interval)
