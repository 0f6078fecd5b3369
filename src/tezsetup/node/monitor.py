# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/node/monitor.py

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

import requests

from tezsetup.errors import BootstrapError, ProtocolLookupError
from tezsetup.utils.retry import Sleep

log = logging.getLogger("tezsetup")

BOOTSTRAP_RETRY_DELAY = 10.0
RPC_TIMEOUT = 10


class BootstrapStatus(str, Enum):
    BOOTSTRAPPED = "bootstrapped"
    NOT_YET = "not_yet"
    ERROR = "error"


class RpcBootstrapQuery:
    """
    GET /chains/main/is_bootstrapped

    A refused or timed-out connection counts as NOT_YET: the service
    was just (re)started and may not listen or answer yet. A "stuck" chain,
    an HTTP error status or an unreadable body is ERROR.
    """

    def __init__(self, endpoint: str, *, session=None):
        self.endpoint = endpoint.rstrip("/")
        self.http = session or requests
        self.last_detail: Optional[str] = None

    def _query(self) -> BootstrapStatus:
        url = f"{self.endpoint}/chains/main/is_bootstrapped"
        try:
            r = self.http.get(url, timeout=RPC_TIMEOUT)
        except (requests.ConnectionError, requests.Timeout) as e:
            self.last_detail = f"node RPC not reachable yet ({e.__class__.__name__})"
            return BootstrapStatus.NOT_YET
        except requests.RequestException as e:
            self.last_detail = str(e)
            return BootstrapStatus.ERROR

        if r.status_code != 200:
            self.last_detail = f"HTTP {r.status_code}: {r.text.strip()[:200]}"
            return BootstrapStatus.ERROR
        try:
            body = r.json()
            bootstrapped = bool(body["bootstrapped"])
            sync_state = body.get("sync_state")
        except (ValueError, KeyError, TypeError, AttributeError):
            self.last_detail = f"unexpected response: {r.text.strip()[:200]}"
            return BootstrapStatus.ERROR

        self.last_detail = f"sync_state={sync_state}"
        if bootstrapped:
            return BootstrapStatus.BOOTSTRAPPED
        if sync_state == "stuck":
            return BootstrapStatus.ERROR
        return BootstrapStatus.NOT_YET

    async def __call__(self) -> BootstrapStatus:
        return await asyncio.to_thread(self._query)


class BootstrapMonitor:
    def __init__(
        self,
        query: Callable[[], Awaitable[BootstrapStatus]],
        *,
        retry_delay: float = BOOTSTRAP_RETRY_DELAY,
        sleep: Sleep = asyncio.sleep,
    ):
        self.query = query
        self.retry_delay = retry_delay
        self.sleep = sleep
        self.queries = 0
        self.retries = 0

    async def wait_until_bootstrapped(self) -> None:
        log.info("[bootstrap] Checking if node is bootstrapped...")
        while True:
            self.queries += 1
            status = await self.query()
            if status is BootstrapStatus.BOOTSTRAPPED:
                log.info("[bootstrap] Node is bootstrapped.")
                return
            detail = getattr(self.query, "last_detail", None)
            if status is BootstrapStatus.NOT_YET:
                log.info(
                    "[bootstrap] Node is not yet bootstrapped%s. Waiting %ss...",
                    f" ({detail})" if detail else "", self.retry_delay,
                )
                self.retries += 1
                await self.sleep(self.retry_delay)
                continue
            raise BootstrapError(
                f"Node reported an unexpected bootstrap status{': ' + detail if detail else ''}. "
                "Check the node configuration."
            )


def current_protocol(endpoint: str, *, session=None) -> str:
    """Protocol hash of the current head. One request, no retry."""
    http = session or requests
    url = f"{endpoint.rstrip('/')}/chains/main/blocks/head"
    try:
        r = http.get(url, timeout=RPC_TIMEOUT)
        r.raise_for_status()
        return r.json()["protocol"]
    except requests.RequestException as e:
        raise ProtocolLookupError(f"Failed to read head block from {url}: {e}") from e
    except (ValueError, KeyError, TypeError) as e:
        raise ProtocolLookupError(f"No protocol field in head block from {url}") from e
