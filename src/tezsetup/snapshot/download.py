# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/snapshot/download.py

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional

import requests
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from tezsetup.errors import SnapshotDownloadError

log = logging.getLogger("tezsetup")

DEFAULT_SNAPSHOT_BASE_URL = "https://snapshots.eu.tzinit.org"
CHUNK_SIZE = 1024 * 1024
# (connect, read) seconds; the read timeout is per chunk, not per file
HTTP_TIMEOUT = (15, 120)

ProgressCallback = Callable[[int, Optional[int]], None]


def snapshot_url(base_url: str, network: str, mode: str) -> str:
    return f"{base_url.rstrip('/')}/{network}/{mode}"


def _content_length(headers) -> Optional[int]:
    raw = headers.get("content-length")
    try:
        return int(raw) if raw is not None else None
    except ValueError:
        return None


@contextmanager
def _progress(total: Optional[int], on_progress: Optional[ProgressCallback]) -> Iterator[ProgressCallback]:
    if on_progress is not None:
        yield on_progress
        return

    # total=None renders an indeterminate (pulsing) bar
    with Progress(
        TextColumn("[bold blue]snapshot"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeRemainingColumn(),
    ) as progress:
        task = progress.add_task("download", total=total)
        yield lambda received, _total: progress.update(task, completed=received)


def download_file(
    url: str,
    dest: Path,
    *,
    session=None,
    chunk_size: int = CHUNK_SIZE,
    on_progress: Optional[ProgressCallback] = None,
) -> int:
    """
    Stream *url* into *dest*. Returns the number of bytes written.

    Progress is reported as (received, total); total is None when the
    server does not announce a Content-Length. Any transfer or write error
    is raised as SnapshotDownloadError.
    """
    http = session or requests
    dest = Path(dest)
    log.info("[snapshot] Downloading from %s to %s...", url, dest)

    received = 0
    try:
        with http.get(url, stream=True, timeout=HTTP_TIMEOUT) as r:
            r.raise_for_status()
            total = _content_length(r.headers)
            if total is None:
                log.info("[snapshot] Remote size unknown, progress is indeterminate")
            with _progress(total, on_progress) as advance, dest.open("wb") as f:
                for chunk in r.iter_content(chunk_size=chunk_size):
                    if not chunk:
                        continue
                    f.write(chunk)
                    received += len(chunk)
                    advance(received, total)
    except requests.RequestException as e:
        raise SnapshotDownloadError(f"Error while downloading {url}: {e}") from e
    except OSError as e:
        raise SnapshotDownloadError(f"Error while writing {dest}: {e}") from e

    log.info("[snapshot] Download finished: %s (%d bytes)", dest, received)
    return received


def snapshot_sizes(base_url: str, network: str, *, session=None) -> Dict[str, Optional[int]]:
    """
    HEAD both history modes for *network*. A failed lookup yields None for
    that mode; sizes are informational only.
    """
    http = session or requests
    sizes: Dict[str, Optional[int]] = {}
    for mode in ("full", "rolling"):
        url = snapshot_url(base_url, network, mode)
        try:
            r = http.head(url, allow_redirects=True, timeout=HTTP_TIMEOUT)
            r.raise_for_status()
            sizes[mode] = _content_length(r.headers)
        except requests.RequestException as e:
            log.warning("[snapshot] Error retrieving snapshot size for %s/%s: %s", network, mode, e)
            sizes[mode] = None
    return sizes


def format_size_gb(size: Optional[int]) -> str:
    if size is None:
        return "unknown"
    return f"{size / 1024 ** 3:.2f}"
