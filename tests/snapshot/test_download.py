from pathlib import Path

import pytest
import requests

from tezsetup.errors import SnapshotDownloadError
from tezsetup.snapshot.download import download_file, format_size_gb, snapshot_sizes, snapshot_url

# ----------------- Fakes -----------------

class FakeResponse:
    def __init__(self, chunks=(), headers=None, status_code=200):
        self.chunks = list(chunks)
        self.headers = headers or {}
        self.status_code = status_code
        self.closed = False

    def __enter__(self): return self
    def __exit__(self, *exc): self.closed = True

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")

    def iter_content(self, chunk_size=None):
        yield from self.chunks


class FakeSession:
    def __init__(self, get=None, head=None):
        self._get = get
        self._head = head or {}
        self.calls = []

    def get(self, url, stream=False, timeout=None):
        self.calls.append(("get", url, stream))
        return self._get

    def head(self, url, allow_redirects=False, timeout=None):
        self.calls.append(("head", url, allow_redirects))
        result = self._head[url]
        if isinstance(result, Exception):
            raise result
        return result

# ----------------- Tests -----------------

def test_streams_to_disk_and_reports_progress(tmp_path: Path):
    resp = FakeResponse([b"abc", b"", b"defg"], headers={"content-length": "7"})
    seen = []
    dest = tmp_path / "snapshot"

    n = download_file("https://x/ghostnet/rolling", dest, session=FakeSession(get=resp),
                      on_progress=lambda got, total: seen.append((got, total)))

    assert n == 7
    assert dest.read_bytes() == b"abcdefg"
    assert seen == [(3, 7), (7, 7)]
    assert resp.closed


def test_unknown_length_reports_indeterminate_total(tmp_path: Path):
    seen = []
    download_file("https://x/a", tmp_path / "s", session=FakeSession(get=FakeResponse([b"12"])),
                  on_progress=lambda got, total: seen.append((got, total)))
    assert seen == [(2, None)]


def test_http_error_becomes_download_error(tmp_path: Path):
    session = FakeSession(get=FakeResponse(status_code=404))
    with pytest.raises(SnapshotDownloadError) as ei:
        download_file("https://x/missing", tmp_path / "s", session=session, on_progress=lambda *a: None)
    assert ei.value.stage == "snapshot"


def test_unwritable_destination_becomes_download_error(tmp_path: Path):
    session = FakeSession(get=FakeResponse([b"x"], headers={"content-length": "1"}))
    with pytest.raises(SnapshotDownloadError):
        download_file("https://x/a", tmp_path / "no" / "such" / "dir", session=session, on_progress=lambda *a: None)


def test_snapshot_sizes_tolerates_failed_lookups():
    base = "https://snapshots.example"
    session = FakeSession(head={
        f"{base}/mainnet/full": FakeResponse(headers={"content-length": str(80 * 1024 ** 3)}),
        f"{base}/mainnet/rolling": requests.ConnectionError("down"),
    })

    sizes = snapshot_sizes(base, "mainnet", session=session)

    assert sizes == {"full": 80 * 1024 ** 3, "rolling": None}
    assert all(call[2] for call in session.calls)  # redirects followed


def test_url_and_size_helpers():
    assert snapshot_url("https://snapshots.eu.tzinit.org/", "ghostnet", "full") == \
        "https://snapshots.eu.tzinit.org/ghostnet/full"
    assert format_size_gb(3 * 1024 ** 3) == "3.00"
    assert format_size_gb(None) == "unknown"
