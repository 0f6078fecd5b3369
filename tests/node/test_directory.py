from pathlib import Path

import pytest

import tezsetup.node.directory as directory_mod
from tezsetup.errors import DirectoryError, ProvisioningAborted
from tezsetup.node.directory import (
    IMPORT_CLEANUP_PATHS,
    NODE_STATE_PATHS,
    DirectoryProvisioner,
    clean_node_data,
)

# ----------------- Fakes -----------------

class FakePrompter:
    def __init__(self, locations, deletions=(), different=()):
        self.locations = list(locations)
        self.deletions = list(deletions)
        self.different = list(different)
        self.asked = []

    def ask_directory_location(self, default_name, default_parent):
        self.asked.append((default_name, default_parent))
        return self.locations.pop(0)

    def confirm_directory_deletion(self, path):
        return self.deletions.pop(0)

    def choose_different_directory(self):
        return self.different.pop(0)


class ChownLog:
    def __init__(self): self.calls = []
    def __call__(self, path, user): self.calls.append((Path(path), user))


def _provisioner(prompter, parent, chown=None):
    return DirectoryProvisioner(
        prompter, user="tezos", default_parent=parent, default_name="tezos-node", chown=chown or ChownLog()
    )

# ----------------- Tests -----------------

def test_fresh_directory_is_created_and_chowned(tmp_path: Path):
    chown = ChownLog()
    prompter = FakePrompter([("tezos-node", str(tmp_path))])
    prov = _provisioner(prompter, tmp_path, chown)

    data_dir = prov.provision()

    assert data_dir == tmp_path / "tezos-node"
    assert data_dir.is_dir()
    assert chown.calls == [(data_dir, "tezos")]
    assert prov.attempts == 1 and prov.deletions == 0
    assert prompter.asked == [("tezos-node", str(tmp_path))]


def test_existing_directory_is_wiped_when_confirmed(tmp_path: Path):
    stale = tmp_path / "node"
    (stale / "store").mkdir(parents=True)
    (stale / "identity.json").write_text("{}")

    prov = _provisioner(FakePrompter([("node", str(tmp_path))], deletions=[True]), tmp_path)
    data_dir = prov.provision()

    assert data_dir == stale and data_dir.is_dir()
    assert list(data_dir.iterdir()) == []
    assert prov.deletions == 1


def test_declined_deletion_asks_for_another_directory(tmp_path: Path):
    existing = tmp_path / "old"
    existing.mkdir()
    (existing / "keep.txt").write_text("data")
    prompter = FakePrompter(
        [("old", str(tmp_path)), ("new", str(tmp_path))], deletions=[False], different=[True]
    )

    prov = _provisioner(prompter, tmp_path)
    data_dir = prov.provision()

    assert data_dir == tmp_path / "new"
    assert (existing / "keep.txt").read_text() == "data"
    assert prov.attempts == 2 and prov.deletions == 0


def test_declining_everything_aborts_without_touching_disk(tmp_path: Path):
    existing = tmp_path / "old"
    existing.mkdir()
    prompter = FakePrompter([("old", str(tmp_path))], deletions=[False], different=[False])

    with pytest.raises(ProvisioningAborted):
        _provisioner(prompter, tmp_path).provision()
    assert existing.is_dir()


def test_failed_removal_is_fatal(monkeypatch, tmp_path: Path):
    (tmp_path / "node").mkdir()

    def boom(path):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(directory_mod.shutil, "rmtree", boom)
    prov = _provisioner(FakePrompter([("node", str(tmp_path))], deletions=[True]), tmp_path)

    with pytest.raises(DirectoryError) as ei:
        prov.provision()
    assert ei.value.stage == "directory"
    assert prov.deletions == 0


def test_chown_failure_is_a_directory_error(tmp_path: Path):
    def bad_chown(path, user):
        raise LookupError(f"no such user: {user}")

    prov = _provisioner(FakePrompter([("node", str(tmp_path))]), tmp_path, chown=bad_chown)
    with pytest.raises(DirectoryError):
        prov.provision()


def test_clean_node_data_keeps_identity_and_parent(tmp_path: Path):
    for d in ("context", "store", "daily_logs"):
        (tmp_path / d).mkdir()
        (tmp_path / d / "blob").write_text("x")
    for f in ("lock", "version.json", "config.json", "identity.json"):
        (tmp_path / f).write_text("{}")

    removed = clean_node_data(tmp_path, NODE_STATE_PATHS)

    assert sorted(p.name for p in removed) == sorted(NODE_STATE_PATHS)
    assert sorted(p.name for p in tmp_path.iterdir()) == ["identity.json"]


def test_import_cleanup_preserves_config_and_identity(tmp_path: Path):
    (tmp_path / "store").mkdir()
    (tmp_path / "config.json").write_text("{}")
    (tmp_path / "identity.json").write_text("{}")

    clean_node_data(tmp_path, IMPORT_CLEANUP_PATHS)

    assert sorted(p.name for p in tmp_path.iterdir()) == ["config.json", "identity.json"]


def test_clean_node_data_ignores_missing_entries(tmp_path: Path):
    assert clean_node_data(tmp_path, NODE_STATE_PATHS) == []
    assert tmp_path.is_dir()
