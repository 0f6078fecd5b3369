# src/tezsetup/node/models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


def node_service_name(data_dir: Path) -> str:
    """systemd unit name of the node living in *data_dir*."""
    return f"octez-node-{Path(data_dir).name}"


class Network(str, Enum):
    MAINNET = "mainnet"
    GHOSTNET = "ghostnet"


class HistoryMode(str, Enum):
    FULL = "full"
    ROLLING = "rolling"


@dataclass(frozen=True)
class PortPair:
    """
    RPC + P2P ports for one node. Both must differ and be valid TCP ports.
    """
    rpc_port: int
    net_port: int

    def __post_init__(self):
        for name, port in (("rpc_port", self.rpc_port), ("net_port", self.net_port)):
            if not 0 < int(port) < 65536:
                raise ValueError(f"{name} out of range: {port}")
        if self.rpc_port == self.net_port:
            raise ValueError(f"RPC and network ports must differ (both {self.rpc_port})")


@dataclass
class NodeInstance:
    """
    The node being provisioned. protocol_hash is filled in once the
    bootstrap monitor has seen the node synchronized.
    """
    data_dir: Path
    rpc_port: int
    net_port: int
    network: Network
    history_mode: HistoryMode
    protocol_hash: Optional[str] = None

    @property
    def rpc_endpoint(self) -> str:
        return f"http://127.0.0.1:{self.rpc_port}"

    @property
    def service_name(self) -> str:
        return node_service_name(self.data_dir)


@dataclass(frozen=True)
class SnapshotArtifact:
    network: Network
    history_mode: HistoryMode
    size_bytes: Optional[int]
    local_path: Path
