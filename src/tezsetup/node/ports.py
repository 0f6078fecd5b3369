# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/node/ports.py

from __future__ import annotations

import asyncio
import errno
import logging
import socket
from typing import Awaitable, Callable

from tezsetup.errors import PortCheckError
from tezsetup.node.models import PortPair
from tezsetup.workflow.interface import Prompter

log = logging.getLogger("tezsetup")

PortCheck = Callable[[int], Awaitable[bool]]


def _bind_check(port: int, host: str) -> bool:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    # TIME_WAIT leftovers must not read as "in use"
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
        sock.listen(1)
    except OSError as e:
        if e.errno == errno.EADDRINUSE:
            return True
        raise PortCheckError(f"Unable to check port {port}: {e}") from e
    finally:
        sock.close()
    return False


async def is_port_in_use(port: int, host: str = "0.0.0.0") -> bool:
    """
    True when something already listens on *port*. Any bind error other
    than EADDRINUSE (permissions, bad address) is raised as PortCheckError.
    """
    return await asyncio.to_thread(_bind_check, int(port), host)


class PortNegotiator:
    """
    Asks for the RPC and P2P ports until both are free at the same time.
    A conflict on either port re-asks both.
    """

    def __init__(
        self,
        prompter: Prompter,
        *,
        default_rpc: int = 8732,
        default_net: int = 9732,
        check: PortCheck = is_port_in_use,
    ):
        self.prompter = prompter
        self.default_rpc = default_rpc
        self.default_net = default_net
        self.check = check
        self.rounds = 0

    async def negotiate(self) -> PortPair:
        while True:
            self.rounds += 1
            rpc, net = self.prompter.ask_ports(self.default_rpc, self.default_net)
            try:
                pair = PortPair(rpc_port=int(rpc), net_port=int(net))
            except ValueError as e:
                log.warning("[ports] %s. Please choose different ports.", e)
                continue

            log.info(
                "[ports] Checking if selected ports are in use: RPC %d, network %d...",
                pair.rpc_port, pair.net_port,
            )
            rpc_busy, net_busy = await asyncio.gather(
                self.check(pair.rpc_port), self.check(pair.net_port)
            )
            if rpc_busy or net_busy:
                busy = [str(p) for p, b in ((pair.rpc_port, rpc_busy), (pair.net_port, net_busy)) if b]
                log.warning(
                    "[ports] Port(s) %s already in use. Please choose different ports.",
                    ", ".join(busy),
                )
                continue
            return pair
