# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/service/systemd.py

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from tezsetup.errors import CommandError, ServiceError
from tezsetup.node.models import HistoryMode, Network, NodeInstance, node_service_name
from tezsetup.service.template_renderer import TemplateRenderer

log = logging.getLogger("tezsetup")

UNIT_TEMPLATE = "octez-node.service.j2"


class SystemdServiceRegistrar:
    """
    Installs /etc/systemd/system/<name>.service for the node and starts it.
    Needs sudo for the install and systemctl calls.
    """

    def __init__(
        self,
        runner,
        *,
        user: str,
        node_binary: str = "octez-node",
        unit_dir: Path = Path("/etc/systemd/system"),
        renderer: Optional[TemplateRenderer] = None,
    ):
        self.runner = runner
        self.user = user
        self.node_binary = node_binary
        self.unit_dir = Path(unit_dir)
        self.renderer = renderer or TemplateRenderer()

    def render_unit(self, instance: NodeInstance) -> str:
        return self.renderer.render(
            UNIT_TEMPLATE,
            {
                "user": self.user,
                "data_dir": str(instance.data_dir),
                "rpc_port": instance.rpc_port,
                "net_port": instance.net_port,
                "network": Network(instance.network).value,
                "history_mode": HistoryMode(instance.history_mode).value,
                # systemd wants an absolute ExecStart
                "node_binary": shutil.which(self.node_binary) or self.node_binary,
            },
        )

    async def _sudo(self, *args: str) -> None:
        await self.runner.run(["sudo", *args])

    async def install_unit(self, unit: str, service_name: str) -> None:
        unit_path = self.unit_dir / f"{service_name}.service"
        log.info("[service] Writing %s...", unit_path)

        with tempfile.NamedTemporaryFile("w", suffix=".service", delete=False) as tf:
            tf.write(unit)
            tmp_path = tf.name

        try:
            await self._sudo("install", "-m", "644", tmp_path, str(unit_path))
            await self._sudo("systemctl", "daemon-reload")
            await self._sudo("systemctl", "enable", service_name)
            await self._sudo("systemctl", "restart", service_name)
            result = await self.runner.run(["systemctl", "is-active", service_name], check=False)
        except CommandError as e:
            raise ServiceError(f"Error configuring service {service_name}: {e}") from e
        finally:
            Path(tmp_path).unlink(missing_ok=True)

        state = result.stdout.strip()
        if state != "active":
            raise ServiceError(f"The service {service_name} did not start correctly (state: {state or 'unknown'})")
        log.info("[service] The service %s started successfully.", service_name)

    async def register(self, instance: NodeInstance, service_name: str) -> None:
        await self.install_unit(self.render_unit(instance), service_name)


# ---------------------------------------------------------------------
# Baker daemon
# ---------------------------------------------------------------------
BAKER_UNIT_TEMPLATE = "octez-baker.service.j2"
BAKER_ARGS = ("--liquidity-baking-toggle-vote", "pass")


def baker_service_name(alias: str) -> str:
    return f"octez-baker-{alias}"


class BakerServiceRegistrar(SystemdServiceRegistrar):
    """
    Installs octez-baker-<alias>.service: ``octez-baker run with local node``
    against the node's data dir, ordered after the node's own unit.

    Encrypted keys get a --password-filename; the password file is kept
    (mode 600) because the daemon rereads it on every restart.
    """

    def __init__(
        self,
        runner,
        *,
        user: str,
        baker_binary: str = "octez-baker",
        baker_args: Sequence[str] = BAKER_ARGS,
        password_dir: Path = Path("~/.tezsetup/secrets"),
        unit_dir: Path = Path("/etc/systemd/system"),
        renderer: Optional[TemplateRenderer] = None,
    ):
        super().__init__(runner, user=user, unit_dir=unit_dir, renderer=renderer)
        self.baker_binary = baker_binary
        self.baker_args = list(baker_args)
        self.password_dir = Path(password_dir).expanduser()

    def render_baker_unit(
        self,
        alias: str,
        *,
        data_dir: Path,
        endpoint: str,
        password_file: Optional[Path] = None,
    ) -> str:
        return self.renderer.render(
            BAKER_UNIT_TEMPLATE,
            {
                "user": self.user,
                "alias": alias,
                "data_dir": str(data_dir),
                "endpoint": endpoint,
                "node_service": node_service_name(data_dir),
                "password_file": str(password_file) if password_file else None,
                "baker_args": self.baker_args,
                "baker_binary": shutil.which(self.baker_binary) or self.baker_binary,
            },
        )

    def write_password_file(self, alias: str, password: str) -> Path:
        self.password_dir.mkdir(parents=True, exist_ok=True, mode=0o700)
        path = self.password_dir / f"{alias}.password"
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(password)
        os.chmod(path, 0o600)
        return path

    async def register_baker(
        self,
        alias: str,
        *,
        data_dir: Path,
        endpoint: str,
        password: Optional[str] = None,
    ) -> str:
        service_name = baker_service_name(alias)
        password_file = None
        if password is not None:
            try:
                password_file = self.write_password_file(alias, password)
            except OSError as e:
                raise ServiceError(f"Could not write the password file for {alias}: {e}") from e
            log.info("[service] Key password for %s stored in %s", alias, password_file)

        unit = self.render_baker_unit(alias, data_dir=Path(data_dir), endpoint=endpoint, password_file=password_file)
        await self.install_unit(unit, service_name)
        return service_name
