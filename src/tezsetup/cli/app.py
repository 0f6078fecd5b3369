# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/cli/app.py
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer

from tezsetup.baker.activator import BakerActivator
from tezsetup.baker.client import OctezClient
from tezsetup.cli.prompts import SETUP_BAKER, SETUP_NODE_AND_BAKER, TyperPrompter
from tezsetup.config.loader import load_config
from tezsetup.config.models import SetupConfig
from tezsetup.errors import ProvisioningAborted, SetupError
from tezsetup.logging.log import init_logging
from tezsetup.node.directory import DirectoryProvisioner
from tezsetup.node.identity import IdentityBootstrapper
from tezsetup.node.models import HistoryMode, Network
from tezsetup.node.monitor import BootstrapMonitor, RpcBootstrapQuery
from tezsetup.node.octez import OctezNode
from tezsetup.node.ports import PortNegotiator
from tezsetup.observers.dispatcher import EventBus
from tezsetup.observers.events import new_ctx
from tezsetup.observers.jsonfile import JsonFileObserver
from tezsetup.observers.logger import LoggerObserver
from tezsetup.service.systemd import BakerServiceRegistrar, SystemdServiceRegistrar
from tezsetup.snapshot.download import format_size_gb, snapshot_sizes
from tezsetup.snapshot.pipeline import SnapshotPipeline
from tezsetup.utils.execution import CommandRunner, require_binaries
from tezsetup.workflow.baker import BakerWorkflow
from tezsetup.workflow.interface import Prompter
from tezsetup.workflow.provision import ProvisioningResult, ProvisioningWorkflow


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Tezos node and baker provisioning CLI")


# ------------------------------------------------------------------------------
# Wiring
# ------------------------------------------------------------------------------

def _monitor_factory(cfg: SetupConfig):
    def build(endpoint: str) -> BootstrapMonitor:
        return BootstrapMonitor(RpcBootstrapQuery(endpoint), retry_delay=cfg.timings.bootstrap_retry_delay)
    return build


def build_baker_workflow(
    cfg: SetupConfig,
    prompter: Prompter,
    *,
    runner: CommandRunner,
    bus: EventBus,
    run_ctx: dict,
) -> BakerWorkflow:
    client = OctezClient(runner, binary=cfg.client_binary)
    activator = BakerActivator(
        client,
        runner=runner,
        min_balance=cfg.min_baker_balance,
        poll_interval=cfg.timings.balance_poll_interval,
        faucet_command=cfg.faucet_command,
    )
    return BakerWorkflow(
        prompter,
        activator,
        monitor_factory=_monitor_factory(cfg),
        service=BakerServiceRegistrar(
            runner,
            user=cfg.user,
            baker_binary=cfg.baker_binary,
            baker_args=cfg.baker_args,
            password_dir=cfg.password_dir,
            unit_dir=cfg.unit_dir,
        ),
        default_data_dir=cfg.base_dir / cfg.default_dir_name,
        bus=bus,
        run_ctx=run_ctx,
    )


def build_install_workflow(
    cfg: SetupConfig,
    prompter: Prompter,
    *,
    runner: CommandRunner,
    bus: EventBus,
    run_ctx: dict,
    on_complete=None,
) -> ProvisioningWorkflow:
    t = cfg.timings
    node = OctezNode(runner, binary=cfg.node_binary)
    return ProvisioningWorkflow(
        prompter,
        directory=DirectoryProvisioner(
            prompter,
            user=cfg.user,
            default_parent=cfg.base_dir,
            default_name=cfg.default_dir_name,
        ),
        ports=PortNegotiator(prompter, default_rpc=cfg.rpc_port, default_net=cfg.net_port),
        identity=IdentityBootstrapper(
            node,
            poll_interval=t.identity_poll_interval,
            max_attempts=t.identity_max_attempts,
            settle_delay=t.node_settle_delay,
            stop_timeout=t.node_stop_timeout,
            bus=bus,
            run_ctx=run_ctx,
        ),
        snapshot=SnapshotPipeline(
            node,
            base_url=cfg.snapshot_base_url,
            staging_path=cfg.snapshot_staging_path,
        ),
        service=SystemdServiceRegistrar(
            runner,
            user=cfg.user,
            node_binary=cfg.node_binary,
            unit_dir=cfg.unit_dir,
        ),
        monitor_factory=_monitor_factory(cfg),
        sizes_lookup=lambda network: snapshot_sizes(cfg.snapshot_base_url, network),
        baker=build_baker_workflow(cfg, prompter, runner=runner, bus=bus, run_ctx=run_ctx),
        bus=bus,
        run_ctx=run_ctx,
        on_complete=on_complete,
    )


def _start(config: Optional[Path], debug: bool):
    try:
        cfg = load_config(config)
    except (OSError, ValueError) as e:
        raise typer.BadParameter(str(e), param_hint="--config")

    logger, run_id, log_path = init_logging(base_dir=cfg.log_dir, verbose=debug)
    bus = EventBus(observers=[
        LoggerObserver(logger),
        JsonFileObserver(cfg.log_dir / f"{run_id}.jsonl"),
    ])
    run_ctx = new_ctx(network=None, endpoint=None, run_id=run_id)

    typer.echo("")
    typer.secho("tezsetup started", bold=True)
    typer.echo(f"  Run ID   : {run_id}")
    typer.echo(f"  Logs     : {log_path}")
    typer.echo("")
    return cfg, logger, bus, run_ctx


def _print_result(result: ProvisioningResult) -> None:
    node = result.node
    typer.echo("")
    typer.secho("Node ready", bold=True)
    typer.echo(f"  Data dir : {node.data_dir}")
    typer.echo(f"  Network  : {node.network.value} ({node.history_mode.value})")
    typer.echo(f"  RPC      : {node.rpc_endpoint}")
    typer.echo(f"  P2P port : {node.net_port}")
    typer.echo(f"  Protocol : {node.protocol_hash or 'unknown'}")
    if result.baker:
        typer.echo(f"  Baker    : {result.baker.alias} {result.baker.address} ({result.baker.display_balance})")


def _run(logger, coro):
    try:
        return asyncio.run(coro)
    except ProvisioningAborted as e:
        logger.info("[abort] %s", e)
        raise typer.Exit(0)
    except SetupError as e:
        logger.error("[%s] %s", e.stage, e)
        logger.debug("failure detail", exc_info=True)
        raise typer.Exit(1)


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def install(
    network: Optional[Network] = typer.Option(None, "--network", help="mainnet or ghostnet (asked if omitted)"),
    history_mode: Optional[HistoryMode] = typer.Option(None, "--history-mode", help="full or rolling (asked if omitted)"),
    with_baker: Optional[bool] = typer.Option(
        None,
        "--with-baker/--node-only",
        help="Also set up a baker once the node is synchronized (asked if omitted)",
    ),
    config: Optional[Path] = typer.Option(None, "--config", help="tezsetup YAML config"),
    debug: bool = typer.Option(False, "--debug"),
):
    """Provision a node end-to-end: directory, ports, identity, snapshot, service, bootstrap."""
    cfg, logger, bus, run_ctx = _start(config, debug)
    prompter = TyperPrompter()
    runner = CommandRunner()

    try:
        require_binaries([cfg.node_binary, cfg.client_binary])
    except SetupError as e:
        logger.error("[%s] %s", e.stage, e)
        raise typer.Exit(1)

    if with_baker is None:
        setup_type = prompter.ask_setup_type()
        if setup_type == SETUP_BAKER:
            rpc_port = typer.prompt("RPC port of the existing node", default=cfg.rpc_port, type=int)
            net = network or prompter.ask_network()
            _run_baker(cfg, logger, bus, run_ctx, prompter, runner, rpc_port, net)
            return
        with_baker = setup_type == SETUP_NODE_AND_BAKER

    workflow = build_install_workflow(
        cfg, prompter, runner=runner, bus=bus, run_ctx=run_ctx, on_complete=_print_result
    )
    _run(logger, workflow.run(network=network, history_mode=history_mode, with_baker=with_baker))
    typer.echo("Installation completed.")


def _run_baker(
    cfg, logger, bus, run_ctx, prompter, runner, rpc_port: int, network: Network, data_dir: Optional[Path] = None
) -> None:
    endpoint = f"http://127.0.0.1:{rpc_port}"
    run_ctx.update(network=Network(network).value, endpoint=endpoint)
    workflow = build_baker_workflow(cfg, prompter, runner=runner, bus=bus, run_ctx=run_ctx)
    identity = _run(logger, workflow.run(endpoint, network, data_dir=data_dir))
    if identity:
        typer.echo(f"Baker {identity.alias} ({identity.address}) registered with {identity.display_balance}.")


@app.command()
def baker(
    rpc_port: int = typer.Option(8732, "--rpc-port", min=1, max=65535, help="RPC port of the running node"),
    network: Optional[Network] = typer.Option(None, "--network", help="mainnet or ghostnet (asked if omitted)"),
    data_dir: Optional[Path] = typer.Option(
        None, "--data-dir", help="Data directory of the running node, for the baker service (asked if omitted)"
    ),
    config: Optional[Path] = typer.Option(None, "--config", help="tezsetup YAML config"),
    debug: bool = typer.Option(False, "--debug"),
):
    """Set up a baker on an already running node."""
    cfg, logger, bus, run_ctx = _start(config, debug)
    prompter = TyperPrompter()
    runner = CommandRunner()

    try:
        require_binaries([cfg.client_binary])
    except SetupError as e:
        logger.error("[%s] %s", e.stage, e)
        raise typer.Exit(1)

    _run_baker(cfg, logger, bus, run_ctx, prompter, runner, rpc_port, network or prompter.ask_network(), data_dir)


@app.command("snapshot-sizes")
def snapshot_sizes_cmd(
    network: Network = typer.Option(Network.GHOSTNET, "--network"),
    config: Optional[Path] = typer.Option(None, "--config", help="tezsetup YAML config"),
):
    """Show the size of the full and rolling snapshots for a network."""
    try:
        cfg = load_config(config)
    except (OSError, ValueError) as e:
        raise typer.BadParameter(str(e), param_hint="--config")

    sizes = snapshot_sizes(cfg.snapshot_base_url, network.value)
    for mode in HistoryMode:
        typer.echo(f"{network.value}/{mode.value}: {format_size_gb(sizes.get(mode.value))} GB")


if __name__ == "__main__":
    app()
