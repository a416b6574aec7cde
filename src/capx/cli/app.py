# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/capx/cli/app.py
import json
import sys
from contextlib import contextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import typer

from capx.config.loader import ConfigError, load_config
from capx.config.models import NodeSpec, ProviderConfig
from capx.logging.log import init_logging
from capx.nodes.factory import open_node
from capx.observers.interface import Observer
from capx.observers.logger import ConsoleObserver, LoggerObserver
from capx.providers.aws import AWSProvider
from capx.providers.base import CloudProvider
from capx.providers.errors import ProviderError
from capx.providers.registry import get_provider


app = typer.Typer(help="capx cloud provider CLI")

_SENSITIVE_MARKERS = ("SECRET", "ACCESS_KEY", "CREDENTIALS", "TOKEN")

ConfigOpt = typer.Option(..., "--config", "-f", help="Provider config YAML")
DebugOpt = typer.Option(False, "--debug", help="Verbose console logging")
LogDirOpt = typer.Option(None, "--log-dir", envvar="CAPX_LOG_DIR", help="Directory for run logs")


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

def _mask(assignment: str) -> str:
    key, _, value = assignment.partition("=")
    if value and any(m in key for m in _SENSITIVE_MARKERS):
        return f"{key}=****"
    return assignment


def _fail(exc: Exception) -> None:
    typer.echo(f"error: {exc}", err=True)
    raise typer.Exit(1)


def _open_session(config: Path, debug: bool, log_dir: Optional[Path]) -> tuple[ProviderConfig, CloudProvider]:
    """Load config, set up logging and return a provider ready for use."""
    logger, run_id, log_path = init_logging(base_dir=log_dir, verbose=debug)
    try:
        cfg = load_config(config)
        observers: list[Observer] = [LoggerObserver(logger)]
        if debug:
            observers.append(ConsoleObserver(stream=sys.stderr))
        kwargs = {}
        if cfg.provider == "aws":
            kwargs = {
                "api_timeout": cfg.timeouts.api_seconds,
                "command_timeout": cfg.timeouts.command_seconds,
            }
        provider = get_provider(
            cfg.provider,
            observers=observers,
            context=cfg.kubeconfig,
            **kwargs,
        )
        provider.initialize(cfg.managed)
        provider.assemble_environment(cfg.params)
    except (ConfigError, ProviderError) as exc:
        _fail(exc)
    return cfg, provider


@contextmanager
def _node(spec: NodeSpec, dry_run: bool):
    """Open the command node, failing the command cleanly, and always close it."""
    try:
        node = open_node(spec, dry_run=dry_run)
    except (ValueError, ProviderError) as exc:
        _fail(exc)
    try:
        yield node
    finally:
        node.close()


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def descriptor(
    config: Path = ConfigOpt,
    show_secrets: bool = typer.Option(False, "--show-secrets", help="Print credential values"),
    debug: bool = DebugOpt,
    log_dir: Optional[Path] = LogDirOpt,
):
    """Print the resolved provider descriptor as JSON."""
    _, provider = _open_session(config, debug, log_dir)
    data = asdict(provider.descriptor())
    env_vars = data["env_vars"]
    data["env_vars"] = list(env_vars) if show_secrets else [_mask(a) for a in env_vars]
    typer.echo(json.dumps(data, indent=2))


@app.command()
def azs(
    config: Path = ConfigOpt,
    debug: bool = DebugOpt,
    log_dir: Optional[Path] = LogDirOpt,
):
    """Print the three availability zones used for the cluster."""
    _, provider = _open_session(config, debug, log_dir)
    if not isinstance(provider, AWSProvider):
        _fail(ProviderError(f"{provider.provider_name} does not resolve availability zones"))
    try:
        zones = provider.get_azs()
    except ProviderError as exc:
        _fail(exc)
    for zone in zones:
        typer.echo(zone)


@app.command("ecr-token")
def ecr_token(
    config: Path = ConfigOpt,
    debug: bool = DebugOpt,
    log_dir: Optional[Path] = LogDirOpt,
):
    """Print an ECR registry password (user is always AWS)."""
    _, provider = _open_session(config, debug, log_dir)
    if not isinstance(provider, AWSProvider):
        _fail(ProviderError(f"{provider.provider_name} has no container registry"))
    try:
        typer.echo(provider.get_registry_token())
    except ProviderError as exc:
        _fail(exc)


@app.command("render-storage-class")
def render_storage_class(
    config: Path = ConfigOpt,
    debug: bool = DebugOpt,
    log_dir: Optional[Path] = LogDirOpt,
):
    """Print the StorageClass manifest without applying it."""
    cfg, provider = _open_session(config, debug, log_dir)
    if not isinstance(provider, AWSProvider):
        _fail(ProviderError(f"{provider.provider_name} cannot render storage classes"))
    try:
        typer.echo(provider.storage_class_manifest(cfg.storage_class), nl=False)
    except ProviderError as exc:
        _fail(exc)


@app.command("storage-class")
def storage_class(
    config: Path = ConfigOpt,
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Workload kubeconfig on the node"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Log commands without running them"),
    debug: bool = DebugOpt,
    log_dir: Optional[Path] = LogDirOpt,
):
    """Create the default StorageClass in the workload cluster."""
    cfg, provider = _open_session(config, debug, log_dir)
    with _node(cfg.node, dry_run) as node:
        try:
            provider.configure_storage_class(node, kubeconfig or cfg.kubeconfig, cfg.storage_class)
        except ProviderError as exc:
            _fail(exc)
    typer.echo("[storage] StorageClass applied")


@app.command("install-csi")
def install_csi(
    config: Path = ConfigOpt,
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Workload kubeconfig on the node"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Log commands without running them"),
    debug: bool = DebugOpt,
    log_dir: Optional[Path] = LogDirOpt,
):
    """Install the provider CSI driver (no-op for AWS)."""
    cfg, provider = _open_session(config, debug, log_dir)
    with _node(cfg.node, dry_run) as node:
        try:
            provider.install_csi(node, kubeconfig or cfg.kubeconfig)
        except ProviderError as exc:
            _fail(exc)
    typer.echo("[csi] done")


@app.command("iam-bootstrap")
def iam_bootstrap(
    config: Path = ConfigOpt,
    dry_run: bool = typer.Option(False, "--dry-run", help="Log commands without running them"),
    debug: bool = DebugOpt,
    log_dir: Optional[Path] = LogDirOpt,
):
    """Create/update the CAPA IAM CloudFormation stack (managed clusters only)."""
    cfg, provider = _open_session(config, debug, log_dir)
    if not isinstance(provider, AWSProvider):
        _fail(ProviderError(f"{provider.provider_name} has no IAM bootstrap"))
    with _node(cfg.node, dry_run) as node:
        try:
            provider.bootstrap_iam(node)
        except ProviderError as exc:
            _fail(exc)
    typer.echo("[iam] CloudFormation stack is up to date")


if __name__ == "__main__":
    app()
