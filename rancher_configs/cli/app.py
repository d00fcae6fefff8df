"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Any, Coroutine, Optional

import aiohttp
import typer
from rich.console import Console
from rich.logging import RichHandler

from rancher_configs import __version__
from rancher_configs.api.auth import (
    CredentialProvider,
    EnvCredentialProvider,
    StaticCredentialProvider,
)
from rancher_configs.api.client import RancherAPIClient
from rancher_configs.core.config_downloader import ConfigDownloader
from rancher_configs.core.host_enumerator import (
    HostEnumerator,
    HostPredicate,
    all_of,
    by_name,
    by_project,
    by_state,
)
from rancher_configs.core.token_provisioner import TokenProvisioner
from rancher_configs.exceptions import CredentialsError, RancherConfigsError
from rancher_configs.models.config import AppConfig
from rancher_configs.storage.config_manager import ConfigManager
from rancher_configs.utils.structured_logger import VERBOSE, LogConfig

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_hosts_table,
    print_summary_panel,
    print_validation_table,
)

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("rancher_configs")

app = typer.Typer(
    name="rancher-configs",
    help=(
        "Fetch machine provisioning config archives from a Rancher server. Use"
        " 'rancher-configs <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "rancher-configs"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _state(ctx: typer.Context) -> dict[str, Any]:
    if ctx.obj is None:
        ctx.obj = {"config_file": CONFIG_FILE, "log_config": LogConfig()}
    return ctx.obj


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    config_file: Path = typer.Option(
        CONFIG_FILE,
        "--config",
        "-c",
        help="Path to the configuration file.",
        dir_okay=False,
    ),
    log_dir: Optional[Path] = typer.Option(
        None,
        "--log-dir",
        help="Also write JSON-lines event logs to this directory.",
        file_okay=False,
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Rancher machine config fetcher"""
    if version:
        console.print(
            f"[bold]rancher-configs[/bold] version [cyan]{__version__}[/cyan]"
        )
        raise typer.Exit()

    log_level = logging.INFO
    if verbose == 1:
        log_level = VERBOSE
    elif verbose >= 2:
        log_level = logging.DEBUG
    logging.getLogger("rancher_configs").setLevel(log_level)

    ctx.obj = {
        "config_file": config_file,
        "log_config": LogConfig(
            level=log_level, log_dir=log_dir, enable_json=log_dir is not None
        ),
    }

    if show_config:
        if not config_file.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]rancher-configs init"
                "[/cyan] first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(config_file)
        config_data = config_manager.load_config().model_dump(exclude={"config_path"})
        print_config(config_file, config_data)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


def _load_config(ctx: typer.Context, cli_options: dict[str, Any]) -> AppConfig:
    config_manager = ConfigManager(_state(ctx)["config_file"])
    return config_manager.load_config(
        {key: value for key, value in cli_options.items() if value is not None}
    )


def _resolve_credentials(
    config: AppConfig, access_key: Optional[str], secret_key: Optional[str]
) -> CredentialProvider:
    """CLI options win, then the environment, then the configuration file."""
    if access_key or secret_key:
        return StaticCredentialProvider(access_key or "", secret_key or "")
    env_provider = EnvCredentialProvider()
    if env_provider.is_configured():
        return env_provider
    if config.access_key and config.secret_key:
        return StaticCredentialProvider(config.access_key, config.secret_key)
    raise CredentialsError(
        "No API key configured. Use --access-key/--secret-key, the "
        "RANCHER_ACCESS_KEY/RANCHER_SECRET_KEY variables, or 'rancher-configs init'."
    )


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    """Runs a command coroutine, turning known failures into a clean exit."""
    try:
        return asyncio.run(coro)
    except (
        RancherConfigsError, aiohttp.ClientError, asyncio.TimeoutError, ValueError
    ) as e:
        console.print(format_error_with_suggestions(e))
        log.debug("Full traceback:", exc_info=True)
        raise typer.Exit(code=1) from e


def _build_predicate(
    project: Optional[str], state: Optional[str], name: Optional[str]
) -> Optional[HostPredicate]:
    predicates = []
    if project:
        predicates.append(by_project(project))
    if state:
        predicates.append(by_state(state))
    if name:
        predicates.append(by_name(name))
    if not predicates:
        return None
    return all_of(*predicates)


def _parse_pairs(pairs: list[str]) -> tuple[list[str], list[str]]:
    host_ids, project_ids = [], []
    for pair in pairs:
        host_id, sep, project_id = pair.partition(":")
        if not sep or not host_id or not project_id:
            raise typer.BadParameter(
                f"Expected HOST_ID:PROJECT_ID, got '{pair}'.", param_hint="PAIRS"
            )
        host_ids.append(host_id)
        project_ids.append(project_id)
    return host_ids, project_ids


@app.command()
def init(
    ctx: typer.Context,
    base_url: str = typer.Argument(
        ..., help="Rancher API root, e.g. https://rancher.example/api"
    ),
    access_key: str = typer.Option("", "--access-key", help="API access key."),
    secret_key: str = typer.Option("", "--secret-key", help="API secret key."),
    output_dir: str = typer.Option(
        ".", "--output-dir", "-o", help="Default directory for downloaded archives."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Write a configuration file for a Rancher server."""
    config_file: Path = _state(ctx)["config_file"]
    if (
        config_file.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {
        "base_url": base_url,
        "access_key": access_key,
        "secret_key": secret_key,
        "output_dir": output_dir,
    }
    try:
        ConfigManager(config_file).save_new_config(settings)
    except RancherConfigsError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    console.print(f"\n[bold green]✓ Configuration saved to '{config_file}'[/bold green]")
    if not access_key:
        console.print(
            "[dim]No API key stored; set RANCHER_ACCESS_KEY and RANCHER_SECRET_KEY "
            "or pass --access-key/--secret-key.[/dim]"
        )


@app.command(name="hosts")
def hosts_command(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None, "--url", help="Override the configured server URL."
    ),
    access_key: Optional[str] = typer.Option(None, "--access-key"),
    secret_key: Optional[str] = typer.Option(None, "--secret-key"),
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="Only hosts in this project."
    ),
    state: Optional[str] = typer.Option(
        None, "--state", help="Only hosts in this state (e.g. active)."
    ),
    name: Optional[str] = typer.Option(
        None, "--name", help="Only hosts whose name matches this glob."
    ),
):
    """List the hosts known to the server."""
    try:
        config = _load_config(ctx, {"base_url": base_url})
        credentials = _resolve_credentials(config, access_key, secret_key)
    except RancherConfigsError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    log_config: LogConfig = _state(ctx)["log_config"]

    async def _hosts_async():
        with log_config.build() as logger:
            logger.set_session_context(command="hosts", base_url=config.base_url)
            async with RancherAPIClient(
                config.base_url,
                credentials,
                request_timeout=config.request_timeout,
                verify_ssl=config.verify_ssl,
                logger=logger,
            ) as client:
                return await HostEnumerator(client, logger).list_hosts(
                    _build_predicate(project, state, name)
                )

    print_hosts_table(_run(_hosts_async()))


@app.command(name="download")
def download_command(
    ctx: typer.Context,
    pairs: Optional[list[str]] = typer.Argument(  # noqa: B008
        None,
        help="Hosts to fetch, as HOST_ID:PROJECT_ID.",
        metavar="[HOST_ID:PROJECT_ID]...",
    ),
    all_hosts: bool = typer.Option(
        False, "--all", "-a", help="Fetch every host the server lists."
    ),
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="Fetch hosts in this project."
    ),
    state: Optional[str] = typer.Option(
        None, "--state", help="Fetch hosts in this state."
    ),
    name: Optional[str] = typer.Option(
        None, "--name", help="Fetch hosts whose name matches this glob."
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output", "-o", help="Directory to write archives to."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--url", help="Override the configured server URL."
    ),
    access_key: Optional[str] = typer.Option(None, "--access-key"),
    secret_key: Optional[str] = typer.Option(None, "--secret-key"),
):
    """Download machine config archives."""
    predicate = _build_predicate(project, state, name)
    if pairs and (all_hosts or predicate):
        console.print(
            "[red]✗ Pass either explicit HOST_ID:PROJECT_ID pairs or host filters,"
            " not both.[/red]"
        )
        raise typer.Exit(code=1)
    if not pairs and not all_hosts and predicate is None:
        console.print(
            "[red]✗ Nothing to download.[/red] Use: [cyan]rancher-configs download"
            " HOST_ID:PROJECT_ID[/cyan], [cyan]--all[/cyan] or a filter."
        )
        raise typer.Exit(code=1)

    host_ids, project_ids = _parse_pairs(pairs or [])

    try:
        config = _load_config(ctx, {"base_url": base_url, "output_dir": output_dir})
        credentials = _resolve_credentials(config, access_key, secret_key)
    except RancherConfigsError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    log_config: LogConfig = _state(ctx)["log_config"]

    async def _download_async():
        with log_config.build() as logger:
            logger.set_session_context(command="download", base_url=config.base_url)
            async with RancherAPIClient(
                config.base_url,
                credentials,
                request_timeout=config.request_timeout,
                verify_ssl=config.verify_ssl,
                logger=logger,
            ) as client:
                provisioner = TokenProvisioner(client, config.poll_policy, logger)
                downloader = ConfigDownloader(client, provisioner, logger)

                hosts = None
                if not host_ids:
                    hosts = await HostEnumerator(client, logger).list_hosts(predicate)
                    if not hosts:
                        console.print("[yellow]No hosts matched.[/yellow]")
                        return

                start_time = time.monotonic()
                try:
                    if hosts is None:
                        await downloader.download_configs(
                            host_ids, project_ids, config.output_dir
                        )
                    else:
                        await downloader.download_for_hosts(hosts, config.output_dir)
                finally:
                    print_summary_panel(
                        downloader.stats, time.monotonic() - start_time
                    )

    console.print("[bold cyan]📦 Fetching machine configs...[/bold cyan]")
    _run(_download_async())


@app.command()
def validate(ctx: typer.Context):
    """Validate the current configuration."""
    try:
        config = _load_config(ctx, {})
        print_validation_table(config)
    except RancherConfigsError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e
