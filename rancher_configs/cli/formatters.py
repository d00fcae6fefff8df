"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any, Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from rancher_configs.models.config import AppConfig
from rancher_configs.models.schemas import Host
from rancher_configs.models.stats import FetchStats
from rancher_configs.utils.formatting import format_duration, format_size, mask_secret


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "UnexpectedResponseError": [
            "• Another client may be creating tokens with the same name.",
            "• Check that the base URL points at the Rancher API root.",
        ],
        "MalformedResponseError": [
            "• The server answered with something other than Rancher v1 JSON.",
            "• Check that the base URL ends with the API root (e.g. /v1 lives below it).",
        ],
        "RegistrationError": [
            "• The project may be inactive or out of registration capacity.",
            "• Check the project's state in the Rancher UI.",
        ],
        "TokenTimeoutError": [
            "• The server is slow to activate registration tokens.",
            "• Raise `poll_max_attempts` or set it to 0 to wait indefinitely.",
        ],
        "EmptyTokenError": [
            "• The token may have ended in an error state on the server.",
            "• Run with -vv to see the final token state.",
        ],
        "TokenNotFoundError": [
            "• The token was removed while we were waiting for it.",
            "• Check whether another tool prunes registration tokens.",
        ],
        "ConfigurationError": [
            "• Run `rancher-configs init <URL>` to create a configuration file.",
            "• Run `rancher-configs validate` to see what is wrong.",
        ],
        "CredentialsError": [
            "• Pass --access-key and --secret-key.",
            "• Or export RANCHER_ACCESS_KEY and RANCHER_SECRET_KEY.",
        ],
        "ClientResponseError": [
            "• The server rejected the request. A 401 means the API key is wrong.",
            "• A 404 usually means a wrong project or host ID.",
        ],
        "ClientConnectorError": [
            "• The server could not be reached. Check the base URL and network.",
        ],
        "TimeoutError": [
            "• A request timed out. Raise `request_timeout` in the configuration.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if key == "secret_key":
            value = "[hidden]" if value else ""
        elif key == "access_key":
            value = mask_secret(value)
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: AppConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    policy = config.poll_policy
    attempts = str(policy.max_attempts) if policy.max_attempts else "unlimited"

    table.add_row("Server:", f"[green]{config.base_url}[/green]")
    table.add_row(
        "API Key:",
        mask_secret(config.access_key) if config.access_key else "[dim](from env)[/dim]",
    )
    table.add_row("TLS Verify:", "✓ Enabled" if config.verify_ssl else "✗ Disabled")
    table.add_row(
        "Request Timeout:",
        f"{config.request_timeout:g}s" if config.request_timeout else "none",
    )
    table.add_row(
        "Token Polling:",
        f"every {policy.interval:g}s (x{policy.backoff:g}, max {policy.max_interval:g}s),"
        f" {attempts} attempts",
    )
    table.add_row("Output Dir:", f"[dim]{config.output_dir}[/dim]")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_hosts_table(hosts: Sequence[Host]):
    """Displays the host listing."""
    console = Console()
    if not hosts:
        console.print("[yellow]No hosts matched.[/yellow]")
        return

    table = Table(title=f"Hosts ({len(hosts)})", box=box.SIMPLE_HEAD)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Project", style="magenta")
    table.add_column("State")
    for host in hosts:
        state = host.state or "?"
        state_style = "green" if state.lower() == "active" else "yellow"
        table.add_row(
            host.id,
            host.display_name,
            host.project_id or "-",
            f"[{state_style}]{state}[/{state_style}]",
        )
    console.print(table)


def print_summary_panel(stats: FetchStats, duration_s: float):
    """Displays the final summary of a download batch."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row(
        "✓ Archives:",
        f"[bold green]{stats.archives_written}[/bold green] / {stats.hosts_requested}",
    )
    stats_table.add_row(
        "Tokens:",
        f"{stats.tokens_acquired} acquired, {stats.token_cache_hits} reused",
    )
    if stats.header_fallbacks > 0:
        stats_table.add_row(
            "○ Named by host ID:", f"[yellow]{stats.header_fallbacks}[/yellow]"
        )

    stats_table.add_row("", "")  # Spacer
    stats_table.add_row("Total Size:", f"[cyan]{format_size(stats.bytes_written)}[/cyan]")
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    complete = stats.archives_written == stats.hosts_requested
    title = (
        "📦 [bold]Download Complete![/bold]"
        if complete
        else "⚠ [bold]Download Incomplete[/bold]"
    )

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style="green" if complete else "yellow",
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    for path in stats.files:
        console.print(f"  [dim]{path}[/dim]")
    console.print()
