"""Shared Rich console for the CLI."""

import questionary
from rich.console import Console
from rich.table import Table

from ecs_deploy.core.deployments.aws_ecs import DeploymentSummary

console = Console()

QUESTIONARY_STYLE = questionary.Style(
    [
        ("qmark", "fg:#5f819d"),
        ("question", "fg:#e0e0e0 bold"),
        ("answer", "fg:#FF9D00 bold"),
        ("instruction", "fg:#e0e0e0"),
        ("text", "fg:#e0e0e0"),
    ]
)


def report_step(message: str) -> None:
    """Report deployment progress to the user.

    Args:
        message: Progress message to display.
    """
    console.print(f"[bold cyan]•[/bold cyan] {message}")


def confirm(message: str) -> bool:
    """Ask a yes/no question; a cancelled prompt counts as no.

    Args:
        message: Question to display.

    Returns:
        True when the user confirmed.
    """
    return bool(questionary.confirm(message, default=True, style=QUESTIONARY_STYLE).ask())


def print_summary(summary: DeploymentSummary) -> None:
    """Print a deployment summary table.

    Args:
        summary: Summary returned by the deployment.
    """
    title = "Deployment plan" if summary.dry_run else "Deployment"
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Property", style="white", no_wrap=True)
    table.add_column("Value", style="bright_white")
    for label, value in summary.rows():
        table.add_row(label, value)
    console.print(table)


def print_status_table(results: dict[str, str]) -> None:
    """Print a deployment status table.

    Args:
        results: Deployment status values keyed by resource name.
    """
    table = Table(title="Deployment resources", show_header=True, header_style="bold cyan")
    table.add_column("Resource", style="white", no_wrap=True)
    table.add_column("Status", style="white")
    for name, status in results.items():
        table.add_row(name, style_status(status))
    console.print(table)


def style_status(status: str) -> str:
    """Return colourised status text for terminal output.

    Args:
        status: Resource status string.

    Returns:
        Rich-marked status text.
    """
    if status.startswith("present"):
        return f"[green]{status}[/green]"
    if status.startswith("missing") or status.startswith("error"):
        return f"[red]{status}[/red]"
    if status.startswith("status ") or status.startswith("rolling"):
        return f"[yellow]{status}[/yellow]"
    return status
