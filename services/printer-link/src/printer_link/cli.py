"""Terminal interface for managing OctoPrint instances and sending jobs."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import click
import typer
from rich.console import Console
from rich.table import Table

from common.config import get_settings
from common.logging import configure_logging

from .dispatch import Failed
from .errors import NoInstancesConfigured, RecordNotFound
from .models import Instance
from .selection import PromptPicker
from .service import PrinterLink, create_printer_link

console = Console()
app = typer.Typer(help="Manage OctoPrint instances and send jobs to them.")


class ConsoleNotifier:
    """Prints notifications to the terminal."""

    STYLES = {"error": "red", "warning": "yellow", "info": "green"}

    def notify(self, message: str, *, level: str = "info") -> None:
        style = self.STYLES.get(level, "white")
        console.print(f"[{style}]{message}[/{style}]")


def _ask(text: str, default: str) -> Optional[str]:
    try:
        return typer.prompt(text, default=default, show_default=True)
    except click.exceptions.Abort:
        return None


def _link(ctx: typer.Context) -> PrinterLink:
    return ctx.obj


def _build_table(instances: List[Instance]) -> Table:
    table = Table(show_edge=False, header_style="bold cyan")
    table.add_column("#", justify="right")
    table.add_column("ID", overflow="fold")
    table.add_column("Name")
    table.add_column("URL", overflow="fold")
    table.add_column("Default")

    if not instances:
        table.add_row("—", "—", "No instances configured", "—", "—")
        return table

    for pos, inst in enumerate(instances, start=1):
        table.add_row(
            f"{pos}",
            inst.id,
            inst.display_name,
            inst.url or "—",
            "✓" if inst.default else "",
        )
    return table


@app.callback()
def main(
    ctx: typer.Context,
    settings_url: Optional[str] = typer.Option(
        None,
        "--settings-url",
        "-s",
        help="Settings store (memory://, file://<path>, *.json or a SQLAlchemy URL).",
    ),
) -> None:
    """Load the configured settings store."""
    settings = get_settings()
    if settings_url:
        settings = settings.model_copy(update={"printer_settings_url": settings_url})
    configure_logging(settings.log_level)
    ctx.obj = create_printer_link(
        settings,
        notifier=ConsoleNotifier(),
        picker=PromptPicker(_ask),
    )


@app.command("list")
def list_instances(ctx: typer.Context) -> None:
    """List configured instances."""
    console.print(_build_table(_link(ctx).registry.list()))


@app.command()
def add(
    ctx: typer.Context,
    name: str = typer.Option("", "--name", "-n", help="Display name."),
    url: str = typer.Option("", "--url", "-u", help="Base URL, e.g. https://printer.local"),
    key: str = typer.Option("", "--key", "-k", help="OctoPrint API key."),
    default: bool = typer.Option(False, "--default/--no-default", help="Make this the default instance."),
) -> None:
    """Add an instance."""
    session = _link(ctx).editor.open()
    fields = session.fields.model_copy(
        update={"name": name, "url": url, "key": key, "default": "yes" if default else "no"}
    )
    stored = session.commit(fields)
    console.print(f"[green]Added {stored.display_name} ({stored.id})[/green]")


@app.command()
def edit(
    ctx: typer.Context,
    instance_id: str = typer.Argument(..., help="Instance ID."),
    name: Optional[str] = typer.Option(None, "--name", "-n"),
    url: Optional[str] = typer.Option(None, "--url", "-u"),
    key: Optional[str] = typer.Option(None, "--key", "-k"),
    default: Optional[bool] = typer.Option(None, "--default/--no-default"),
) -> None:
    """Edit an instance; omitted options keep their current value."""
    try:
        session = _link(ctx).editor.open(instance_id)
    except RecordNotFound as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc

    update = {"name": name, "url": url, "key": key}
    update = {field: value for field, value in update.items() if value is not None}
    if default is not None:
        update["default"] = "yes" if default else "no"
    stored = session.commit(session.fields.model_copy(update=update))
    if stored is None:
        console.print(f"[red]Instance not found: {instance_id}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Updated {stored.display_name}[/green]")


@app.command()
def remove(ctx: typer.Context, instance_id: str = typer.Argument(..., help="Instance ID.")) -> None:
    """Delete an instance."""
    if not _link(ctx).registry.remove(instance_id):
        console.print(f"[red]Instance not found: {instance_id}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Removed {instance_id}[/green]")


@app.command("default")
def make_default(ctx: typer.Context, instance_id: str = typer.Argument(..., help="Instance ID.")) -> None:
    """Make an instance the default."""
    if not _link(ctx).registry.set_default(instance_id):
        console.print(f"[red]Instance not found: {instance_id}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Default is now {instance_id}[/green]")


@app.command()
def send(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="G-code file."),
    to: Optional[str] = typer.Option(None, "--to", "-t", help="Instance ID to send to."),
    auto: bool = typer.Option(False, "--auto", help="Never prompt; use the default instance."),
) -> None:
    """Send a G-code file to an instance."""
    link = _link(ctx)
    payload = path.read_bytes()

    if auto:
        try:
            outcome = asyncio.run(link.actions.send(payload, to, filename=path.name))
        except NoInstancesConfigured as exc:
            console.print(f"[red]{exc}. Add one with 'printer-link add'.[/red]")
            raise typer.Exit(1) from exc
    else:
        outcome = asyncio.run(link.actions.send_interactive(payload, to, filename=path.name))

    if outcome is None or isinstance(outcome, Failed):
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
