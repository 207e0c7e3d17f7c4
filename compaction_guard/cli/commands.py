"""CLI commands for compaction-guard."""

from pathlib import Path

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from compaction_guard import __logo__, __version__

app = typer.Typer(
    name="compaction-guard",
    help=f"{__logo__} compaction-guard - Task context recovery across memory compaction",
    no_args_is_help=True,
)

console = Console()

ConfigOption = typer.Option(
    None, "--config", "-c", help="JSON config file (same keys as the plugin config)"
)


def _load_store(config_path: Path | None):
    from compaction_guard.agent.store import ContextStore
    from compaction_guard.config.loader import load_config, resolve_context_path

    config = load_config(config_path)
    return config, ContextStore(resolve_context_path(config))


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} compaction-guard v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """compaction-guard - Task context recovery across memory compaction."""
    pass


@app.command()
def status(config_path: Path = ConfigOption):
    """Show where the snapshot lives and the effective settings."""
    config, store = _load_store(config_path)

    console.print(f"{__logo__} compaction-guard Status\n")

    table = Table(show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Workspace", str(config.workspace_path))
    table.add_row(
        "Context file",
        f"{store.path} {'[green]✓[/green]' if store.exists() else '[dim]none[/dim]'}",
    )
    table.add_row(
        "Recovery prompt",
        "[green]enabled[/green]" if config.recovery_prompt else "[dim]disabled[/dim]",
    )
    table.add_row("Min messages for snapshot", str(config.min_messages_for_snapshot))
    console.print(table)


@app.command()
def show(
    config_path: Path = ConfigOption,
    raw: bool = typer.Option(False, "--raw", help="Print the file without Markdown rendering"),
):
    """Print the saved context snapshot."""
    _, store = _load_store(config_path)

    content = store.load()
    if content is None:
        console.print("No saved context.")
        return

    if raw:
        console.print(content, markup=False, highlight=False)
    else:
        console.print(Markdown(content))


@app.command()
def clear(config_path: Path = ConfigOption):
    """Delete the saved context snapshot."""
    _, store = _load_store(config_path)

    if not store.exists():
        console.print("No saved context.")
        return

    store.clear()
    console.print(f"[green]✓[/green] Cleared {store.path}")


if __name__ == "__main__":
    app()
