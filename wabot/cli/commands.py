"""CLI commands for wabot."""

import asyncio
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from wabot import __logo__, __version__

app = typer.Typer(
    name="wabot",
    help=f"{__logo__} wabot - command-driven WhatsApp bot",
    no_args_is_help=True,
)

console = Console()


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} wabot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """wabot - command-driven WhatsApp bot."""
    pass


# ============================================================================
# Setup
# ============================================================================


@app.command()
def init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
):
    """Write a default configuration file."""
    from wabot.config.loader import get_config_path, save_config
    from wabot.config.schema import Config

    path = get_config_path()
    if path.exists() and not force:
        console.print(f"[yellow]Config already exists at {path}[/yellow] (use --force)")
        raise typer.Exit(1)

    save_config(Config(), path)
    console.print(f"[green]✓[/green] Created {path}")


# ============================================================================
# Bot
# ============================================================================


@app.command()
def run(
    port: int = typer.Option(None, "--port", "-p", envvar="PORT", help="HTTP port"),
    bridge_url: str = typer.Option(None, "--bridge", "-b", help="Bridge WebSocket URL"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
):
    """Connect to the WhatsApp bridge and start answering commands."""
    from wabot.channels.web import WebServer
    from wabot.channels.whatsapp import WhatsAppBridge
    from wabot.config.loader import get_data_dir, load_config
    from wabot.media.fetch import RemoteFetcher
    from wabot.media.manager import MediaStore
    from wabot.media.qr import PairingQR
    from wabot.router.router import CommandRouter

    config = load_config()
    if port is not None:
        config.web.port = port
    if bridge_url:
        config.bridge.url = bridge_url

    _configure_logging("DEBUG" if verbose else config.log_level)

    console.print(f"{__logo__} Starting wabot...")

    store = MediaStore(get_data_dir(config))

    router = CommandRouter(store, RemoteFetcher(timeout=config.fetch.timeout))
    qr = PairingQR(config.data_path)

    session = WhatsAppBridge(config.bridge.url, reconnect_delay=config.bridge.reconnect_delay)
    session.on_message = router.handle
    session.on_challenge = qr.on_challenge
    session.on_ready = qr.on_ready

    web = WebServer(config.web, store) if config.web.enabled else None

    console.print(f"[green]✓[/green] Data directory: {store.data_dir}")
    console.print(f"[green]✓[/green] Bridge: {config.bridge.url}")
    if web:
        console.print(f"[green]✓[/green] HTTP: port {config.web.port}")
    else:
        console.print("[yellow]HTTP server disabled[/yellow]")

    async def _run():
        tasks = [session.start()]
        if web:
            tasks.append(web.start())
        try:
            await asyncio.gather(*tasks)
        finally:
            await session.stop()
            if web:
                await web.stop()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\nShutting down...")


# ============================================================================
# Inspection
# ============================================================================


@app.command()
def status():
    """Show configuration and storage status."""
    from wabot.config.loader import get_config_path, load_config
    from wabot.media.qr import QR_FILENAME

    config_path = get_config_path()
    config = load_config()
    data_dir = config.data_path

    def _mark(ok: bool) -> str:
        return "[green]✓[/green]" if ok else "[dim]no[/dim]"

    console.print(f"{__logo__} wabot Status\n")
    console.print(f"Config: {config_path} {_mark(config_path.exists())}")
    console.print(f"Data directory: {data_dir} {_mark(data_dir.exists())}")
    console.print(f"Bridge: {config.bridge.url}")
    if config.web.enabled:
        console.print(f"HTTP: {config.web.host}:{config.web.port}")
    else:
        console.print("HTTP: [dim]disabled[/dim]")

    if data_dir.exists():
        count = sum(1 for p in data_dir.iterdir() if p.name != QR_FILENAME)
        console.print(f"Stored files: {count}")
        console.print(f"Pairing QR: {_mark((data_dir / QR_FILENAME).exists())}")


@app.command()
def files(
    data_dir: Path = typer.Option(None, "--data-dir", "-d", help="Content directory"),
):
    """List stored media files."""
    from wabot.config.loader import load_config

    directory = data_dir or load_config().data_path
    if not directory.exists():
        console.print(f"[yellow]No data directory at {directory}[/yellow]")
        raise typer.Exit(1)

    table = Table(title=f"Files in {directory}")
    table.add_column("Name", style="cyan")
    table.add_column("Size", justify="right")

    entries = sorted(p for p in directory.iterdir() if p.is_file())
    for path in entries:
        table.add_row(path.name, f"{path.stat().st_size:,} B")

    if entries:
        console.print(table)
    else:
        console.print("No files stored yet.")
