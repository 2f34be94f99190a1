"""
gptbridge CLI

Command-line interface for talking to the GPT-trainer chatbot through the
bridge from a terminal.

Usage:
    gptbridge chat             - Interactive chat mode
    gptbridge ask "text"       - Single message
    gptbridge functions        - List the advertised function catalog
    gptbridge status           - Show chatbot info and configuration
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from gptbridge import __version__
from gptbridge.app import Bridge, create_bridge
from gptbridge.core.config import Config, load_config, validate_config
from gptbridge.core.constants import APP_NAME
from gptbridge.core.errors import BridgeError
from gptbridge.core.logging import setup_logging
from gptbridge.functions.catalog import build_catalog
from gptbridge.interfaces.cli.channel import CLIChannel

# Initialize Typer app and Rich console
app = typer.Typer(
    name="gptbridge",
    help="gptbridge - GPT-trainer chat bridge CLI",
    add_completion=False
)
console = Console()

ConfigOption = typer.Option(None, "--config", "-c", help="Path to config.yml")


# =============================================================================
# Helper Functions
# =============================================================================

def _load(config_path: Optional[Path], require_credentials: bool = True) -> Config:
    """Load configuration and set up logging, exiting on invalid config."""
    config = load_config(config_path)
    setup_logging(config.system.log_level, config.system.log_file)
    if require_credentials:
        try:
            validate_config(config)
        except BridgeError as e:
            console.print(f"[red]Error: {e.message}[/red]")
            raise typer.Exit(code=1)
    return config


def _build(config: Config) -> Bridge:
    try:
        return create_bridge(config, CLIChannel(console=console))
    except BridgeError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(code=1)


# =============================================================================
# Chat Commands
# =============================================================================

@app.command()
def chat(config_path: Optional[Path] = ConfigOption):
    """Interactive chat with the assistant."""
    bridge = _build(_load(config_path))
    channel = bridge.platform

    console.print("[bold green]gptbridge Terminal Interface[/bold green]")
    console.print(f"Connected to {bridge.client.base_url}")
    console.print("[dim]Type 'exit' or 'quit' to end the session, '/reset' for a new conversation[/dim]\n")

    async def run():
        bridge.sessions.start_cleanup()
        try:
            await channel.run()
        finally:
            bridge.sessions.stop_cleanup()

    asyncio.run(run())
    console.print("[dim]Goodbye![/dim]")


@app.command()
def ask(
    text: str = typer.Argument(..., help="Message to send"),
    user: str = typer.Option("cli-user", "--user", "-u", help="User id to send as"),
    config_path: Optional[Path] = ConfigOption
):
    """Send a single message and print the reply."""
    bridge = _build(_load(config_path))

    with console.status("[bold green]Thinking...[/bold green]"):
        reply = asyncio.run(bridge.orchestrator.handle_user_message(user, text))

    console.print(Markdown(reply))


# =============================================================================
# Inspection Commands
# =============================================================================

@app.command()
def functions(config_path: Optional[Path] = ConfigOption):
    """List the functions advertised to the assistant."""
    bridge = _build(_load(config_path, require_credentials=False))

    table = Table(title="Function Catalog")
    table.add_column("Name", style="cyan")
    table.add_column("Route")
    table.add_column("Description")

    for schema in build_catalog(bridge.registry):
        name = schema["name"]
        route = "[green]local[/green]" if name in bridge.registry else "[yellow]automation[/yellow]"
        table.add_row(name, route, schema.get("description", ""))

    console.print(table)


@app.command()
def status(config_path: Optional[Path] = ConfigOption):
    """Show chatbot info and the active configuration."""
    config = _load(config_path)
    bridge = _build(config)

    table = Table(title="gptbridge Status", style="bold white")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Environment", config.system.environment)
    table.add_row("GPT-trainer URL", config.gpt_trainer.base_url)
    table.add_row("Chatbot", config.gpt_trainer.chatbot_uuid)
    table.add_row("Automation URL", config.automation.base_url)
    table.add_row("Session idle limit", f"{config.session.max_idle_time:.0f}s")
    table.add_row("Cleanup interval", f"{config.session.cleanup_interval:.0f}s")
    table.add_row("Live sessions", str(bridge.sessions.count()))
    console.print(table)

    try:
        chatbot = asyncio.run(bridge.client.get_chatbot())
        console.print(f"\n[green]Chatbot:[/green] {chatbot.get('name', 'unknown')}")
    except BridgeError as e:
        console.print(f"\n[yellow]GPT-trainer not reachable: {e.message}[/yellow]")


@app.command()
def version():
    """Show gptbridge version."""
    console.print(f"[bold]gptbridge {__version__}[/bold]")
    console.print(APP_NAME)


# =============================================================================
# Main Entry Point
# =============================================================================

def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
