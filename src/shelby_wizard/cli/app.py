"""CLI for Shelby Wizard - set up the Shelby CLI, manage wallets, upload files."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from shelby_wizard import __version__
from shelby_wizard.config import WizardSettings
from shelby_wizard.errors import (
    ExternalCommandFailure,
    MissingDependency,
    ShelbyWizardError,
    UserCancelled,
)
from shelby_wizard.fs import file_mode
from shelby_wizard.log import setup_logging
from shelby_wizard.networks import DEFAULT_CONTEXT
from shelby_wizard.render import ConfigRenderer
from shelby_wizard.shelby_cli import ShelbyCLI
from shelby_wizard.system.preflight import Preflight, ToolStatus
from shelby_wizard.wallet.keygen import NodeKeyGenerator
from shelby_wizard.wallet.store import AccountStore
from shelby_wizard.wallet.workflow import WalletWorkflow

app = typer.Typer(
    name="shelby-wizard",
    help="Guided setup for the Shelby CLI: dependencies, wallets, config and uploads.",
    invoke_without_command=True,
)
console = Console()

_home: Optional[Path] = None
_skip_preflight: bool = False


def _version_callback(value: bool):
    if value:
        console.print(f"shelby-wizard {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    home: Optional[Path] = typer.Option(
        None,
        "--home",
        help="State directory (default ~/.shelby)",
        envvar="SHELBY_HOME",
    ),
    skip_preflight: bool = typer.Option(
        False,
        "--skip-preflight",
        help="Do not check for or install curl, git, Node.js or the Shelby CLI",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Guided setup for the Shelby CLI. Without a command, runs setup and opens the menu."""
    global _home, _skip_preflight
    _home = home
    _skip_preflight = skip_preflight
    setup_logging(verbose)

    if ctx.invoked_subcommand is None:
        workflow = _workflow()
        _bootstrap(workflow)
        _menu_loop(workflow)


# ------------------------------------------------------------------
# Wiring
# ------------------------------------------------------------------


def _settings() -> WizardSettings:
    return WizardSettings.from_env(home=_home)


def _workflow(settings: WizardSettings | None = None) -> WalletWorkflow:
    settings = settings or _settings()
    return WalletWorkflow(
        store=AccountStore(settings.accounts_dir, settings.active_account_file),
        renderer=ConfigRenderer(settings.config_file, settings.api_keys),
        keygen=NodeKeyGenerator(settings.deps_dir),
        shelby=ShelbyCLI(settings.shelby_bin),
        console=console,
        default_expiration=settings.default_expiration,
    )


def _report(exc: Exception) -> None:
    """Print an action failure for the user."""
    message = escape(str(exc))
    if isinstance(exc, UserCancelled):
        console.print(f"[yellow]{message}[/yellow]")
    elif isinstance(exc, ExternalCommandFailure):
        console.print(f"[red]External command failed:[/red] {message}")
    elif isinstance(exc, OSError):
        console.print(f"[red]File error:[/red] {message}")
    else:
        console.print(f"[red]{message}[/red]")


def _print_tools(tools: list[ToolStatus]) -> None:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Tool", width=8)
    table.add_column("Status", width=10)
    table.add_column("Details")
    for tool in tools:
        status = "[green]installed[/green]" if tool.installed_now else "[green]found[/green]"
        table.add_row(tool.name, status, escape(tool.version or tool.path or ""))
    console.print(table)


# ------------------------------------------------------------------
# setup / bootstrap
# ------------------------------------------------------------------


def _bootstrap(workflow: WalletWorkflow) -> None:
    """Check dependencies, then make sure a wallet and config exist.

    A missing dependency ends the session; any other failure is reported
    and the user can retry from the menu.
    """
    console.print("[blue]==> Checking environment (installing what is missing)[/blue]")
    settings = _settings()
    if not _skip_preflight:
        preflight = Preflight(
            shelby_bin=settings.shelby_bin,
            notify=lambda message: console.print(f"[yellow]{escape(message)}[/yellow]"),
        )
        try:
            _print_tools(preflight.run_all())
        except MissingDependency as exc:
            console.print(f"[red]{escape(str(exc))}[/red]")
            raise typer.Exit(1)

    try:
        account = workflow.ensure_config()
    except MissingDependency as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)
    except (ShelbyWizardError, OSError) as exc:
        _report(exc)
        return

    console.print("[green]==> Shelby setup complete[/green]")
    console.print(f"Config: {settings.config_file}")
    console.print(f"Active wallet: {account.name}")


@app.command()
def setup():
    """Install dependencies, ensure a wallet exists and write config.yaml."""
    _bootstrap(_workflow())


# ------------------------------------------------------------------
# menu
# ------------------------------------------------------------------

MENU_ITEMS = [
    ("1", "Create a new wallet", lambda wf: wf.create()),
    ("2", "Show wallet address", lambda wf: wf.show()),
    ("3", "Fund wallet from the faucet", lambda wf: wf.faucet()),
    ("4", "Upload a file", lambda wf: wf.upload()),
    ("5", "Export private key (dangerous)", lambda wf: wf.export_private_key()),
]


def _menu_loop(workflow: WalletWorkflow) -> None:
    actions = {key: action for key, _, action in MENU_ITEMS}
    while True:
        lines = [
            f"Context: [cyan]{DEFAULT_CONTEXT}[/cyan]",
            f"Wallet:  [cyan]{workflow.store.active_account_name()}[/cyan]",
            "",
        ]
        lines += [f"[cyan]{key})[/cyan] {label}" for key, label, _ in MENU_ITEMS]
        lines.append("[cyan]0)[/cyan] Exit")
        console.print()
        console.print(Panel("\n".join(lines), title="Shelby Wizard"))

        try:
            choice = console.input("Choose an option: ").strip()
        except (EOFError, KeyboardInterrupt):
            console.print()
            choice = "0"

        if choice == "0":
            console.print("[green]Bye.[/green]")
            return
        action = actions.get(choice)
        if action is None:
            console.print(f"[yellow]Invalid option: {escape(choice)}[/yellow]")
            continue
        try:
            action(workflow)
        except (ShelbyWizardError, OSError) as exc:
            _report(exc)
        except (EOFError, KeyboardInterrupt):
            console.print("\n[yellow]Cancelled.[/yellow]")


@app.command()
def menu():
    """Open the interactive menu (no dependency checks)."""
    _menu_loop(_workflow())


# ------------------------------------------------------------------
# status
# ------------------------------------------------------------------


@app.command()
def status():
    """Show the state directory, active wallet and rendered contexts."""
    settings = _settings()
    workflow = _workflow(settings)

    console.print(f"[bold]Home:[/bold] {settings.home}")
    active = workflow.store.active_account_name()
    account = workflow.store.read_account(active)
    if account is None:
        console.print(f"[bold]Active wallet:[/bold] {active} [red](missing)[/red]")
    else:
        console.print(f"[bold]Active wallet:[/bold] {active} ([cyan]{account.address}[/cyan])")

    try:
        config = workflow.renderer.load()
    except (OSError, ValueError, yaml.YAMLError) as exc:
        console.print(f"[red]Could not read {settings.config_file}:[/red] {escape(str(exc))}")
        raise typer.Exit(1)
    if config is None:
        console.print(f"[yellow]No config at {settings.config_file}.[/yellow] Run 'shelby-wizard setup'.")
    else:
        mode = file_mode(settings.config_file)
        mode_note = "" if mode == 0o600 else " [red](should be 0600)[/red]"
        console.print(f"[bold]Config:[/bold] {settings.config_file} ({mode:o}){mode_note}")

        table = Table(title="Contexts")
        table.add_column("Context", style="cyan")
        table.add_column("Fullnode")
        table.add_column("Shelby RPC")
        table.add_column("API keys", style="dim")
        for name, ctx in config.contexts.items():
            keys = [
                label
                for label, value in (
                    ("aptos", ctx.aptos_network.api_key),
                    ("rpc", ctx.shelby_network.rpc_api_key),
                    ("indexer", ctx.shelby_network.indexer_api_key),
                )
                if value
            ]
            marker = " (default)" if name == config.default_context else ""
            table.add_row(name + marker, ctx.aptos_network.fullnode, ctx.shelby_network.rpc_endpoint, ", ".join(keys) or "-")
        console.print(table)

    cli_version = workflow.shelby.version()
    console.print(f"[bold]Shelby CLI:[/bold] {escape(cli_version) if cli_version else '[red]not found[/red]'}")


# ------------------------------------------------------------------
# faucet / upload
# ------------------------------------------------------------------


@app.command()
def faucet(
    run_now: Optional[bool] = typer.Option(None, "--run/--no-run", help="Run 'shelby faucet' without asking"),
):
    """Show funding instructions for the active wallet."""
    try:
        _workflow().faucet(run_now=run_now)
    except (ShelbyWizardError, OSError) as exc:
        _report(exc)
        raise typer.Exit(1)


@app.command()
def upload(
    src: Optional[str] = typer.Argument(None, help="Local file to upload"),
    dst: Optional[str] = typer.Argument(None, help="Remote path (default files/<name>)"),
    expiration: Optional[str] = typer.Option(None, "--expiration", "-e", help="e.g. 'in 2 days'"),
    verify: Optional[bool] = typer.Option(None, "--verify/--no-verify", help="Download again and compare SHA-256"),
):
    """Upload a file with the active wallet."""
    try:
        result = _workflow().upload(src=src, dst=dst, expiration=expiration, verify=verify)
    except (ShelbyWizardError, OSError) as exc:
        _report(exc)
        raise typer.Exit(1)
    if result.verified is False:
        raise typer.Exit(2)


# ------------------------------------------------------------------
# wallet sub-commands
# ------------------------------------------------------------------

wallet_app = typer.Typer(
    name="wallet",
    help="Manage local Shelby wallets.",
    no_args_is_help=True,
)
app.add_typer(wallet_app, name="wallet")


@wallet_app.command("create")
def wallet_create(
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Wallet name (default alice)"),
):
    """Generate a new wallet and make it active."""
    try:
        _workflow().create(name=name)
    except (ShelbyWizardError, OSError) as exc:
        _report(exc)
        raise typer.Exit(1)


@wallet_app.command("show")
def wallet_show():
    """Show the active wallet address."""
    try:
        _workflow().show()
    except (ShelbyWizardError, OSError) as exc:
        _report(exc)
        raise typer.Exit(1)


@wallet_app.command("list")
def wallet_list():
    """List local wallets."""
    _workflow().list_accounts()


@wallet_app.command("use")
def wallet_use(name: str = typer.Argument(help="Wallet to activate")):
    """Switch the active wallet and rewrite config.yaml."""
    try:
        _workflow().use(name)
    except (ShelbyWizardError, OSError) as exc:
        _report(exc)
        raise typer.Exit(1)


@wallet_app.command("export")
def wallet_export():
    """Print the active wallet's private key (asks twice)."""
    try:
        _workflow().export_private_key()
    except (ShelbyWizardError, OSError) as exc:
        _report(exc)
        raise typer.Exit(1)
