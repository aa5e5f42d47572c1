"""Interactive wallet actions: create, show, switch, export, faucet, upload."""

from __future__ import annotations

import hashlib
import logging
import shutil
import tempfile
import webbrowser
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from shelby_wizard.config import DEFAULT_ACCOUNT_NAME, DEFAULT_EXPIRATION
from shelby_wizard.errors import AccountNotFound, ExternalCommandFailure, InvalidInput, UserCancelled
from shelby_wizard.networks import DEFAULT_CONTEXT, get_context
from shelby_wizard.render import ConfigRenderer
from shelby_wizard.shelby_cli import UploadService, extract_urls
from shelby_wizard.wallet.keygen import KeyGenerator
from shelby_wizard.wallet.models import Account, validate_account_name
from shelby_wizard.wallet.store import AccountStore

logger = logging.getLogger("shelby_wizard.wallet.workflow")

EXPORT_CONFIRMATION = "EXPORT"


@dataclass
class UploadResult:
    """Outcome of an upload, including the optional round-trip check."""

    src: Path
    dst: str
    expiration: str
    verified: Optional[bool] = None  # None: verification skipped
    local_sha256: str = ""
    remote_sha256: str = ""
    download_path: Optional[Path] = None


def sha256_file(path: Path, chunk_size: int = 1 << 20) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


class WalletWorkflow:
    """Runs one user-facing action at a time on top of the account store.

    Every action resolves the active account itself and raises a
    :mod:`shelby_wizard.errors` exception when it cannot proceed; nothing is
    written to disk before all confirmations have passed.

    Parameters
    ----------
    store, renderer:
        Local persistence for accounts and ``config.yaml``.
    keygen:
        Source of fresh key pairs.
    shelby:
        The Shelby CLI (faucet, upload, download).
    console:
        Where user-facing output goes.
    ask:
        Reads one line of user input for a prompt. Defaults to
        ``console.input``.
    """

    def __init__(
        self,
        store: AccountStore,
        renderer: ConfigRenderer,
        keygen: KeyGenerator,
        shelby: UploadService,
        console: Console | None = None,
        ask: Callable[[str], str] | None = None,
        default_expiration: str = DEFAULT_EXPIRATION,
        open_url: Callable[[str], object] = webbrowser.open,
    ) -> None:
        self.store = store
        self.renderer = renderer
        self.keygen = keygen
        self.shelby = shelby
        self.console = console or Console()
        self.ask = ask or self.console.input
        self.default_expiration = default_expiration
        self.open_url = open_url

    # ------------------------------------------------------------------
    # Prompt helpers
    # ------------------------------------------------------------------

    def _prompt(self, message: str, default: str = "") -> str:
        return self.ask(message).strip() or default

    def _confirm(self, message: str, default_yes: bool) -> bool:
        """Ask a y/n question; only a single ``y`` or ``Y`` counts as yes."""
        hint = "(Y/n)" if default_yes else "(y/N)"
        answer = self._prompt(f"{message} {hint}: ", "Y" if default_yes else "N")
        return answer in ("y", "Y")

    # ------------------------------------------------------------------
    # Account resolution
    # ------------------------------------------------------------------

    def resolve_active(self) -> Account:
        """Return the active account or raise :class:`AccountNotFound`."""
        name = self.store.active_account_name()
        account = self.store.read_account(name)
        if account is None:
            raise AccountNotFound(name)
        return account

    def ensure_config(self) -> Account:
        """First-run bootstrap: make sure a wallet and ``config.yaml`` exist.

        Re-renders the config from the active account when it is readable.
        Otherwise falls back to the default wallet, creating it quietly if
        it does not exist yet.
        """
        self.store.ensure_layout()
        self.store.migrate_legacy_accounts()

        name = self.store.active_account_name()
        account = self.store.read_account(name)
        if account is not None:
            self.renderer.write(account)
            return account

        logger.info("Active wallet '%s' not found, falling back to '%s'", name, DEFAULT_ACCOUNT_NAME)
        fallback = self.store.read_account(DEFAULT_ACCOUNT_NAME)
        if fallback is not None:
            self.store.set_active_account(fallback.name)
            self.renderer.write(fallback)
            return fallback
        return self.create(DEFAULT_ACCOUNT_NAME, quiet=True)

    # ------------------------------------------------------------------
    # Wallet actions
    # ------------------------------------------------------------------

    def create(self, name: str | None = None, quiet: bool = False) -> Account:
        """Generate a new wallet, make it active and rewrite the config.

        Overwriting an existing wallet needs an explicit ``y``; the default
        answer cancels. *quiet* suppresses the success panel.
        """
        if name is None:
            name = self._prompt(f"Wallet name (default {DEFAULT_ACCOUNT_NAME}): ", DEFAULT_ACCOUNT_NAME)
        name = validate_account_name(name)

        if self.store.has_account(name):
            self.console.print(
                f"[yellow]Wallet {name} already exists:[/yellow] {self.store.account_path(name)}"
            )
            if not self._confirm("Overwrite it with a newly generated key?", default_yes=False):
                raise UserCancelled()

        key = self.keygen.generate()
        account = self.store.write_account(name, key.address, key.private_key)
        self.store.set_active_account(account.name)
        config_path = self.renderer.write(account)

        if not quiet:
            self.console.print(Panel(
                f"[bold green]Wallet created: {account.name}[/bold green]\n\n"
                f"Address: [cyan]{account.address}[/cyan]\n"
                f"Config written to: {config_path}",
                title="Shelby Wallet",
            ))
        return account

    def show(self) -> Account:
        account = self.resolve_active()
        self.console.print(Panel(
            f"Wallet: [bold]{account.name}[/bold]\n"
            f"Address: [cyan]{account.address}[/cyan]\n"
            f"Config: {self.renderer.config_file}",
            title="Wallet Address",
        ))
        return account

    def list_accounts(self) -> list[str]:
        names = self.store.list_accounts()
        if not names:
            self.console.print("[yellow]No wallets yet.[/yellow] Create one first.")
            return names

        active = self.store.active_account_name()
        table = Table(title="Wallets")
        table.add_column("", width=1)
        table.add_column("Name", style="cyan")
        table.add_column("Address")
        for name in names:
            account = self.store.read_account(name)
            address = account.address if account else "[red]unreadable[/red]"
            table.add_row("*" if name == active else "", name, address)
        self.console.print(table)
        return names

    def use(self, name: str) -> Account:
        """Switch the active wallet and rewrite the config for it."""
        name = validate_account_name(name)
        account = self.store.read_account(name)
        if account is None:
            raise AccountNotFound(name)
        self.store.set_active_account(account.name)
        self.renderer.write(account)
        self.console.print(f"[green]Active wallet is now {account.name}[/green] ({account.address})")
        return account

    def export_private_key(self) -> Account:
        """Reveal the private key after two exact-match confirmations.

        The first answer must be ``EXPORT`` and the second the wallet name.
        Any other answer cancels before anything secret is printed.
        """
        account = self.resolve_active()

        self.console.print("[bold red]WARNING: exporting a private key is dangerous![/bold red]")
        self.console.print("[red]Anyone holding it has full control of this wallet and its funds.[/red]")
        if self.ask(f"Type '{EXPORT_CONFIRMATION}' to continue: ").strip() != EXPORT_CONFIRMATION:
            raise UserCancelled()
        if self.ask(f"Confirm again by typing the wallet name '{account.name}': ").strip() != account.name:
            raise UserCancelled()

        logger.warning("Private key for wallet '%s' exported to the terminal", account.name)
        self.console.print(f"[green]Wallet:[/green] {account.name}")
        self.console.print(f"Address: {account.address}")
        self.console.print(f"Private key: {account.private_key}", markup=False, highlight=False, soft_wrap=True)
        self.console.print("[yellow]Never share this key or paste it into chats or cloud storage.[/yellow]")
        return account

    # ------------------------------------------------------------------
    # Shelby CLI pass-through
    # ------------------------------------------------------------------

    def faucet(self, run_now: bool | None = None) -> bool:
        """Show funding guidance and optionally run ``shelby faucet``.

        A failing faucet command is reported, not raised. Returns whether
        the faucet command ran successfully.
        """
        account = self.resolve_active()
        context = get_context(DEFAULT_CONTEXT)

        self.console.print(Panel(
            f"Address: [cyan]{account.address}[/cyan]\n\n"
            "[bold](1) ShelbyUSD[/bold] (pays for uploads)\n"
            "    shelby faucet --no-open\n\n"
            "[bold](2) APT[/bold] (gas)\n"
            f"    Fund this address from the Aptos faucet for {context.name} ({context.faucet}).\n"
            "    Faucets differ per network, so this step is left to you.",
            title="Faucet",
        ))

        if run_now is None:
            run_now = self._confirm("Run 'shelby faucet --no-open' now and show the link?", default_yes=True)
        if not run_now:
            return False

        try:
            output = self.shelby.faucet()
        except ExternalCommandFailure as exc:
            logger.warning("Faucet command failed: %s", exc)
            self.console.print(f"[yellow]Faucet command failed (exit code {exc.returncode}).[/yellow]")
            return False

        if output.strip():
            self.console.print(output.rstrip(), markup=False, highlight=False)
        urls = extract_urls(output)
        if urls:
            if self._confirm(f"Open {urls[0]} in your browser?", default_yes=False):
                self.open_url(urls[0])
        else:
            self.console.print("[dim]No link found in the faucet output; copy it manually if shown.[/dim]")
        return True

    def upload(
        self,
        src: str | Path | None = None,
        dst: str | None = None,
        expiration: str | None = None,
        verify: bool | None = None,
    ) -> UploadResult:
        """Upload a local file, then optionally download it and compare digests.

        The source file is checked before the Shelby CLI is invoked.
        Upload and download failures abort the action.
        """
        self.resolve_active()

        if src is None:
            src = self._prompt("Local file path: ")
        if not str(src).strip():
            raise InvalidInput("File not found: (empty path)")
        path = Path(src).expanduser()
        if not path.is_file():
            raise InvalidInput(f"File not found: {src}")

        if dst is None:
            dst = self._prompt(f"Remote destination (default files/{path.name}): ", f"files/{path.name}")
        if expiration is None:
            expiration = self._prompt(
                f"Expiration (default '{self.default_expiration}', e.g. 'in 2 days'): ",
                self.default_expiration,
            )

        self.console.print("[blue]Uploading:[/blue]")
        self.console.print(f"  src: {path}", markup=False)
        self.console.print(f"  dst: {dst}", markup=False)
        self.console.print(f"  exp: {expiration}", markup=False)

        self.shelby.upload(path, dst, expiration)
        self.console.print("[green]Upload complete.[/green]")
        result = UploadResult(src=path, dst=dst, expiration=expiration)

        if verify is None:
            verify = self._confirm("Download it again to verify?", default_yes=True)
        if verify:
            self._verify(result)
        return result

    def _verify(self, result: UploadResult) -> None:
        download_dir = Path(tempfile.mkdtemp(prefix="shelby_download_"))
        download_path = download_dir / result.src.name
        self.console.print(f"[blue]Downloading:[/blue] {result.dst} -> {download_path}")
        try:
            self.shelby.download(result.dst, download_path)
        except ExternalCommandFailure:
            shutil.rmtree(download_dir, ignore_errors=True)
            raise

        try:
            result.local_sha256 = sha256_file(result.src)
            result.remote_sha256 = sha256_file(download_path)
        except OSError:
            shutil.rmtree(download_dir, ignore_errors=True)
            raise
        result.verified = result.local_sha256 == result.remote_sha256

        table = Table(title="SHA-256")
        table.add_column("File")
        table.add_column("Digest", style="cyan")
        table.add_row(str(result.src), result.local_sha256)
        table.add_row(result.dst, result.remote_sha256)
        self.console.print(table)

        if result.verified:
            shutil.rmtree(download_dir, ignore_errors=True)
            self.console.print("[green]Checksums match.[/green]")
        else:
            # Keep the mismatching copy around for inspection.
            result.download_path = download_path
            logger.warning("Checksum mismatch for %s (kept %s)", result.dst, download_path)
            self.console.print(f"[red]Checksums differ![/red] Downloaded copy kept at {download_path}")
