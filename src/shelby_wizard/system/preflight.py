"""Best-effort detection and installation of the tools Shelby needs.

Order of operations:

1. base tools (``curl``, ``git``) through the OS package manager;
2. Node.js + npm (Homebrew on macOS, otherwise nvm);
3. the Shelby CLI from npm (``@shelby-protocol/cli``).

Anything that cannot be installed raises :class:`MissingDependency`.
"""

from __future__ import annotations

import logging
import os
import platform
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from shelby_wizard.errors import ExternalCommandFailure, MissingDependency
from shelby_wizard.system.commands import run, which

logger = logging.getLogger("shelby_wizard.system.preflight")

NVM_INSTALL_URL = "https://raw.githubusercontent.com/nvm-sh/nvm/v0.39.7/install.sh"
SHELBY_CLI_PACKAGE = "@shelby-protocol/cli"
BASE_TOOLS = ("curl", "git")

# Probed in this order; the first one found wins.
PACKAGE_MANAGERS = ("apt", "yum", "dnf", "pacman", "brew")
_MANAGER_BINARIES = {"apt": "apt-get"}


@dataclass
class ToolStatus:
    """Result of checking a single tool."""

    name: str
    path: Optional[str] = None
    version: str = ""
    installed_now: bool = False

    @property
    def found(self) -> bool:
        return self.path is not None


def install_commands(manager: str, package: str, sudo: bool) -> list[list[str]]:
    """Return the commands that install *package* with *manager*.

    Raises ``KeyError`` for an unknown package manager.
    """
    prefix = ["sudo"] if sudo and manager != "brew" else []
    commands = {
        "apt": [
            prefix + ["apt-get", "update", "-y"],
            prefix + ["apt-get", "install", "-y", package],
        ],
        "yum": [prefix + ["yum", "install", "-y", package]],
        "dnf": [prefix + ["dnf", "install", "-y", package]],
        "pacman": [prefix + ["pacman", "-Sy", "--noconfirm", package]],
        "brew": [["brew", "install", package]],
    }
    return commands[manager]


class Preflight:
    """Checks for, and where possible installs, the wizard's dependencies.

    Installers run attached to the terminal so their own output (and any
    ``sudo`` password prompt) is visible. PATH changes made while
    installing Node or the Shelby CLI are applied to *environ*, which is
    ``os.environ`` unless a mapping is passed in.
    """

    def __init__(
        self,
        shelby_bin: str = "shelby",
        environ: MutableMapping[str, str] | None = None,
        notify: Callable[[str], None] | None = None,
        system: str | None = None,
    ) -> None:
        self.shelby_bin = shelby_bin
        self.environ = os.environ if environ is None else environ
        self.notify = notify or (lambda message: None)
        self.system = (system or platform.system()).lower()

    # ------------------------------------------------------------------
    # Package manager
    # ------------------------------------------------------------------

    def _which(self, cmd: str) -> Optional[str]:
        return which(cmd, self.environ)

    def detect_package_manager(self) -> str:
        for manager in PACKAGE_MANAGERS:
            if self._which(_MANAGER_BINARIES.get(manager, manager)):
                return manager
        return "unknown"

    def install_package(self, package: str) -> bool:
        """Try to install *package*; return whether every step succeeded."""
        manager = self.detect_package_manager()
        if manager == "unknown":
            logger.warning("No supported package manager found to install %s", package)
            return False
        sudo = self._which("sudo") is not None
        for cmd in install_commands(manager, package, sudo):
            try:
                run(cmd, env=self.environ)
            except (ExternalCommandFailure, MissingDependency) as exc:
                logger.warning("Installing %s failed: %s", package, exc)
                return False
        return True

    def ensure_tool(self, name: str) -> ToolStatus:
        path = self._which(name)
        if path:
            return ToolStatus(name, path)
        self.notify(f"{name} not found, trying to install it...")
        if not self.install_package(name) or not self._which(name):
            raise MissingDependency(name, f"Install {name} manually and try again.")
        return ToolStatus(name, self._which(name), installed_now=True)

    # ------------------------------------------------------------------
    # Node.js / npm
    # ------------------------------------------------------------------

    def _has_node(self) -> bool:
        return self._which("node") is not None and self._which("npm") is not None

    def _prepend_path(self, directory: str) -> None:
        current = self.environ.get("PATH", "")
        if directory and directory not in current.split(os.pathsep):
            self.environ["PATH"] = directory + (os.pathsep + current if current else "")
            logger.debug("Added %s to PATH", directory)

    def install_node_via_nvm(self) -> None:
        home = Path(self.environ.get("HOME") or Path.home())
        nvm_dir = home / ".nvm"
        self.notify("Installing Node.js (LTS) with nvm...")
        if not nvm_dir.is_dir():
            run(["bash", "-c", f"curl -fsSL {NVM_INSTALL_URL} | bash"], env=self.environ)
        nvm_sh = nvm_dir / "nvm.sh"
        if not nvm_sh.is_file():
            raise MissingDependency(
                "nvm", "nvm did not install correctly; open a new terminal or install Node.js manually."
            )
        # nvm is a shell function; ask it where the LTS node binary lives.
        script = (
            f'. "{nvm_sh}" && nvm install --lts >&2 && nvm use --lts >&2 '
            '&& dirname "$(command -v node)"'
        )
        proc = run(["bash", "-c", script], capture=True, env=self.environ)
        self._prepend_path(proc.stdout.strip())

    def ensure_node(self) -> ToolStatus:
        if self._has_node():
            return ToolStatus("node", self._which("node"), self._version(["node", "-v"]))

        self.notify("node/npm not found, installing...")
        if self.system == "darwin" and self._which("brew"):
            try:
                run(["brew", "install", "node"], env=self.environ)
            except ExternalCommandFailure as exc:
                logger.warning("brew install node failed: %s", exc)
        if not self._has_node():
            try:
                self.install_node_via_nvm()
            except ExternalCommandFailure as exc:
                raise MissingDependency("node", "nvm could not install Node.js; install it manually.") from exc
        if not self._has_node():
            raise MissingDependency("node", "Install Node.js (with npm) manually and try again.")
        return ToolStatus("node", self._which("node"), self._version(["node", "-v"]), installed_now=True)

    # ------------------------------------------------------------------
    # Shelby CLI
    # ------------------------------------------------------------------

    def ensure_shelby_cli(self) -> ToolStatus:
        if self._which(self.shelby_bin):
            return ToolStatus("shelby", self._which(self.shelby_bin), self._version([self.shelby_bin, "--version"]))

        self.notify(f"Installing Shelby CLI: npm i -g {SHELBY_CLI_PACKAGE}")
        try:
            run(["npm", "i", "-g", SHELBY_CLI_PACKAGE], env=self.environ)
        except ExternalCommandFailure as exc:
            raise MissingDependency("shelby", f"npm could not install {SHELBY_CLI_PACKAGE}.") from exc

        prefix = self._version(["npm", "config", "get", "prefix"])
        if prefix:
            self._prepend_path(str(Path(prefix) / "bin"))

        if not self._which(self.shelby_bin):
            raise MissingDependency(
                "shelby",
                "Installed the Shelby CLI but the 'shelby' command is still not on PATH. "
                "Check that `npm config get prefix`/bin is on your PATH.",
            )
        return ToolStatus(
            "shelby", self._which(self.shelby_bin), self._version([self.shelby_bin, "--version"]), installed_now=True
        )

    # ------------------------------------------------------------------

    def _version(self, cmd: list[str]) -> str:
        try:
            proc = run(cmd, check=False, capture=True, env=self.environ)
        except MissingDependency:
            return ""
        if proc.returncode != 0:
            return ""
        return (proc.stdout or "").strip()

    def run_all(self) -> list[ToolStatus]:
        """Check and install everything, in dependency order."""
        results = [self.ensure_tool(name) for name in BASE_TOOLS]
        results.append(self.ensure_node())
        results.append(self.ensure_shelby_cli())
        return results
