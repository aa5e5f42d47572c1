"""Wrapper around the ``shelby`` command-line tool."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Protocol

from shelby_wizard.errors import MissingDependency
from shelby_wizard.system.commands import run

logger = logging.getLogger("shelby_wizard.shelby_cli")

_URL_RE = re.compile(r"https?://[^\s\"'<>]+")


class UploadService(Protocol):
    """The subset of the Shelby CLI the wizard relies on."""

    def version(self) -> str | None: ...

    def faucet(self) -> str: ...

    def upload(self, src: Path, dst: str, expiration: str) -> None: ...

    def download(self, src: str, dst: Path) -> None: ...


class ShelbyCLI:
    """Runs ``shelby`` sub-commands.

    Every method raises :class:`~shelby_wizard.errors.ExternalCommandFailure`
    on a non-zero exit. Deciding whether that failure is fatal is up to the
    caller.
    """

    def __init__(self, binary: str = "shelby") -> None:
        self.binary = binary

    def version(self) -> str | None:
        """Return ``shelby --version`` output, or ``None`` if unavailable."""
        try:
            proc = run([self.binary, "--version"], check=False, capture=True)
        except MissingDependency:
            return None
        if proc.returncode != 0:
            return None
        return proc.stdout.strip() or None

    def faucet(self) -> str:
        """Request a faucet link without opening a browser; return the output."""
        proc = run([self.binary, "faucet", "--no-open"], capture=True)
        return proc.stdout

    def upload(self, src: Path, dst: str, expiration: str) -> None:
        logger.info("Uploading %s -> %s (expires %s)", src, dst, expiration)
        run([self.binary, "upload", str(src), dst, "--expiration", expiration, "--assume-yes"])

    def download(self, src: str, dst: Path) -> None:
        logger.info("Downloading %s -> %s", src, dst)
        run([self.binary, "download", src, str(dst), "--force"])


def extract_urls(text: str) -> list[str]:
    """Return the URLs found in *text*, in order, without duplicates."""
    seen: list[str] = []
    for url in _URL_RE.findall(text):
        url = url.rstrip(".,;)")
        if url not in seen:
            seen.append(url)
    return seen
