"""Thin subprocess helpers shared by the preflight, key generator and CLI wrapper."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from typing import Optional

from shelby_wizard.errors import ExternalCommandFailure, MissingDependency

logger = logging.getLogger("shelby_wizard.system.commands")


def which(cmd: str, environ: Mapping[str, str] | None = None) -> Optional[str]:
    env = os.environ if environ is None else environ
    return shutil.which(cmd, path=env.get("PATH"))


def run(
    cmd: Sequence[str],
    check: bool = True,
    capture: bool = False,
    input: str | None = None,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess:
    """Run *cmd* and wait for it.

    With ``capture=False`` the child inherits the terminal, so progress bars
    and prompts from the tool reach the user directly.

    Raises
    ------
    MissingDependency
        If the executable does not exist.
    ExternalCommandFailure
        If ``check`` is set and the command exits non-zero.
    """
    kwargs: dict = {}
    if capture:
        kwargs["stdout"] = subprocess.PIPE
        kwargs["stderr"] = subprocess.PIPE
        kwargs["text"] = True
    if input is not None:
        kwargs["input"] = input
        kwargs["text"] = True
    if env is not None:
        kwargs["env"] = dict(env)

    logger.debug("Running: %s", " ".join(cmd))
    try:
        proc = subprocess.run(list(cmd), check=False, **kwargs)
    except FileNotFoundError as exc:
        raise MissingDependency(cmd[0]) from exc

    if check and proc.returncode != 0:
        detail = (proc.stderr or "").strip() if capture else ""
        raise ExternalCommandFailure(list(cmd), proc.returncode, detail)
    return proc
