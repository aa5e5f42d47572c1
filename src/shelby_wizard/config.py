"""Runtime settings for Shelby Wizard.

Settings come from the environment (and the ``--home`` CLI option). Network
endpoints are *not* settings; they live in :mod:`shelby_wizard.networks`.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


DEFAULT_ACCOUNT_NAME = "alice"
DEFAULT_EXPIRATION = "in 2 days"

HOME_ENV_VAR = "SHELBY_HOME"


# ---------------------------------------------------------------------------
# Pydantic v2 models
# ---------------------------------------------------------------------------


class ApiKeys(BaseModel):
    """Optional API keys copied into the rendered config document.

    An empty string means "not configured"; such keys are left out of the
    document entirely.
    """

    shelby_rpc: str = ""        # ${SHELBY_RPC_API_KEY}
    shelby_indexer: str = ""    # ${SHELBY_INDEXER_API_KEY}
    aptos: str = ""             # ${APTOS_API_KEY}

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ApiKeys:
        env = os.environ if environ is None else environ
        return cls(
            shelby_rpc=env.get("SHELBY_RPC_API_KEY", "").strip(),
            shelby_indexer=env.get("SHELBY_INDEXER_API_KEY", "").strip(),
            aptos=env.get("APTOS_API_KEY", "").strip(),
        )


class WizardSettings(BaseModel):
    """Everything the wizard needs to know about its environment."""

    home: Path
    api_keys: ApiKeys = Field(default_factory=ApiKeys)
    default_expiration: str = DEFAULT_EXPIRATION
    shelby_bin: str = "shelby"

    @classmethod
    def from_env(
        cls,
        home: Optional[Path] = None,
        environ: Mapping[str, str] | None = None,
    ) -> WizardSettings:
        """Build settings, resolving the home directory.

        Precedence for the home directory: the *home* argument, then
        ``$SHELBY_HOME``, then ``~/.shelby``.
        """
        env = os.environ if environ is None else environ
        return cls(
            home=get_home_dir(home, env),
            api_keys=ApiKeys.from_env(env),
        )

    # -- derived paths ---------------------------------------------------

    @property
    def accounts_dir(self) -> Path:
        return self.home / "accounts"

    @property
    def config_file(self) -> Path:
        return self.home / "config.yaml"

    @property
    def active_account_file(self) -> Path:
        return self.home / "active_account"

    @property
    def deps_dir(self) -> Path:
        """npm prefix holding the Aptos SDK used for key generation."""
        return self.home / "_deps"


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def get_home_dir(home: Path | None = None, environ: Mapping[str, str] | None = None) -> Path:
    """Return the wizard state directory (no auto-create)."""
    if home is not None:
        return Path(home).expanduser()
    env = os.environ if environ is None else environ
    override = env.get(HOME_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".shelby"
