"""Rendering of the Shelby CLI configuration document (``config.yaml``).

The document is always rebuilt from scratch out of the active account, the
compiled-in network contexts and the optional API keys. Manual edits to the
file do not survive the next write.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from shelby_wizard.config import ApiKeys
from shelby_wizard.fs import write_private_text
from shelby_wizard.networks import CONTEXTS, DEFAULT_CONTEXT, NetworkContext
from shelby_wizard.wallet.models import Account

logger = logging.getLogger("shelby_wizard.render")


# ---------------------------------------------------------------------------
# Pydantic v2 models
# ---------------------------------------------------------------------------


class AptosNetworkBlock(BaseModel):
    name: str
    fullnode: str
    faucet: str
    indexer: str
    pepper: str
    prover: str
    api_key: Optional[str] = None


class ShelbyNetworkBlock(BaseModel):
    rpc_endpoint: str
    rpc_api_key: Optional[str] = None
    indexer_api_key: Optional[str] = None


class ContextBlock(BaseModel):
    aptos_network: AptosNetworkBlock
    shelby_network: ShelbyNetworkBlock


class AccountBlock(BaseModel):
    private_key: str = Field(repr=False)
    address: str


class ShelbyConfig(BaseModel):
    """Root of ``config.yaml`` as consumed by the Shelby CLI."""

    contexts: dict[str, ContextBlock] = Field(default_factory=dict)
    accounts: dict[str, AccountBlock] = Field(default_factory=dict)
    default_context: str = DEFAULT_CONTEXT
    default_account: str = ""


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


def _key(value: str) -> str | None:
    # Empty keys are dropped from the document entirely.
    return value or None


def build_context(context: NetworkContext, api_keys: ApiKeys) -> ContextBlock:
    """Build one ``contexts.<name>`` block."""
    return ContextBlock(
        aptos_network=AptosNetworkBlock(
            name=context.name,
            fullnode=context.fullnode,
            faucet=context.faucet,
            indexer=context.indexer,
            pepper=context.pepper,
            prover=context.prover,
            api_key=_key(api_keys.aptos),
        ),
        shelby_network=ShelbyNetworkBlock(
            rpc_endpoint=context.rpc_endpoint,
            rpc_api_key=_key(api_keys.shelby_rpc),
            indexer_api_key=(
                _key(api_keys.shelby_indexer) if context.accepts_indexer_api_key else None
            ),
        ),
    )


def build_config(account: Account, api_keys: ApiKeys) -> ShelbyConfig:
    """Assemble the full document model for *account*."""
    return ShelbyConfig(
        contexts={name: build_context(ctx, api_keys) for name, ctx in CONTEXTS.items()},
        accounts={
            account.name: AccountBlock(
                private_key=account.private_key,
                address=account.address,
            )
        },
        default_context=DEFAULT_CONTEXT,
        default_account=account.name,
    )


class ConfigRenderer:
    """Writes ``config.yaml`` for the active account.

    Parameters
    ----------
    config_file:
        Destination of the rendered document.
    api_keys:
        Optional API keys; empty values are omitted from the output.
    """

    def __init__(self, config_file: Path, api_keys: ApiKeys | None = None) -> None:
        self.config_file = config_file
        self.api_keys = api_keys or ApiKeys()

    def render(self, account: Account) -> str:
        """Return the YAML text for *account*. Does not touch the disk."""
        data = build_config(account, self.api_keys).model_dump(mode="python", exclude_none=True)
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)

    def write(self, account: Account) -> Path:
        """Render for *account* and replace the config file (mode 0600)."""
        write_private_text(self.config_file, self.render(account))
        logger.info("Config written to %s for wallet '%s'", self.config_file, account.name)
        return self.config_file

    def load(self) -> ShelbyConfig | None:
        """Parse the current config file, or ``None`` if there is none."""
        if not self.config_file.exists():
            return None
        return load_config(self.config_file)


def load_config(path: Path) -> ShelbyConfig:
    """Load and validate a config document from a YAML file."""
    raw_data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return ShelbyConfig.model_validate(raw_data)
