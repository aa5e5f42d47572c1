"""Ed25519 key generation through the Aptos TypeScript SDK."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from shelby_wizard.errors import KeyGenerationError
from shelby_wizard.fs import ensure_private_dir
from shelby_wizard.system.commands import run
from shelby_wizard.wallet.models import GeneratedKey

logger = logging.getLogger("shelby_wizard.wallet.keygen")

APTOS_SDK_PACKAGE = "@aptos-labs/ts-sdk"

# Reads the SDK location from SHELBY_DEPS_NODE_MODULES and prints one JSON
# object: {"address": "0x...", "private_key": "ed25519-priv-0x..."}.
GENERATE_SCRIPT = r"""
const path = require("path");
const deps = process.env.SHELBY_DEPS_NODE_MODULES;
const { Account } = require(path.join(deps, "@aptos-labs", "ts-sdk"));

const acct = Account.generate();
const address = acct.accountAddress.toString();
const pkHex = Buffer.from(acct.privateKey.toUint8Array()).toString("hex");
process.stdout.write(JSON.stringify({ address, private_key: `ed25519-priv-0x${pkHex}` }));
"""


class KeyGenerator(Protocol):
    def generate(self) -> GeneratedKey: ...


class NodeKeyGenerator:
    """Generates Aptos ed25519 accounts by running the SDK under ``node``.

    The SDK is installed on first use into a private npm prefix
    (``<home>/_deps``) so it never touches the user's global packages.
    """

    def __init__(self, deps_dir: Path, node: str = "node", npm: str = "npm") -> None:
        self.deps_dir = deps_dir
        self.node = node
        self.npm = npm

    @property
    def node_modules(self) -> Path:
        return self.deps_dir / "node_modules"

    def has_sdk(self) -> bool:
        return (self.node_modules / "@aptos-labs" / "ts-sdk").is_dir()

    def ensure_sdk(self) -> None:
        if self.has_sdk():
            return
        ensure_private_dir(self.deps_dir)
        logger.info("Installing %s into %s", APTOS_SDK_PACKAGE, self.deps_dir)
        run([self.npm, "i", "--prefix", str(self.deps_dir), APTOS_SDK_PACKAGE], capture=True)

    def generate(self) -> GeneratedKey:
        """Create a fresh key pair.

        Raises
        ------
        MissingDependency
            If ``node`` or ``npm`` is not installed.
        ExternalCommandFailure
            If the SDK install or the generator script fails.
        KeyGenerationError
            If the script output is not a valid key pair.
        """
        self.ensure_sdk()
        env = dict(os.environ)
        env["SHELBY_DEPS_NODE_MODULES"] = str(self.node_modules)
        cmd = [self.node, "-"]
        proc = run(cmd, capture=True, input=GENERATE_SCRIPT, env=env)
        try:
            key = GeneratedKey.model_validate_json(proc.stdout.strip())
        except ValidationError as exc:
            # Never echo stdout here: it may contain the private key.
            raise KeyGenerationError(cmd, proc.returncode, "Key generator returned malformed output.") from exc
        logger.info("Generated new key pair for %s", key.address)
        return key
