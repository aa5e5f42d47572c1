"""Network contexts written into the Shelby CLI config.

The endpoints are fixed; only API keys vary between renders.
"""

from __future__ import annotations

from dataclasses import dataclass


KEYLESS_PEPPER_URL = "https://api.devnet.aptoslabs.com/keyless/pepper/v0"
KEYLESS_PROVER_URL = "https://api.devnet.aptoslabs.com/keyless/prover/v0"

DEFAULT_CONTEXT = "shelbynet"


@dataclass(frozen=True)
class NetworkContext:
    """One named context: an Aptos network plus a Shelby RPC endpoint."""

    name: str
    fullnode: str
    faucet: str
    indexer: str
    rpc_endpoint: str
    pepper: str = KEYLESS_PEPPER_URL
    prover: str = KEYLESS_PROVER_URL
    accepts_indexer_api_key: bool = False


CONTEXTS: dict[str, NetworkContext] = {
    "local": NetworkContext(
        name="local",
        fullnode="http://127.0.0.1:8080/v1",
        faucet="http://127.0.0.1:8081",
        indexer="http://127.0.0.1:8090/v1/graphql",
        rpc_endpoint="http://localhost:9090/",
    ),
    "shelbynet": NetworkContext(
        name="shelbynet",
        fullnode="https://api.shelbynet.shelby.xyz/v1",
        faucet="https://faucet.shelbynet.shelby.xyz",
        indexer="https://api.shelbynet.shelby.xyz/v1/graphql",
        rpc_endpoint="https://api.shelbynet.shelby.xyz/shelby",
        accepts_indexer_api_key=True,
    ),
}


def get_context(name: str) -> NetworkContext:
    """Get a context by name. Raises ``KeyError`` if not found."""
    if name not in CONTEXTS:
        raise KeyError(
            f"Unknown context '{name}'. Available: {list_context_names()}"
        )
    return CONTEXTS[name]


def list_context_names() -> list[str]:
    """Return the context names in the order they are rendered."""
    return list(CONTEXTS.keys())
