"""Shelby Wizard - guided setup for the Shelby CLI.

Installs the tooling the Shelby CLI needs, manages local wallets and keeps
``~/.shelby/config.yaml`` in sync with the active wallet.
"""

__version__ = "0.3.0"
