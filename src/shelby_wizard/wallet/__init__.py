"""Local wallet management for Shelby Wizard.

Wallets are Aptos ed25519 key pairs generated through the Aptos TypeScript
SDK and stored unencrypted, owner-readable only, under ``<home>/accounts``.
The active wallet is mirrored into the Shelby CLI ``config.yaml``.
"""
