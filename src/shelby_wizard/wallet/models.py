"""Pydantic models for wallet accounts and their on-disk records."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shelby_wizard.errors import InvalidInput


ACCOUNT_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$")

PRIVATE_KEY_PREFIX = "ed25519-priv-0x"


def validate_account_name(name: str) -> str:
    """Return *name* stripped, or raise :class:`InvalidInput`.

    Account names become file names and YAML keys, so path separators,
    leading dots and whitespace are rejected.
    """
    name = name.strip()
    if not ACCOUNT_NAME_RE.match(name):
        raise InvalidInput(
            f"Invalid wallet name '{name}'. Use letters, digits, '.', '_' or '-' "
            "(max 64 characters, must start with a letter or digit)."
        )
    return name


def _require_clean(value: str) -> str:
    if not value:
        raise ValueError("must not be empty")
    if value != value.strip():
        raise ValueError("must not have leading or trailing whitespace")
    return value


class Account(BaseModel):
    """A named wallet: address plus signing key."""

    model_config = ConfigDict(frozen=True)

    name: str
    address: str
    private_key: str = Field(repr=False)

    @field_validator("address", "private_key")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        return _require_clean(value)


class AccountRecord(BaseModel):
    """Serialized form of an account file (``accounts/<name>.json``)."""

    model_config = ConfigDict(populate_by_name=True)

    address: str = Field(alias="ADDRESS")
    private_key: str = Field(alias="PRIVATE_KEY", repr=False)

    @field_validator("address", "private_key")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        return _require_clean(value)

    def to_account(self, name: str) -> Account:
        return Account(name=name, address=self.address, private_key=self.private_key)


class GeneratedKey(BaseModel):
    """Output of a key generator: ``{"address": ..., "private_key": ...}``."""

    address: str
    private_key: str = Field(repr=False)

    @field_validator("address")
    @classmethod
    def _hex_address(cls, value: str) -> str:
        if not value.startswith("0x") or len(value) < 3:
            raise ValueError("address must be 0x-prefixed hex")
        return value

    @field_validator("private_key")
    @classmethod
    def _tagged_key(cls, value: str) -> str:
        if not value.startswith(PRIVATE_KEY_PREFIX) or len(value) <= len(PRIVATE_KEY_PREFIX):
            raise ValueError(f"private key must start with '{PRIVATE_KEY_PREFIX}'")
        return value
