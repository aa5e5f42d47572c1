"""Per-account credential files and the active-account pointer."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from shelby_wizard.config import DEFAULT_ACCOUNT_NAME
from shelby_wizard.errors import InvalidInput
from shelby_wizard.fs import ensure_private_dir, write_private_text
from shelby_wizard.wallet.models import ACCOUNT_NAME_RE, Account, AccountRecord, validate_account_name

logger = logging.getLogger("shelby_wizard.wallet.store")

RECORD_SUFFIX = ".json"
LEGACY_SUFFIX = ".env"

_LEGACY_LINE_RE = re.compile(r'^\s*(ADDRESS|PRIVATE_KEY)\s*=\s*"?([^"\n]*)"?\s*$')


class AccountStore:
    """Reads and writes wallet records under ``<home>/accounts``.

    Each account lives in its own ``<name>.json`` file holding ``ADDRESS``
    and ``PRIVATE_KEY``. The currently selected account name is kept in a
    separate one-line pointer file.
    """

    def __init__(self, accounts_dir: Path, active_account_file: Path) -> None:
        self.accounts_dir = accounts_dir
        self.active_account_file = active_account_file

    # ------------------------------------------------------------------
    # Account records
    # ------------------------------------------------------------------

    def account_path(self, name: str) -> Path:
        return self.accounts_dir / f"{validate_account_name(name)}{RECORD_SUFFIX}"

    def has_account(self, name: str) -> bool:
        """Whether a record file exists for *name*, valid or not."""
        return self.account_path(name).exists()

    def write_account(self, name: str, address: str, private_key: str) -> Account:
        """Create or overwrite the record for *name*.

        Raises ``OSError`` if the file cannot be written.
        """
        account = Account(name=validate_account_name(name), address=address, private_key=private_key)
        record = AccountRecord(address=account.address, private_key=account.private_key)
        payload = json.dumps(record.model_dump(by_alias=True), indent=2) + "\n"
        write_private_text(self.account_path(account.name), payload)
        logger.info("Saved wallet record '%s' (%s)", account.name, account.address)
        return account

    def read_account(self, name: str) -> Account | None:
        """Load the account called *name*.

        Returns ``None`` if no record exists or the record is unreadable or
        incomplete.
        """
        path = self.account_path(name)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            record = AccountRecord.model_validate(data)
        except (OSError, ValueError) as exc:
            # JSONDecodeError and pydantic ValidationError are both ValueErrors
            logger.warning("Ignoring unreadable wallet record %s: %s", path, exc)
            return None
        return record.to_account(validate_account_name(name))

    def list_accounts(self) -> list[str]:
        """Return the names of all stored accounts, sorted."""
        if not self.accounts_dir.is_dir():
            return []
        return sorted(
            p.stem
            for p in self.accounts_dir.glob(f"*{RECORD_SUFFIX}")
            if p.is_file() and ACCOUNT_NAME_RE.match(p.stem)
        )

    # ------------------------------------------------------------------
    # Active account pointer
    # ------------------------------------------------------------------

    def active_account_name(self) -> str:
        """Return the selected account name, ``"alice"`` if none is set."""
        try:
            name = self.active_account_file.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return DEFAULT_ACCOUNT_NAME
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read %s: %s", self.active_account_file, exc)
            return DEFAULT_ACCOUNT_NAME
        if not name:
            return DEFAULT_ACCOUNT_NAME
        try:
            return validate_account_name(name)
        except InvalidInput:
            logger.warning("Ignoring invalid active wallet name in %s", self.active_account_file)
            return DEFAULT_ACCOUNT_NAME

    def set_active_account(self, name: str) -> None:
        name = validate_account_name(name)
        write_private_text(self.active_account_file, name + "\n")
        logger.info("Active wallet is now '%s'", name)

    # ------------------------------------------------------------------
    # Legacy layout
    # ------------------------------------------------------------------

    def migrate_legacy_accounts(self) -> list[str]:
        """Convert ``<name>.env`` records into ``<name>.json`` records.

        Older versions of the wizard stored accounts as shell-sourced
        ``KEY="value"`` files. Records that already have a JSON counterpart
        are left alone, so this is idempotent. Returns the migrated names.
        """
        if not self.accounts_dir.is_dir():
            return []
        migrated: list[str] = []
        for legacy in sorted(self.accounts_dir.glob(f"*{LEGACY_SUFFIX}")):
            name = legacy.stem
            try:
                target = self.account_path(name)
            except InvalidInput:
                logger.warning("Skipping legacy record with unusable name: %s", legacy)
                continue
            if target.exists():
                continue
            try:
                fields = _parse_legacy_record(legacy.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Skipping unreadable legacy record %s: %s", legacy, exc)
                continue
            if not fields.get("ADDRESS") or not fields.get("PRIVATE_KEY"):
                logger.warning("Skipping incomplete legacy record %s", legacy)
                continue
            self.write_account(name, fields["ADDRESS"], fields["PRIVATE_KEY"])
            migrated.append(name)
        if migrated:
            logger.info("Migrated legacy wallet records: %s", ", ".join(migrated))
        return migrated

    def ensure_layout(self) -> None:
        ensure_private_dir(self.accounts_dir)


def _parse_legacy_record(text: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for line in text.splitlines():
        match = _LEGACY_LINE_RE.match(line)
        if match:
            fields[match.group(1)] = match.group(2).strip()
    return fields
