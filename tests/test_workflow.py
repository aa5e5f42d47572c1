import hashlib
from pathlib import Path

import pytest
import yaml

from shelby_wizard.errors import AccountNotFound, ExternalCommandFailure, InvalidInput, UserCancelled
from shelby_wizard.wallet.models import GeneratedKey
from shelby_wizard.wallet.workflow import sha256_file


def _snapshot(settings):
    files = sorted(p for p in settings.home.rglob("*") if p.is_file()) if settings.home.exists() else []
    return {p: p.read_bytes() for p in files}


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_create_with_default_name(make_workflow, store, settings, keygen, output):
    workflow, ask = make_workflow("")

    account = workflow.create()

    assert account.name == "alice"
    assert keygen.calls == 1
    assert store.active_account_name() == "alice"
    assert store.read_account("alice") == account
    doc = yaml.safe_load(settings.config_file.read_text())
    assert doc["default_account"] == "alice"
    assert doc["accounts"]["alice"]["address"] == account.address
    assert "Wallet created: alice" in output()
    assert ask.prompts == ["Wallet name (default alice): "]


@pytest.mark.unit
def test_create_named_account_uses_generated_key(make_workflow, store, keygen, settings):
    keygen.keys.append(GeneratedKey(address="0xAB12", private_key="ed25519-priv-0xdead"))
    workflow, _ = make_workflow("bob")

    workflow.create()

    assert store.active_account_name() == "bob"
    doc = yaml.safe_load(settings.config_file.read_text())
    assert doc["accounts"] == {"bob": {"private_key": "ed25519-priv-0xdead", "address": "0xAB12"}}


@pytest.mark.unit
@pytest.mark.parametrize("answer", ["", "N", "n", "yes", "Yes"])
def test_overwrite_declined_keeps_existing_record(make_workflow, store, keygen, answer):
    store.write_account("bob", "0xAB12", "ed25519-priv-0xdead")
    workflow, _ = make_workflow("bob", answer)

    with pytest.raises(UserCancelled):
        workflow.create()

    account = store.read_account("bob")
    assert (account.address, account.private_key) == ("0xAB12", "ed25519-priv-0xdead")
    assert keygen.calls == 0


@pytest.mark.unit
@pytest.mark.parametrize("answer", ["y", "Y"])
def test_overwrite_confirmed_regenerates(make_workflow, store, answer):
    store.write_account("bob", "0xAB12", "ed25519-priv-0xdead")
    workflow, ask = make_workflow(answer)

    account = workflow.create("bob")

    assert account.address != "0xAB12"
    assert store.read_account("bob").address == account.address
    assert ask.prompts == ["Overwrite it with a newly generated key? (y/N): "]


@pytest.mark.unit
def test_quiet_create_prints_nothing(make_workflow, output):
    workflow, _ = make_workflow()

    workflow.create("alice", quiet=True)

    assert output() == ""


@pytest.mark.unit
def test_create_rejects_bad_name_before_generating(make_workflow, keygen):
    workflow, _ = make_workflow("../oops")

    with pytest.raises(InvalidInput):
        workflow.create()
    assert keygen.calls == 0


# ---------------------------------------------------------------------------
# bootstrap
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_bootstrap_creates_alice_quietly(make_workflow, store, settings, keygen, output):
    workflow, _ = make_workflow()

    account = workflow.ensure_config()

    assert account.name == "alice"
    assert keygen.calls == 1
    assert store.active_account_name() == "alice"
    assert settings.config_file.exists()
    assert output() == ""


@pytest.mark.unit
def test_bootstrap_rerenders_existing_active_account(make_workflow, store, settings, keygen):
    store.write_account("bob", "0xAB12", "ed25519-priv-0xdead")
    store.set_active_account("bob")
    workflow, _ = make_workflow()

    workflow.ensure_config()

    assert keygen.calls == 0
    assert yaml.safe_load(settings.config_file.read_text())["default_account"] == "bob"


@pytest.mark.unit
def test_bootstrap_falls_back_to_existing_alice(make_workflow, store, keygen):
    store.write_account("alice", "0xA11CE", "ed25519-priv-0xa11ce")
    store.set_active_account("ghost")
    workflow, _ = make_workflow()

    account = workflow.ensure_config()

    assert account.address == "0xA11CE"
    assert keygen.calls == 0
    assert store.active_account_name() == "alice"


@pytest.mark.unit
def test_bootstrap_migrates_legacy_records(make_workflow, store, settings, keygen):
    settings.accounts_dir.mkdir(parents=True)
    (settings.accounts_dir / "alice.env").write_text('ADDRESS="0xabc"\nPRIVATE_KEY="ed25519-priv-0x123"\n')
    workflow, _ = make_workflow()

    account = workflow.ensure_config()

    assert account.address == "0xabc"
    assert keygen.calls == 0


# ---------------------------------------------------------------------------
# show / list / use
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_show_without_account_writes_nothing(make_workflow, settings, keygen):
    workflow, _ = make_workflow()

    with pytest.raises(AccountNotFound):
        workflow.show()

    assert _snapshot(settings) == {}
    assert keygen.calls == 0


@pytest.mark.unit
def test_show_prints_address(make_workflow, store, output):
    store.write_account("alice", "0xA11CE", "ed25519-priv-0xa11ce")
    workflow, _ = make_workflow()

    workflow.show()

    assert "0xA11CE" in output()
    assert "ed25519-priv-0xa11ce" not in output()


@pytest.mark.unit
def test_list_marks_active(make_workflow, store, output):
    store.write_account("alice", "0xA11CE", "ed25519-priv-0xa11ce")
    store.write_account("bob", "0xB0B", "ed25519-priv-0xb0b")
    store.set_active_account("bob")
    workflow, _ = make_workflow()

    assert workflow.list_accounts() == ["alice", "bob"]
    assert "0xB0B" in output()


@pytest.mark.unit
def test_use_switches_and_rerenders(make_workflow, store, settings):
    store.write_account("alice", "0xA11CE", "ed25519-priv-0xa11ce")
    store.write_account("bob", "0xB0B", "ed25519-priv-0xb0b")
    workflow, _ = make_workflow()

    workflow.use("bob")

    assert store.active_account_name() == "bob"
    assert yaml.safe_load(settings.config_file.read_text())["default_account"] == "bob"


@pytest.mark.unit
def test_use_unknown_account(make_workflow, store):
    workflow, _ = make_workflow()

    with pytest.raises(AccountNotFound):
        workflow.use("nobody")
    assert store.active_account_name() == "alice"


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_export_with_both_confirmations(make_workflow, store, output):
    store.write_account("alice", "0xA11CE", "ed25519-priv-0xa11ce")
    workflow, ask = make_workflow("EXPORT", "alice")

    workflow.export_private_key()

    assert "Private key: ed25519-priv-0xa11ce" in output()
    assert len(ask.prompts) == 2


@pytest.mark.unit
@pytest.mark.parametrize(
    "answers",
    [
        ("export", "alice"),
        ("EXPORT", "wrong-name"),
        ("EXPORT", "Alice"),
        ("", ""),
        ("EXPORT ", "bob"),
    ],
)
def test_export_mismatch_discloses_nothing(make_workflow, store, renderer, settings, output, answers):
    account = store.write_account("alice", "0xA11CE", "ed25519-priv-0xa11ce")
    renderer.write(account)
    before = _snapshot(settings)
    workflow, _ = make_workflow(*answers)

    with pytest.raises(UserCancelled):
        workflow.export_private_key()

    assert "ed25519-priv-0xa11ce" not in output()
    assert _snapshot(settings) == before


@pytest.mark.unit
def test_export_stops_after_first_mismatch(make_workflow, store):
    store.write_account("alice", "0xA11CE", "ed25519-priv-0xa11ce")
    workflow, ask = make_workflow("nope")

    with pytest.raises(UserCancelled):
        workflow.export_private_key()
    assert len(ask.prompts) == 1


@pytest.mark.unit
def test_export_without_account(make_workflow):
    workflow, ask = make_workflow()

    with pytest.raises(AccountNotFound):
        workflow.export_private_key()
    assert ask.prompts == []


# ---------------------------------------------------------------------------
# faucet
# ---------------------------------------------------------------------------


@pytest.fixture
def alice(store):
    return store.write_account("alice", "0xA11CE", "ed25519-priv-0xa11ce")


@pytest.mark.unit
def test_faucet_without_account(make_workflow, shelby):
    workflow, _ = make_workflow()

    with pytest.raises(AccountNotFound):
        workflow.faucet()
    assert shelby.faucet_calls == 0


@pytest.mark.unit
def test_faucet_default_runs_command(make_workflow, shelby, alice, output):
    opened = []
    workflow, _ = make_workflow("", "", open_url=opened.append)

    assert workflow.faucet() is True

    assert shelby.faucet_calls == 1
    assert "0xA11CE" in output()
    assert "https://faucet.shelbynet.shelby.xyz/?address=0x1" in output()
    assert opened == []


@pytest.mark.unit
def test_faucet_declined(make_workflow, shelby, alice):
    workflow, _ = make_workflow("n")

    assert workflow.faucet() is False
    assert shelby.faucet_calls == 0


@pytest.mark.unit
def test_faucet_opens_browser_when_asked(make_workflow, shelby, alice):
    opened = []
    workflow, _ = make_workflow("y", "y", open_url=opened.append)

    workflow.faucet()

    assert opened == ["https://faucet.shelbynet.shelby.xyz/?address=0x1"]


@pytest.mark.unit
def test_faucet_failure_is_not_fatal(make_workflow, shelby, alice, output):
    shelby.failing.add("faucet")
    workflow, _ = make_workflow()

    assert workflow.faucet(run_now=True) is False
    assert "exit code 3" in output()


# ---------------------------------------------------------------------------
# upload
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / "report.txt"
    path.write_bytes(b"hello shelby\n")
    return path


@pytest.mark.unit
def test_upload_missing_source_never_calls_cli(make_workflow, shelby, alice, tmp_path):
    workflow, _ = make_workflow(str(tmp_path / "nope.bin"))

    with pytest.raises(InvalidInput):
        workflow.upload()
    assert shelby.uploads == []


@pytest.mark.unit
def test_upload_rejects_directory_and_empty_path(make_workflow, shelby, alice, tmp_path):
    workflow, _ = make_workflow("")

    with pytest.raises(InvalidInput):
        workflow.upload()
    with pytest.raises(InvalidInput):
        workflow.upload(src=tmp_path)
    assert shelby.uploads == []


@pytest.mark.unit
def test_upload_requires_account(make_workflow, shelby, sample_file):
    workflow, _ = make_workflow()

    with pytest.raises(AccountNotFound):
        workflow.upload(src=sample_file)
    assert shelby.uploads == []


@pytest.mark.unit
def test_upload_defaults_and_verification(make_workflow, shelby, alice, sample_file):
    workflow, ask = make_workflow(str(sample_file), "", "", "")

    result = workflow.upload()

    assert shelby.uploads == [(sample_file, "files/report.txt", "in 2 days")]
    assert shelby.downloads[0][0] == "files/report.txt"
    assert result.verified is True
    assert result.local_sha256 == hashlib.sha256(b"hello shelby\n").hexdigest()
    assert result.remote_sha256 == result.local_sha256
    # Matching copy is cleaned up.
    assert not shelby.downloads[0][1].parent.exists()
    assert len(ask.prompts) == 4


@pytest.mark.unit
def test_upload_without_verification(make_workflow, shelby, alice, sample_file):
    workflow, _ = make_workflow()

    result = workflow.upload(src=sample_file, dst="docs/r.txt", expiration="in 7 days", verify=False)

    assert shelby.uploads == [(sample_file, "docs/r.txt", "in 7 days")]
    assert shelby.downloads == []
    assert result.verified is None


@pytest.mark.unit
def test_upload_checksum_mismatch_keeps_download(make_workflow, shelby, alice, sample_file, output):
    shelby.corrupt_downloads = True
    workflow, _ = make_workflow()

    result = workflow.upload(src=sample_file, dst="files/report.txt", expiration="in 2 days", verify=True)

    assert result.verified is False
    assert result.download_path is not None and result.download_path.exists()
    assert "Checksums differ" in output()


@pytest.mark.unit
def test_upload_failure_aborts(make_workflow, shelby, alice, sample_file, output):
    shelby.failing.add("upload")
    workflow, _ = make_workflow()

    with pytest.raises(ExternalCommandFailure):
        workflow.upload(src=sample_file, dst="files/report.txt", expiration="in 2 days", verify=True)
    assert shelby.downloads == []
    assert "Upload complete" not in output()


@pytest.mark.unit
def test_download_failure_aborts(make_workflow, shelby, alice, sample_file):
    shelby.failing.add("download")
    workflow, _ = make_workflow()

    with pytest.raises(ExternalCommandFailure):
        workflow.upload(src=sample_file, dst="files/report.txt", expiration="in 2 days", verify=True)
    assert len(shelby.uploads) == 1


@pytest.mark.unit
def test_sha256_file(tmp_path):
    path = tmp_path / "blob"
    path.write_bytes(b"x" * 3_000_000)

    assert sha256_file(path, chunk_size=1024) == hashlib.sha256(b"x" * 3_000_000).hexdigest()


@pytest.mark.unit
def test_missing_download_removes_temp_dir(make_workflow, shelby, alice, sample_file):
    def download_nothing(src, dst):
        shelby.downloads.append((src, Path(dst)))

    shelby.download = download_nothing
    workflow, _ = make_workflow()

    with pytest.raises(OSError):
        workflow.upload(src=sample_file, dst="files/report.txt", expiration="in 2 days", verify=True)
    assert not shelby.downloads[0][1].parent.exists()


@pytest.mark.unit
def test_bootstrap_survives_undecodable_legacy_record(make_workflow, store, settings, keygen):
    settings.accounts_dir.mkdir(parents=True)
    (settings.accounts_dir / "old.env").write_bytes(b'ADDRESS="\xff"\n')
    workflow, _ = make_workflow()

    account = workflow.ensure_config()

    assert account.name == "alice"
    assert keygen.calls == 1
    assert settings.config_file.exists()
