import io
from pathlib import Path

import pytest
from rich.console import Console

from shelby_wizard.config import ApiKeys, WizardSettings
from shelby_wizard.errors import ExternalCommandFailure
from shelby_wizard.render import ConfigRenderer
from shelby_wizard.wallet.models import GeneratedKey
from shelby_wizard.wallet.store import AccountStore
from shelby_wizard.wallet.workflow import WalletWorkflow


class FakeKeyGenerator:
    """Hands out predictable key pairs instead of running node."""

    def __init__(self, keys=None):
        self.keys = list(keys or [])
        self.calls = 0

    def generate(self):
        self.calls += 1
        if self.keys:
            return self.keys.pop(0)
        return GeneratedKey(
            address=f"0x{self.calls:064x}",
            private_key=f"ed25519-priv-0x{self.calls:064x}",
        )


class FakeShelby:
    """In-memory stand-in for the shelby binary."""

    def __init__(self):
        self.remote = {}
        self.uploads = []
        self.downloads = []
        self.faucet_calls = 0
        self.faucet_output = "Fund here: https://faucet.shelbynet.shelby.xyz/?address=0x1\n"
        self.failing = set()
        self.corrupt_downloads = False

    def version(self):
        return "shelby 0.1.0"

    def faucet(self):
        self.faucet_calls += 1
        if "faucet" in self.failing:
            raise ExternalCommandFailure(["shelby", "faucet", "--no-open"], 3)
        return self.faucet_output

    def upload(self, src, dst, expiration):
        if "upload" in self.failing:
            raise ExternalCommandFailure(["shelby", "upload", str(src), dst], 1)
        self.uploads.append((Path(src), dst, expiration))
        self.remote[dst] = Path(src).read_bytes()

    def download(self, src, dst):
        if "download" in self.failing:
            raise ExternalCommandFailure(["shelby", "download", src, str(dst)], 1)
        self.downloads.append((src, Path(dst)))
        data = self.remote[src]
        if self.corrupt_downloads:
            data = data + b"!"
        Path(dst).write_bytes(data)


class ScriptedAnswers:
    """Answers prompts in order and records what was asked."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {prompt!r}")
        return self.answers.pop(0)


@pytest.fixture
def settings(tmp_path):
    return WizardSettings(home=tmp_path / ".shelby")


@pytest.fixture
def store(settings):
    return AccountStore(settings.accounts_dir, settings.active_account_file)


@pytest.fixture
def renderer(settings):
    return ConfigRenderer(settings.config_file, ApiKeys())


@pytest.fixture
def keygen():
    return FakeKeyGenerator()


@pytest.fixture
def shelby():
    return FakeShelby()


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=200, color_system=None)


@pytest.fixture
def make_workflow(store, renderer, keygen, shelby, console):
    """Build a workflow whose prompts are answered by *answers*."""

    def _make(*answers, **kwargs):
        ask = ScriptedAnswers(*answers)
        workflow = WalletWorkflow(
            store=store,
            renderer=renderer,
            keygen=keygen,
            shelby=shelby,
            console=console,
            ask=ask,
            **kwargs,
        )
        return workflow, ask

    return _make


@pytest.fixture
def output(console):
    return lambda: console.file.getvalue()
