import json
import subprocess
from pathlib import Path

import pytest

from shelby_wizard.errors import ExternalCommandFailure, KeyGenerationError
from shelby_wizard.wallet import keygen as keygen_module
from shelby_wizard.wallet.keygen import APTOS_SDK_PACKAGE, NodeKeyGenerator
from shelby_wizard.wallet.models import GeneratedKey


ADDRESS = "0x" + "ab" * 32
PRIVATE_KEY = "ed25519-priv-0x" + "cd" * 32


class FakeNode:
    def __init__(self, monkeypatch, stdout, returncode=0):
        self.stdout = stdout
        self.returncode = returncode
        self.calls = []
        monkeypatch.setattr(keygen_module, "run", self.run)

    def run(self, cmd, check=True, capture=False, input=None, env=None):
        self.calls.append({"cmd": list(cmd), "input": input, "env": env})
        if cmd[0] == "npm":
            prefix = cmd[cmd.index("--prefix") + 1]
            sdk = f"{prefix}/node_modules/@aptos-labs/ts-sdk"
            Path(sdk).mkdir(parents=True)
            return subprocess.CompletedProcess(cmd, 0, "", "")
        if self.returncode and check:
            raise ExternalCommandFailure(list(cmd), self.returncode)
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, "")


@pytest.mark.unit
def test_generate_installs_sdk_once(monkeypatch, tmp_path):
    node = FakeNode(monkeypatch, json.dumps({"address": ADDRESS, "private_key": PRIVATE_KEY}))
    generator = NodeKeyGenerator(tmp_path / "_deps")

    key = generator.generate()
    generator.generate()

    assert key == GeneratedKey(address=ADDRESS, private_key=PRIVATE_KEY)
    npm_calls = [c for c in node.calls if c["cmd"][0] == "npm"]
    assert len(npm_calls) == 1
    assert npm_calls[0]["cmd"] == ["npm", "i", "--prefix", str(tmp_path / "_deps"), APTOS_SDK_PACKAGE]


@pytest.mark.unit
def test_generate_runs_script_on_stdin(monkeypatch, tmp_path):
    node = FakeNode(monkeypatch, json.dumps({"address": ADDRESS, "private_key": PRIVATE_KEY}))
    generator = NodeKeyGenerator(tmp_path / "_deps")

    generator.generate()

    node_call = node.calls[-1]
    assert node_call["cmd"] == ["node", "-"]
    assert "Account.generate()" in node_call["input"]
    assert node_call["env"]["SHELBY_DEPS_NODE_MODULES"] == str(tmp_path / "_deps" / "node_modules")


@pytest.mark.unit
@pytest.mark.parametrize(
    "stdout",
    [
        "",
        "not json",
        json.dumps({"address": ADDRESS}),
        json.dumps({"address": "abc", "private_key": PRIVATE_KEY}),
        json.dumps({"address": ADDRESS, "private_key": "cd" * 32}),
    ],
)
def test_malformed_output(monkeypatch, tmp_path, stdout):
    FakeNode(monkeypatch, stdout)

    with pytest.raises(KeyGenerationError) as exc:
        NodeKeyGenerator(tmp_path / "_deps").generate()
    assert "cd" * 32 not in str(exc.value)


@pytest.mark.unit
def test_node_failure_propagates(monkeypatch, tmp_path):
    FakeNode(monkeypatch, "", returncode=1)

    with pytest.raises(ExternalCommandFailure):
        NodeKeyGenerator(tmp_path / "_deps").generate()
