"""Shared fixtures: stand-in solc executables written as shell scripts."""

import json
import os
import stat

import pytest

SOLC_VERSION_BANNER = "solc, the solidity compiler commandline interface\nVersion: 0.8.19+commit.7dd6d404.Linux.g++"

SIMPLE_OUTPUT = {
    "contracts": {
        "Token.sol": {
            "Token": {
                "evm": {
                    "bytecode": {"object": "6001"},
                    "deployedBytecode": {"object": "6002"},
                },
                "metadata": "{}",
            }
        }
    },
    "sources": {"Token.sol": {"id": 0}},
}


@pytest.fixture
def make_script(tmp_path):
    """Return a factory writing an executable ``/bin/sh`` script."""

    def _make(name: str, body: str, executable: bool = True) -> str:
        path = tmp_path / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        if executable:
            os.chmod(path, stat.S_IRWXU)
        return str(path)

    return _make


@pytest.fixture
def fake_solc(make_script):
    """A solc stand-in: answers --version, prints a fixed standard-JSON output."""
    output = json.dumps(SIMPLE_OUTPUT).replace("'", "")
    body = (
        'if [ "$1" = "--version" ]; then\n'
        f'  echo "{SOLC_VERSION_BANNER}"\n'
        "  exit 0\n"
        "fi\n"
        "cat > /dev/null\n"
        f"echo '{output}'"
    )
    return make_script("solc-fake", body)


@pytest.fixture
def echo_solc(make_script):
    """A solc stand-in that writes its stdin back to stdout."""
    body = (
        'if [ "$1" = "--version" ]; then exit 0; fi\n'
        "cat"
    )
    return make_script("solc-echo", body)
