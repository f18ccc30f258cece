"""
Tests for solc_recompiler/recompiler.py

Covers:
  - Recompiler construction and fallback selection
  - Input reconstruction per source layout
  - End-to-end recompilation against a stand-in solc
  - Error propagation (compiler diagnostics vs. infrastructure)
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from solc_recompiler.config import CompilerConfig
from solc_recompiler.errors import (
    CompilerReportedError,
    ExecutableNotFound,
    RecompilationError,
)
from solc_recompiler.etherscan import ContractSource
from solc_recompiler.local_compiler import SolcxBackend
from solc_recompiler.recompiler import Recompiler
from solc_recompiler.solc_executable import ExecutableHandle

VERSION = "v0.8.19+commit.7dd6d404"

SINGLE_SOURCE = ContractSource(
    source_code="pragma solidity ^0.8.0; contract Token {}",
    compiler_version=VERSION,
    contract_name="Token",
    optimization_used=True,
    runs=200,
    evm_version="paris",
)

BUNDLE = {
    "language": "Solidity",
    "sources": {"src/Token.sol": {"content": "contract Token {}"}},
    "settings": {"optimizer": {"enabled": True, "runs": 1000}},
}

MULTI_SOURCE = ContractSource(
    source_code="{" + json.dumps(BUNDLE) + "}",
    compiler_version=VERSION,
    contract_name="Token",
)


def resolver_for(path):
    resolver = MagicMock()
    resolver.get_executable.return_value = (
        ExecutableHandle(path=path, version=VERSION[1:], valid=True) if path else None
    )
    return resolver


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestRecompilerInit:
    def test_defaults(self):
        recompiler = Recompiler()
        assert isinstance(recompiler.config, CompilerConfig)
        assert recompiler.fallback is None

    def test_solcx_fallback_from_config(self):
        recompiler = Recompiler(CompilerConfig(use_solcx_fallback=True))
        assert isinstance(recompiler.fallback, SolcxBackend)

    def test_explicit_fallback_wins(self):
        backend = MagicMock()
        recompiler = Recompiler(CompilerConfig(use_solcx_fallback=True), fallback=backend)
        assert recompiler.fallback is backend


# ---------------------------------------------------------------------------
# Input building
# ---------------------------------------------------------------------------

class TestBuildInput:
    def test_single_file_optimizer_off_by_default(self):
        solc_input = Recompiler().build_input(SINGLE_SOURCE)
        assert solc_input["settings"]["optimizer"] == {"enabled": False}
        assert list(solc_input["sources"]) == ["Token.sol"]

    def test_single_file_honor_optimizer(self):
        solc_input = Recompiler().build_input(SINGLE_SOURCE, honor_optimizer=True)
        assert solc_input["settings"]["optimizer"] == {"enabled": True, "runs": 200}
        assert solc_input["settings"]["evmVersion"] == "paris"

    def test_multi_file(self):
        solc_input = Recompiler().build_input(MULTI_SOURCE)
        assert solc_input["sources"] == BUNDLE["sources"]
        assert solc_input["settings"]["optimizer"] == {"enabled": True, "runs": 1000}


# ---------------------------------------------------------------------------
# Recompilation
# ---------------------------------------------------------------------------

class TestRecompile:
    def test_single_file_end_to_end(self, fake_solc):
        # fake_solc reports Token under Token.sol
        recompiler = Recompiler(resolver=resolver_for(fake_solc))
        result = recompiler.recompile(SINGLE_SOURCE)
        assert result.to_dict() == {
            "creationBytecode": "0x6001",
            "deployedBytecode": "0x6002",
        }

    def test_version_prefix_stripped(self, fake_solc):
        resolver = resolver_for(fake_solc)
        Recompiler(resolver=resolver).recompile(SINGLE_SOURCE)
        resolver.get_executable.assert_called_once_with("0.8.19+commit.7dd6d404")

    def test_compiler_errors_surface(self, make_script):
        output = {"errors": [{"severity": "error", "formattedMessage": "ParserError: boom"}]}
        path = make_script("solc-err", "cat > /dev/null\necho '%s'" % json.dumps(output))
        with pytest.raises(CompilerReportedError) as exc_info:
            Recompiler(resolver=resolver_for(path)).recompile(MULTI_SOURCE)
        assert str(exc_info.value) == "ParserError: boom"

    def test_non_json_output(self, make_script):
        path = make_script("solc-garbage", "cat > /dev/null\necho 'Segmentation fault'")
        with pytest.raises(RecompilationError):
            Recompiler(resolver=resolver_for(path)).recompile(SINGLE_SOURCE)

    @pytest.mark.parametrize("body", ["null", "[]"])
    def test_non_object_json_output(self, make_script, body):
        path = make_script("solc-odd", "cat > /dev/null\necho '%s'" % body)
        with pytest.raises(RecompilationError):
            Recompiler(resolver=resolver_for(path)).recompile(SINGLE_SOURCE)

    def test_missing_executable(self):
        with pytest.raises(ExecutableNotFound):
            Recompiler(resolver=resolver_for(None)).recompile(SINGLE_SOURCE)

    def test_compile_passes_config_and_fallback(self):
        config = CompilerConfig(compile_timeout=5)
        backend = MagicMock()
        recompiler = Recompiler(config, fallback=backend)
        with patch("solc_recompiler.recompiler.use_compiler", return_value="{}") as mock_use:
            assert recompiler.compile(VERSION, {"sources": {}}) == {}
        args, kwargs = mock_use.call_args
        assert args == ("0.8.19+commit.7dd6d404", {"sources": {}})
        assert kwargs["config"] is config
        assert kwargs["fallback"] is backend
