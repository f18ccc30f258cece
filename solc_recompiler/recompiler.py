"""
Recompilation Pipeline

Coordinates the steps that turn verified source metadata into bytecode:
1. Reconstruct the standard-JSON input (single- or multi-file)
2. Resolve the pinned solc binary (cache, download, fallback)
3. Run the compiler
4. Extract creation and deployed bytecode for the target contract
"""

import json
import logging
from typing import Any, Dict, Optional

from .config import CompilerConfig
from .errors import RecompilationError
from .etherscan import ContractSource
from .extraction import RecompiledBytecode, extract_bytecode
from .input_builder import build_compiler_input, contract_has_multiple_files
from .local_compiler import (
    CompilerBackend,
    SolcxBackend,
    parse_compiler_version,
    use_compiler,
)
from .solc_executable import SolcExecutableResolver

logger = logging.getLogger(__name__)


class Recompiler:
    """
    Recompiles verified contracts with their pinned compiler version.

    One instance can be reused for many contracts; it holds no per-run state.
    """

    def __init__(
        self,
        config: Optional[CompilerConfig] = None,
        fallback: Optional[CompilerBackend] = None,
        resolver: Optional[SolcExecutableResolver] = None,
    ):
        self.config = config or CompilerConfig()
        if fallback is None and self.config.use_solcx_fallback:
            fallback = SolcxBackend()
        self.fallback = fallback
        self.resolver = resolver or SolcExecutableResolver(self.config)

    def build_input(self, source: ContractSource, honor_optimizer: bool = False) -> Dict[str, Any]:
        """Standard-JSON input for ``source``.

        With ``honor_optimizer`` the explorer's optimizer and EVM settings
        are applied to single-file sources; otherwise the optimizer stays off.
        """
        if honor_optimizer:
            return build_compiler_input(
                source.source_code,
                source.contract_name,
                optimizer_enabled=source.optimization_used,
                optimizer_runs=source.runs,
                evm_version=source.evm_version,
            )
        return build_compiler_input(source.source_code, source.contract_name)

    def compile(self, version: str, solc_json_input: Dict[str, Any]) -> Dict[str, Any]:
        """Run the compiler and parse its JSON output."""
        compiled = use_compiler(
            parse_compiler_version(version),
            solc_json_input,
            config=self.config,
            resolver=self.resolver,
            fallback=self.fallback,
        )
        try:
            output = json.loads(compiled)
        except json.JSONDecodeError as e:
            logger.error(f"[RECOMPILE] Compiler output is not JSON: {e}")
            raise RecompilationError() from e
        if not isinstance(output, dict):
            logger.error(f"[RECOMPILE] Compiler output is not a JSON object: {compiled[:60]!r}")
            raise RecompilationError()
        return output

    def recompile(self, source: ContractSource, honor_optimizer: bool = False) -> RecompiledBytecode:
        """Recompile one verified contract.

        Raises:
            InfrastructureError: the compiler could not be run.
            CompilerReportedError: the compiler rejected the reconstructed input.
            SourceFormatError: the source bundle could not be parsed.
        """
        layout = "multi-file" if contract_has_multiple_files(source.source_code) else "single-file"
        logger.info(
            f"Recompiling {source.contract_name} ({layout}) "
            f"with solc {source.compiler_version}"
        )

        solc_json_input = self.build_input(source, honor_optimizer=honor_optimizer)
        output = self.compile(source.compiler_version, solc_json_input)
        result = extract_bytecode(output, source.contract_name)

        logger.info(
            f"Recompiled {source.contract_name} from {result.source_file}: "
            f"{(len(result.deployed_bytecode) - 2) // 2} bytes deployed"
        )
        return result
