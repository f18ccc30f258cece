"""
Smart Contract Recompilation from Verified Sources

Reconstructs the solc standard-JSON input of a verified contract from a
block-explorer "get source code" response, compiles it with the exact
compiler version the contract was verified with, and extracts the creation
and deployed bytecode for comparison with what is on chain.
"""

from .config import CompilerConfig, load_config, load_settings
from .errors import (
    CompilationError,
    CompilerReportedError,
    ExecutableNotFound,
    InfrastructureError,
    OutputTooLarge,
    RecompilationError,
    SolcRecompilerError,
    SourceFormatError,
)
from .etherscan import ContractSource, EtherscanAPI, load_etherscan_response
from .extraction import RecompiledBytecode, extract_bytecode
from .input_builder import build_compiler_input
from .local_compiler import SolcxBackend, use_compiler
from .recompiler import Recompiler
from .solc_executable import ExecutableHandle, SolcExecutableResolver

__version__ = "1.0.0"
__author__ = "solc-recompiler contributors"
