"""
Exception hierarchy for recompilation failures.

Two families are kept apart so callers (and the CLI) can tell them apart:

- ``InfrastructureError``: the compiler could not be run at all, or it ran
  but produced nothing usable (missing binary, spawn failure, empty output).
- ``CompilerReportedError``: the compiler ran and reported real diagnostics
  for the reconstructed input.
"""

from typing import List, Optional

RECOMPILATION_ERR_MSG = "Recompilation error (probably caused by invalid metadata)"


class SolcRecompilerError(Exception):
    """Base class for all errors raised by this package."""


class SourceFormatError(SolcRecompilerError):
    """The explorer response or source bundle could not be interpreted."""


class InfrastructureError(SolcRecompilerError):
    """The compiler could not be run, or ran without producing output."""


class ExecutableNotFound(InfrastructureError):
    """No valid local or downloaded solc binary, and no fallback backend."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(
            f"No solc executable available for version {version} "
            "(local cache and download failed, no fallback compiler configured)"
        )


class OutputTooLarge(InfrastructureError):
    """The compiler's standard output exceeded the capture buffer."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Compilation output size too large (limit {limit} bytes)")


class CompilationError(InfrastructureError):
    """Spawning or waiting on the compiler process failed."""


class RecompilationError(InfrastructureError):
    """The compiler exited but its output was empty or unreadable."""

    def __init__(self, message: str = RECOMPILATION_ERR_MSG):
        super().__init__(message)


class CompilerReportedError(SolcRecompilerError):
    """The compiler ran but produced no bytecode for the target contract.

    ``str(error)`` is the newline-joined ``formattedMessage`` of every
    error-severity diagnostic, in the order the compiler reported them.
    """

    def __init__(self, messages: List[str], contract_name: Optional[str] = None):
        self.messages = list(messages)
        self.contract_name = contract_name
        super().__init__("\n".join(self.messages))
