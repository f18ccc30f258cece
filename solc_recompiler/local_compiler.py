"""
Local Solidity Compiler Invocation

Runs a pinned solc binary in ``--standard-json`` mode on a reconstructed
compiler input. The binary comes from the on-disk cache or a fresh download
(see ``solc_executable``); when neither works an optional fallback backend
may provide one, e.g. the py-solc-x managed installation.
"""

import json
import logging
import re
import subprocess
from typing import Any, Dict, List, Optional

import requests
import solcx
from solcx.exceptions import DownloadError, SolcInstallationError, SolcNotInstalled
from solcx.install import get_executable as get_solcx_executable

from .config import CompilerConfig
from .errors import (
    RECOMPILATION_ERR_MSG,
    CompilationError,
    ExecutableNotFound,
    OutputTooLarge,
    RecompilationError,
)
from .solc_executable import ExecutableHandle, SolcExecutableResolver, validate_solc_path

logger = logging.getLogger(__name__)


def parse_compiler_version(compiler_version: str) -> str:
    """Strip a single leading 'v' tag: 'v0.8.19+commit.7dd6d404' -> '0.8.19+commit.7dd6d404'."""
    if compiler_version.startswith("v"):
        return compiler_version[1:]
    return compiler_version


def _normalize_version(version_str: str) -> Optional[str]:
    """Normalize version string: 'v0.8.20+commit.abc' -> '0.8.20'."""
    if not version_str:
        return None
    version_str = parse_compiler_version(version_str)
    # Strip commit suffix
    match = re.match(r"(\d+\.\d+\.\d+)", version_str)
    return match.group(1) if match else None


# ---------------------------------------------------------------------------
# Fallback backends
# ---------------------------------------------------------------------------

class CompilerBackend:
    """Supplies a solc executable when the cache and download both fail."""

    name = "backend"

    def get_executable(self, version: str) -> Optional[str]:
        raise NotImplementedError


def get_installed_versions() -> List[str]:
    """Return list of solc versions installed by py-solc-x."""
    return [str(v) for v in solcx.get_installed_solc_versions()]


def install_solc_version(version: str) -> bool:
    """Install a specific solc version through py-solc-x if not already present.

    Args:
        version: Version string like '0.8.20' or 'v0.8.20+commit.a1b79de6'.

    Returns:
        True if version is available (installed or already present).
    """
    version = _normalize_version(version)
    if not version:
        return False

    if version in get_installed_versions():
        return True

    try:
        logger.info(f"Installing solc {version} with py-solc-x...")
        solcx.install_solc(version)
        logger.info(f"Installed solc {version}")
        return True
    except (SolcInstallationError, DownloadError, requests.RequestException, OSError, ValueError) as e:
        logger.warning(f"Failed to install solc {version}: {e}")
        return False


class SolcxBackend(CompilerBackend):
    """Fallback that resolves binaries through py-solc-x's install directory.

    py-solc-x only knows release versions, so the commit suffix is dropped.
    """

    name = "solcx"

    def get_executable(self, version: str) -> Optional[str]:
        release = _normalize_version(version)
        if not release or not install_solc_version(release):
            return None
        try:
            return str(get_solcx_executable(release))
        except SolcNotInstalled as e:
            logger.warning(f"py-solc-x has no executable for {release}: {e}")
            return None


# ---------------------------------------------------------------------------
# Invocation
# ---------------------------------------------------------------------------

def resolve_executable(
    version: str,
    resolver: SolcExecutableResolver,
    fallback: Optional[CompilerBackend] = None,
) -> ExecutableHandle:
    """Cached or downloaded binary, else the fallback backend's.

    Raises:
        ExecutableNotFound: nothing could provide a binary.
    """
    handle = resolver.get_executable(version)
    if handle is not None:
        return handle

    if fallback is not None:
        logger.info(
            "[RECOMPILE] Falling back to %s backend version=%s", fallback.name, version
        )
        path = fallback.get_executable(version)
        if path and validate_solc_path(path):
            return ExecutableHandle(path=path, version=version, valid=True, origin="fallback")

    raise ExecutableNotFound(version)


def run_standard_json(
    solc_path: str,
    input_stringified: str,
    max_output_bytes: int = 1024 * 1024,
    timeout: Optional[float] = None,
) -> str:
    """Run ``solc --standard-json`` with the input on stdin; blocks until exit.

    ``max_output_bytes`` is checked after the process exits and its whole
    stdout has been captured. It rejects oversized results but does not
    bound the memory used while reading them.

    Returns:
        Raw standard output (an unparsed JSON document).

    Raises:
        OutputTooLarge: stdout exceeded ``max_output_bytes``.
        CompilationError: the process could not be spawned or timed out.
        RecompilationError: the process produced no output.
    """
    log_ctx = f"solcPath={solc_path}"
    try:
        shell_output = subprocess.run(
            [solc_path, "--standard-json"],
            input=input_stringified.encode("utf-8"),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        logger.error("[RECOMPILE] %s %s", log_ctx, e)
        raise CompilationError(f"Compilation Error: timed out after {timeout}s") from e
    except (OSError, subprocess.SubprocessError) as e:
        logger.error("[RECOMPILE] %s %s", log_ctx, e)
        raise CompilationError(f"Compilation Error: {e}") from e

    stdout = shell_output.stdout or b""
    if len(stdout) > max_output_bytes:
        logger.error(
            "[RECOMPILE] %s output of %d bytes exceeds %d", log_ctx, len(stdout), max_output_bytes
        )
        raise OutputTooLarge(max_output_bytes)

    if not stdout.strip():
        stderr = (shell_output.stderr or b"").decode(errors="replace").strip()
        logger.error("[RECOMPILE] %s %s", log_ctx, stderr or RECOMPILATION_ERR_MSG)
        raise RecompilationError()

    return stdout.decode("utf-8")


def use_compiler(
    version: str,
    solc_json_input: Dict[str, Any],
    config: Optional[CompilerConfig] = None,
    resolver: Optional[SolcExecutableResolver] = None,
    fallback: Optional[CompilerBackend] = None,
) -> str:
    """Compile a standard-JSON input with a pinned solc version.

    Args:
        version: Compiler version without the 'v' tag, e.g. '0.8.19+commit.7dd6d404'.
        solc_json_input: Standard-JSON compiler input.
        config: Cache, download and process limits.
        resolver: Executable resolver; built from ``config`` if omitted.
        fallback: Backend consulted when no cached or downloaded binary works.

    Returns:
        Raw compiler output text.
    """
    config = config or CompilerConfig()
    resolver = resolver or SolcExecutableResolver(config)

    input_stringified = json.dumps(solc_json_input)
    handle = resolve_executable(version, resolver, fallback)

    logger.info(
        "[RECOMPILE] Compiling with external executable version=%s solcPath=%s",
        version,
        handle.path,
    )
    return run_standard_json(
        handle.path,
        input_stringified,
        max_output_bytes=config.max_output_bytes,
        timeout=config.compile_timeout,
    )
