"""
Locating, Downloading and Validating solc Executables

Compiler binaries are pinned per version and cached on disk under
``<cache-dir>/solc-<platform>-v<version>``. The resolver searches the
configured cache directories in order and validates every candidate by
running ``solc --version``; when nothing usable is found the binary is
downloaded from the solc-bin GitHub repository into the temporary cache
directory and validated again.

None of the functions here raise on a missing or broken binary: failures are
logged and reported as ``None``/``False`` so the caller can pick a fallback.
"""

import logging
import os
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote

import requests

from .config import CompilerConfig, GITHUB_SOLC_REPO

logger = logging.getLogger(__name__)

# Serialises downloads of the same destination path within this process.
_fetch_locks: Dict[str, threading.Lock] = {}
_fetch_locks_guard = threading.Lock()


@dataclass
class ExecutableHandle:
    """A pinned solc binary on local storage."""

    path: str
    version: str
    valid: bool = False
    origin: str = "cache"  # cache | download | fallback


def solc_file_name(version: str, platform: str = "linux-amd64") -> str:
    """Cache file name for a (prefix-free) compiler version."""
    return f"solc-{platform}-v{version}"


def validate_solc_path(solc_path: str, timeout: Optional[float] = None) -> bool:
    """Check that ``solc_path`` runs and answers ``--version`` with exit 0.

    Never raises; spawn failures are logged with the offending path.
    """
    try:
        spawned = subprocess.run(
            [solc_path, "--version"],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
        )
    except (OSError, ValueError, subprocess.SubprocessError) as e:
        logger.error(
            "[VALIDATE_SOLC_PATH] solcPath=%s error=%s", solc_path, e
        )
        return False

    if spawned.returncode == 0:
        return True

    stderr = spawned.stderr.decode(errors="replace").strip() if spawned.stderr else ""
    logger.error(
        "[VALIDATE_SOLC_PATH] solcPath=%s error=%s",
        solc_path,
        stderr or f"exit status {spawned.returncode}",
    )
    return False


def _lock_for(path: str) -> threading.Lock:
    with _fetch_locks_guard:
        lock = _fetch_locks.get(path)
        if lock is None:
            lock = _fetch_locks[path] = threading.Lock()
        return lock


def fetch_solc_from_github(
    solc_path: str,
    version: str,
    file_name: str,
    base_url: str = GITHUB_SOLC_REPO,
    timeout: Optional[float] = None,
    session: Optional[requests.Session] = None,
) -> bool:
    """Download a solc binary to ``solc_path`` and validate it.

    Args:
        solc_path: Destination file. Parent directories are created.
        version: Compiler version, used for logging only.
        file_name: Name of the artifact in the remote repository.
        base_url: Repository root; the URL-encoded file name is appended.
        timeout: Optional request timeout in seconds.
        session: Optional ``requests.Session`` to issue the request with.

    Returns:
        True if the binary was downloaded, written and validated.
    """
    github_solc_uri = base_url + quote(file_name, safe="")
    logger.info(
        "[RECOMPILE] Fetching executable solc from GitHub version=%s url=%s",
        version,
        github_solc_uri,
    )

    http = session or requests
    try:
        res = http.get(github_solc_uri, timeout=timeout)
    except requests.RequestException as e:
        logger.error(
            "[RECOMPILE] Failed fetching executable solc from GitHub version=%s url=%s error=%s",
            version,
            github_solc_uri,
            e,
        )
        return False

    if res.status_code != 200:
        logger.error(
            "[RECOMPILE] Failed fetching executable solc from GitHub version=%s url=%s status=%s",
            version,
            github_solc_uri,
            res.status_code,
        )
        return False

    logger.info(
        "[RECOMPILE] Successfully fetched executable solc from GitHub version=%s",
        version,
    )

    with _lock_for(os.path.abspath(solc_path)):
        try:
            os.makedirs(os.path.dirname(solc_path) or ".", exist_ok=True)
            try:
                os.unlink(solc_path)
            except FileNotFoundError:
                pass
            Path(solc_path).write_bytes(res.content)
            os.chmod(solc_path, 0o755)
        except OSError as e:
            logger.error(
                "[RECOMPILE] Could not write solc executable path=%s error=%s",
                solc_path,
                e,
            )
            return False

        return validate_solc_path(solc_path)


class SolcExecutableResolver:
    """
    Resolves a usable solc binary for a compiler version.

    Search order is ``config.repo_paths`` (temporary cache, then repository
    directory); the first existing candidate that passes validation wins.
    Downloads always land in the temporary cache directory.
    """

    def __init__(
        self,
        config: Optional[CompilerConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or CompilerConfig()
        self.session = session

    def file_name(self, version: str) -> str:
        return solc_file_name(version, self.config.platform)

    def find_local(self, version: str) -> Optional[ExecutableHandle]:
        """Return the first valid cached binary for ``version``, or None."""
        file_name = self.file_name(version)
        for repo_path in self.config.repo_paths:
            solc_path = os.path.join(repo_path, file_name)
            if not os.path.exists(solc_path):
                logger.debug("No cached solc at %s", solc_path)
                continue
            if validate_solc_path(solc_path):
                return ExecutableHandle(path=solc_path, version=version, valid=True)
        return None

    def fetch(self, version: str) -> Optional[ExecutableHandle]:
        """Download ``version`` into the temporary cache directory."""
        file_name = self.file_name(version)
        tmp_solc_path = os.path.join(self.config.solc_repo_tmp, file_name)
        success = fetch_solc_from_github(
            tmp_solc_path,
            version,
            file_name,
            base_url=self.config.github_solc_repo,
            timeout=self.config.download_timeout,
            session=self.session,
        )
        if not success:
            return None
        return ExecutableHandle(
            path=tmp_solc_path, version=version, valid=True, origin="download"
        )

    def get_executable(self, version: str) -> Optional[ExecutableHandle]:
        """Cached binary if one validates, otherwise a fresh download."""
        return self.find_local(version) or self.fetch(version)
