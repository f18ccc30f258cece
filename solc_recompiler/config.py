"""
Settings loading for the recompiler.

Settings come from ``settings.yaml`` (shipped next to this module, or a path
given by the caller) and environment variables override file values. The
environment is only read here; everything downstream receives an explicit
``CompilerConfig``.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path(__file__).with_name("settings.yaml")

GITHUB_SOLC_REPO = "https://github.com/ethereum/solc-bin/raw/gh-pages/linux-amd64/"

ENV_OVERRIDES = ("SOLC_REPO_TMP", "SOLC_REPO", "ETHERSCAN_API_KEY")


@dataclass
class CompilerConfig:
    """Where compiler binaries live and how they are fetched and run."""

    solc_repo_tmp: str = os.path.join("/tmp", "solc-repo")
    solc_repo: str = "solc-repo"
    github_solc_repo: str = GITHUB_SOLC_REPO
    platform: str = "linux-amd64"
    compile_timeout: Optional[float] = None
    download_timeout: Optional[float] = None
    max_output_bytes: int = 1024 * 1024
    use_solcx_fallback: bool = False
    etherscan_api_key: Optional[str] = None
    etherscan_base_url: str = "https://api.etherscan.io/api"

    @property
    def repo_paths(self):
        """Candidate cache directories, in search order."""
        return [self.solc_repo_tmp, self.solc_repo]

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> "CompilerConfig":
        defaults = cls()

        def pick(key, default):
            value = settings.get(key)
            return default if value is None or value == "" else value

        return cls(
            solc_repo_tmp=str(pick("SOLC_REPO_TMP", defaults.solc_repo_tmp)),
            solc_repo=str(pick("SOLC_REPO", defaults.solc_repo)),
            github_solc_repo=str(pick("GITHUB_SOLC_REPO", defaults.github_solc_repo)),
            platform=str(pick("SOLC_PLATFORM", defaults.platform)),
            compile_timeout=_optional_float(settings.get("COMPILE_TIMEOUT")),
            download_timeout=_optional_float(settings.get("DOWNLOAD_TIMEOUT")),
            max_output_bytes=int(pick("MAX_OUTPUT_BYTES", defaults.max_output_bytes)),
            use_solcx_fallback=bool(pick("USE_SOLCX_FALLBACK", False)),
            etherscan_api_key=pick("ETHERSCAN_API_KEY", None),
            etherscan_base_url=str(pick("ETHERSCAN_BASE_URL", defaults.etherscan_base_url)),
        )


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def load_settings(settings_path: Optional[str] = None) -> Dict[str, Any]:
    """Load settings from a YAML file and environment variables.

    Args:
        settings_path: YAML file to read. Defaults to the packaged
            ``settings.yaml``. A missing file yields empty settings.

    Returns:
        Dict of setting name to value, environment taking precedence.
    """
    settings: Dict[str, Any] = {}
    path = Path(settings_path) if settings_path else DEFAULT_SETTINGS_PATH
    if path.exists():
        with open(path, "r") as f:
            settings = yaml.safe_load(f) or {}
    else:
        logger.debug(f"Settings file {path} not found, using defaults")

    for key in ENV_OVERRIDES:
        if os.getenv(key):
            settings[key] = os.getenv(key)

    return settings


def load_config(settings_path: Optional[str] = None) -> CompilerConfig:
    """Shortcut for ``CompilerConfig.from_settings(load_settings(path))``."""
    return CompilerConfig.from_settings(load_settings(settings_path))
