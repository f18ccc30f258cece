"""
Standard-JSON Input Reconstruction

Block explorers return verified source code in two shapes:

1. Plain Solidity (single file), which is wrapped into a one-entry
   ``sources`` map keyed ``<ContractName>.sol``.
2. A standard-JSON document serialized with one redundant pair of braces,
   ``{{ ... }}`` (multi-file). Stripping the outer characters yields the
   original compiler input.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from eth_utils import keccak, to_hex

from .errors import SourceFormatError

logger = logging.getLogger(__name__)

OUTPUT_SELECTION = [
    "evm.bytecode.object",
    "evm.deployedBytecode.object",
    "metadata",
]

# Settings from a multi-file bundle that affect the produced bytecode.
PRESERVED_SETTINGS = (
    "optimizer",
    "evmVersion",
    "viaIR",
    "metadata",
    "libraries",
    "remappings",
)


def contract_has_multiple_files(source_code_object: str) -> bool:
    """Double-brace wrapped text is a serialized multi-file bundle."""
    return source_code_object.startswith("{{")


def parse_multiple_files_contract(source_code_object: str) -> Dict[str, Any]:
    """Drop the redundant outer braces and parse the remaining JSON object."""
    try:
        parsed = json.loads(source_code_object[1:-1])
    except json.JSONDecodeError as e:
        raise SourceFormatError(f"Malformed multi-file source bundle: {e}") from e
    if not isinstance(parsed, dict):
        raise SourceFormatError("Multi-file source bundle is not a JSON object")
    return parsed


def source_keccak256(source_code: str) -> str:
    """0x-prefixed keccak256 of the UTF-8 source text."""
    return to_hex(keccak(text=source_code))


def build_output_selection(file_names: List[str], contract_name: str) -> Dict[str, Any]:
    return {name: {contract_name: list(OUTPUT_SELECTION)} for name in file_names}


def build_single_file_input(
    source_code: str,
    contract_name: str,
    optimizer_enabled: bool = False,
    optimizer_runs: Optional[int] = None,
    evm_version: Optional[str] = None,
) -> Dict[str, Any]:
    """Wrap a single Solidity file into a standard-JSON compiler input.

    Args:
        source_code: Raw Solidity source as verified on the explorer.
        contract_name: Contract to produce bytecode for.
        optimizer_enabled: Optimizer flag; disabled unless the caller
            copies the explorer's setting.
        optimizer_runs: Optimizer runs, only emitted when given.
        evm_version: Target EVM version, only emitted when given.

    Returns:
        Standard-JSON input with one source ``<contract_name>.sol``.
    """
    file_name = f"{contract_name}.sol"

    optimizer: Dict[str, Any] = {"enabled": optimizer_enabled}
    if optimizer_runs is not None:
        optimizer["runs"] = optimizer_runs

    settings: Dict[str, Any] = {
        "optimizer": optimizer,
        "outputSelection": build_output_selection([file_name], contract_name),
    }
    if evm_version:
        settings["evmVersion"] = evm_version

    return {
        "language": "Solidity",
        "sources": {
            file_name: {
                "keccak256": source_keccak256(source_code),
                "content": source_code,
            }
        },
        "settings": settings,
    }


def build_multi_file_input(bundle: Dict[str, Any], contract_name: str) -> Dict[str, Any]:
    """Build a compiler input from a parsed multi-file bundle.

    The bundle is either a full standard-JSON input (``language``,
    ``sources``, ``settings``) or a bare ``path -> {content}`` map. Its
    bytecode-relevant settings are kept; the output selection is replaced
    so every discovered file requests the same artifacts as the
    single-file case.
    """
    if "sources" in bundle:
        sources = bundle["sources"]
        language = bundle.get("language", "Solidity")
        original_settings = bundle.get("settings") or {}
    else:
        sources = bundle
        language = "Solidity"
        original_settings = {}

    if not isinstance(sources, dict) or not sources:
        raise SourceFormatError("Multi-file source bundle has no sources")

    settings: Dict[str, Any] = {
        key: original_settings[key]
        for key in PRESERVED_SETTINGS
        if key in original_settings
    }
    settings.setdefault("optimizer", {"enabled": False})
    settings["outputSelection"] = build_output_selection(list(sources), contract_name)

    logger.debug(f"Reconstructed multi-file input with {len(sources)} sources")
    return {"language": language, "sources": sources, "settings": settings}


def build_compiler_input(
    source_code_object: str,
    contract_name: str,
    optimizer_enabled: bool = False,
    optimizer_runs: Optional[int] = None,
    evm_version: Optional[str] = None,
) -> Dict[str, Any]:
    """Pick the multi- or single-file variant and build the input.

    Optimizer and EVM overrides only apply to single files; bundles carry
    their own settings.
    """
    if contract_has_multiple_files(source_code_object):
        bundle = parse_multiple_files_contract(source_code_object)
        return build_multi_file_input(bundle, contract_name)
    return build_single_file_input(
        source_code_object,
        contract_name,
        optimizer_enabled=optimizer_enabled,
        optimizer_runs=optimizer_runs,
        evm_version=evm_version,
    )
