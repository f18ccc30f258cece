"""
Bytecode extraction from solc standard-JSON output.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .errors import CompilerReportedError

logger = logging.getLogger(__name__)


@dataclass
class RecompiledBytecode:
    """Bytecode produced for one contract."""

    creation_bytecode: str  # 0x-prefixed
    deployed_bytecode: str  # 0x-prefixed
    source_file: str = ""
    metadata: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        return {
            "creationBytecode": self.creation_bytecode,
            "deployedBytecode": self.deployed_bytecode,
        }


def find_file_name_from_contract_name(
    contracts: Optional[Dict[str, Any]], contract_name: str
) -> Optional[str]:
    """Return the first output file that defines ``contract_name``.

    Files are scanned in the compiler's output order. When several files
    define a contract with the same name the first one wins; which one
    that is depends on the compiler's ordering and is not otherwise
    disambiguated.
    """
    if not isinstance(contracts, dict):
        return None
    for file_name, contracts_list in contracts.items():
        if isinstance(contracts_list, dict) and contract_name in contracts_list:
            return file_name
    return None


def collect_error_messages(output: Dict[str, Any]) -> List[str]:
    """``formattedMessage`` of every error-severity diagnostic, in order."""
    return [
        err.get("formattedMessage", err.get("message", ""))
        for err in output.get("errors") or []
        if isinstance(err, dict) and err.get("severity") == "error"
    ]


def _bytecode_object(evm: Dict[str, Any], key: str) -> Optional[str]:
    section = evm.get(key)
    if not isinstance(section, dict):
        return None
    obj = section.get("object")
    return obj if isinstance(obj, str) else None


def extract_bytecode(output: Dict[str, Any], contract_name: str) -> RecompiledBytecode:
    """Pull creation and deployed bytecode for ``contract_name``.

    Raises:
        CompilerReportedError: the contract, its ``evm`` section or either
            bytecode object is missing. The message is the joined text of
            the compiler's error diagnostics.
    """
    if not isinstance(output, dict):
        output = {}
    contracts = output.get("contracts")
    file_name = find_file_name_from_contract_name(contracts, contract_name)

    creation = deployed = None
    contract: Dict[str, Any] = {}
    if file_name is not None:
        contract = contracts[file_name].get(contract_name) or {}
        evm = contract.get("evm") if isinstance(contract, dict) else None
        if isinstance(evm, dict):
            creation = _bytecode_object(evm, "bytecode")
            deployed = _bytecode_object(evm, "deployedBytecode")

    if creation is None or deployed is None:
        messages = collect_error_messages(output)
        logger.error(
            f"No bytecode for {contract_name} "
            f"({len(messages)} compiler error(s) reported)"
        )
        raise CompilerReportedError(messages, contract_name=contract_name)

    return RecompiledBytecode(
        creation_bytecode=f"0x{creation}",
        deployed_bytecode=f"0x{deployed}",
        source_file=file_name,
        metadata=contract.get("metadata"),
    )
