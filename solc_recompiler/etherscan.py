"""
Block-explorer "get source code" responses.

Responses are read either from a saved JSON file or live from the Etherscan
API (``module=contract&action=getsourcecode``). Only the first ``result``
entry is used.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from eth_utils import is_address, to_checksum_address

from .errors import SourceFormatError

logger = logging.getLogger(__name__)

ETHERSCAN_API_URL = "https://api.etherscan.io/api"


@dataclass
class ContractSource:
    """Verified source metadata for one contract."""

    source_code: str
    compiler_version: str
    contract_name: str
    abi: Optional[List[Dict[str, Any]]] = None
    optimization_used: bool = False
    runs: Optional[int] = None
    evm_version: Optional[str] = None
    address: Optional[str] = None

    @classmethod
    def from_explorer_result(
        cls, entry: Dict[str, Any], address: Optional[str] = None
    ) -> "ContractSource":
        """Build from one entry of the explorer's ``result`` list."""
        for key in ("SourceCode", "CompilerVersion", "ContractName"):
            if not entry.get(key):
                raise SourceFormatError(f"Explorer result is missing {key}")

        runs = entry.get("Runs")
        evm_version = entry.get("EVMVersion")
        if evm_version and evm_version.lower() == "default":
            evm_version = None

        try:
            runs = int(runs) if runs not in (None, "") else None
        except ValueError as e:
            raise SourceFormatError(f"Invalid optimizer runs {runs!r}") from e

        return cls(
            source_code=entry["SourceCode"],
            compiler_version=entry["CompilerVersion"],
            contract_name=entry["ContractName"],
            abi=_parse_abi(entry.get("ABI")),
            optimization_used=str(entry.get("OptimizationUsed", "0")) == "1",
            runs=runs,
            evm_version=evm_version or None,
            address=address,
        )


def _parse_abi(raw_abi: Optional[str]) -> Optional[List[Dict[str, Any]]]:
    # Unverified contracts carry a plain-text notice instead of JSON.
    if not raw_abi:
        return None
    try:
        abi = json.loads(raw_abi)
    except json.JSONDecodeError:
        logger.debug(f"ABI is not JSON: {raw_abi[:60]!r}")
        return None
    return abi if isinstance(abi, list) else None


def parse_etherscan_response(data: Dict[str, Any], address: Optional[str] = None) -> ContractSource:
    """Extract the first result entry of a getsourcecode response."""
    results = data.get("result") if isinstance(data, dict) else None
    if not isinstance(results, list) or not results:
        raise SourceFormatError("Explorer response has no result entries")
    if not isinstance(results[0], dict):
        raise SourceFormatError(f"Unexpected explorer result: {results[0]!r}")
    return ContractSource.from_explorer_result(results[0], address=address)


def load_etherscan_response(path: str) -> ContractSource:
    """Read a saved getsourcecode response from disk."""
    response_path = Path(path)
    try:
        with open(response_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except UnicodeDecodeError as e:
        raise SourceFormatError(f"{response_path} is not UTF-8 text: {e}") from e
    except json.JSONDecodeError as e:
        raise SourceFormatError(f"{response_path} is not valid JSON: {e}") from e
    logger.info(f"Loaded explorer response from {response_path}")
    return parse_etherscan_response(data)


class EtherscanAPI:
    """Fetches verified contract sources from Etherscan."""

    def __init__(self, api_key: str, base_url: str = ETHERSCAN_API_URL, timeout: float = 30):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.session = requests.Session()
        self.logger = logging.getLogger(__name__)

    def get_contract_source(self, address: str) -> Optional[ContractSource]:
        """
        Get verified contract source code from Etherscan.

        Args:
            address: Contract address

        Returns:
            ContractSource or None if the contract is unknown or unverified
        """
        if not is_address(address):
            raise SourceFormatError(f"Not an Ethereum address: {address}")

        params = {
            'module': 'contract',
            'action': 'getsourcecode',
            'address': address,
            'apikey': self.api_key,
        }

        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            self.logger.error(f"Failed to get contract {address}: {e}")
            return None

        if data.get('status') != '1' or not data.get('result'):
            self.logger.error(f"Etherscan returned no source for {address}: {data.get('result')}")
            return None

        # Unverified contracts come back with an empty SourceCode
        if not data['result'][0].get('SourceCode'):
            self.logger.warning(f"Contract {address} is not verified")
            return None

        return parse_etherscan_response(data, address=to_checksum_address(address))
