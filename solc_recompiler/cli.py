"""
Recompile a verified contract and print its bytecode.

Usage:
    solc-recompile responses/single.example.json
    solc-recompile --address 0xa88f81f79bb05f25e9cd59572982388455380c06
    solc-recompile multiple.example.json --solcx-fallback --timeout 120
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .config import CompilerConfig, load_config
from .errors import (
    CompilerReportedError,
    InfrastructureError,
    SourceFormatError,
)
from .etherscan import ContractSource, EtherscanAPI, load_etherscan_response
from .recompiler import Recompiler

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_COMPILER_ERROR = 1  # bad input or compiler diagnostics
EXIT_INFRASTRUCTURE_ERROR = 2  # compiler could not be run

NOISY_LOGGERS = ("urllib3", "solcx")


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Configure root logger; console output goes to stderr."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="solc-recompile",
        description=(
            "Rebuild the solc standard-JSON input of a verified contract, "
            "compile it with the pinned compiler version and print the "
            "creation and deployed bytecode."
        ),
    )
    parser.add_argument("response_file", nargs="?", default=None,
                        help="Saved explorer getsourcecode response (JSON).")
    parser.add_argument("--address", type=str, default=None,
                        help="Fetch the verified source from Etherscan instead of a file.")
    parser.add_argument("--api-key", type=str, default=None,
                        help="Etherscan API key (default: ETHERSCAN_API_KEY).")
    parser.add_argument("--settings", type=str, default=None,
                        help="Settings YAML file (default: packaged settings.yaml).")
    parser.add_argument("--honor-optimizer", action="store_true",
                        help="Apply the explorer's optimizer/EVM settings to single-file sources.")
    parser.add_argument("--solcx-fallback", action="store_true",
                        help="Use py-solc-x to obtain solc when cache and download fail.")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Compiler timeout in seconds (default: no limit).")
    parser.add_argument("--log-file", type=str, default=None,
                        help="Also write logs to this file.")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging.")
    return parser


def load_source(args: argparse.Namespace, config: CompilerConfig) -> ContractSource:
    if args.address:
        api_key = args.api_key or config.etherscan_api_key
        if not api_key:
            raise SourceFormatError("An Etherscan API key is required with --address")
        api = EtherscanAPI(api_key, base_url=config.etherscan_base_url)
        source = api.get_contract_source(args.address)
        if source is None:
            raise SourceFormatError(f"No verified source available for {args.address}")
        return source
    return load_etherscan_response(args.response_file)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.response_file and not args.address:
        parser.error("either a response file or --address is required")

    setup_logging(verbose=args.verbose, log_file=args.log_file)

    config = load_config(args.settings)
    if args.timeout is not None:
        config.compile_timeout = args.timeout
    if args.solcx_fallback:
        config.use_solcx_fallback = True

    try:
        source = load_source(args, config)
        result = Recompiler(config).recompile(source, honor_optimizer=args.honor_optimizer)
    except CompilerReportedError as e:
        print(f"Compiler reported errors for {e.contract_name}:\n{e}", file=sys.stderr)
        return EXIT_COMPILER_ERROR
    except InfrastructureError as e:
        print(f"Could not run the compiler: {e}", file=sys.stderr)
        return EXIT_INFRASTRUCTURE_ERROR
    except (SourceFormatError, OSError) as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return EXIT_COMPILER_ERROR

    print(json.dumps(result.to_dict(), indent=2))
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
