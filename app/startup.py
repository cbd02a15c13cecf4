"""Application startup.

Resolves the server configuration before anything else runs. A
misconfiguration is reported once, with the failing stage and key path, and
turned into a non-zero exit status instead of a partially configured server.
"""
from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

from dotenv import load_dotenv
from loguru import logger

from config.loader import Loader
from config.providers import DEFAULT_CONFIG_PATH, ENV_PREFIX
from config.service import ConfigurationServiceFactory


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resolve curiosity server configuration")
    parser.add_argument(
        "--config",
        default=str(DEFAULT_CONFIG_PATH),
        help="Path to the TOML configuration file (default: %(default)s)",
    )
    parser.add_argument(
        "--env-file",
        help="Load variables from a .env file; real environment variables win",
    )
    parser.add_argument(
        "--env-prefix",
        default=ENV_PREFIX,
        help="Environment variable prefix (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set logging level",
    )
    parser.add_argument(
        "--print",
        dest="print_config",
        action="store_true",
        help="Print the resolved configuration as JSON (secrets redacted)",
    )
    return parser


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level)


def run_application(argv: Optional[List[str]] = None) -> int:
    """Load configuration and report the outcome.

    Startup sequence:
    1. Parse command-line options and install the log sink
    2. Optionally load a .env file into the environment
    3. Run the layered loader (defaults, file, environment)
    4. Hand the configuration to collaborators or exit non-zero

    Args:
        argv: Command-line arguments (defaults to ``sys.argv[1:]``)

    Returns:
        Process exit status
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.env_file:
        # never overrides variables already present in the environment
        if not load_dotenv(args.env_file, override=False):
            logger.warning("No variables loaded from {}", args.env_file)

    result = Loader(args.config, env_prefix=args.env_prefix).load()
    if result.is_failure():
        logger.error("Refusing to start with invalid configuration: {}", result.error)
        return 1

    service = ConfigurationServiceFactory.create_from_config(result.unwrap())
    logger.info(
        "Listening address {} (prefork={}, cors={})",
        service.listen_address,
        service.prefork,
        service.use_cors,
    )
    if args.print_config:
        print(json.dumps(service.to_dict(), indent=2))
    return 0
