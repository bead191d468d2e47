# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Command line entry point

    python -m mcp_runtime serve mcp_runtime.examples.calculator:CalculatorServer --port 3322
"""

import argparse
import dataclasses
import importlib
import logging
import sys
from typing import Any, List, Optional

from mcp_runtime.core.config import Config, load_config
from mcp_runtime.core.logging import configure_logging
from mcp_runtime.server import MCPServer

logger = logging.getLogger(__name__)


def load_target(target: str) -> Any:
    """Import "package.module:ClassName" and return the class"""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Target must look like 'module:ClassName', got {target!r}")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError:
        raise ValueError(f"{module_name} has no attribute {attr!r}") from None


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Command line flags win over the config file"""
    overrides = {
        "transport": args.transport,
        "host": args.host,
        "port": args.port,
        "endpoint": args.endpoint,
        "log_level": args.log_level,
        "name": args.name,
    }
    return dataclasses.replace(config, **{k: v for k, v in overrides.items() if v is not None})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mcp-runtime", description="Run an MCP server")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Serve a server class")
    serve.add_argument(
        "target",
        help="Server class to register, as module:ClassName",
    )
    serve.add_argument(
        "--transport",
        choices=["streamable", "stdio"],
        help="Transport (default: from config, else streamable)",
    )
    serve.add_argument("--host", help="Bind address (default: 0.0.0.0)")
    serve.add_argument("--port", type=int, help="Listen port (default: 3322)")
    serve.add_argument("--endpoint", help="MCP endpoint path (default: /mcp)")
    serve.add_argument("--name", help="Server name reported to clients")
    serve.add_argument(
        "--config",
        default="configs/server.yaml",
        help="Path to YAML config (default: configs/server.yaml)",
    )
    serve.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: from config, else INFO)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = apply_overrides(load_config(args.config), args)
    # stdout carries the protocol under stdio
    configure_logging(config, stream=sys.stderr)

    try:
        server_class = load_target(args.target)
    except (ImportError, ValueError) as e:
        parser.error(str(e))

    server = MCPServer(
        name=config.name,
        version=config.version,
        allow_overwrite=config.allow_overwrite,
    )
    server.register(server_class())

    try:
        server.run(config)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
