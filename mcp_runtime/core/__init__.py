# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Core utilities and shared modules for the MCP runtime.

This package contains:
- config: Configuration management
- errors: Custom exceptions and JSON-RPC error codes
- logging: Structured logging
"""

from mcp_runtime.core.config import Config, get_config, load_config
from mcp_runtime.core.errors import (
    MCPRuntimeError,
    NotFoundError,
    ValidationError,
)
from mcp_runtime.core.logging import configure_logging, get_logger

__all__ = [
    "Config",
    "get_config",
    "load_config",
    "MCPRuntimeError",
    "NotFoundError",
    "ValidationError",
    "configure_logging",
    "get_logger",
]
