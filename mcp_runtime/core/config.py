# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP runtime configuration - single source of truth.
YAML is king. Env vars only for the log level override.

The core components never read configuration themselves; the CLI and the
server facade load a Config and pass its values to constructors.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable runtime configuration.
    All values from YAML. No hidden state.
    """

    # -- Server identity --
    name: str = "mcp-runtime"
    version: str = "1.0.0"

    # -- Transport --
    transport: str = "streamable"
    host: str = "0.0.0.0"
    port: int = 3322
    endpoint: str = "/mcp"

    # -- Sessions --
    session_timeout_seconds: int = 3600
    session_reap_interval: float = 60.0

    # -- Registry --
    allow_overwrite: bool = True

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "text"

    @property
    def server_url(self) -> str:
        return f"http://localhost:{self.port}{self.endpoint}"


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = "configs/server.yaml") -> Config:
    """
    Load configuration from YAML.
    Returns defaults if file doesn't exist.
    """
    if not Path(path).exists():
        logger.info(f"Config not found at {path}, using defaults")
        return Config(log_level=os.getenv("LOG_LEVEL", "INFO"))

    with open(path) as f:
        y = yaml.safe_load(f) or {}

    # Helper to safely navigate nested dicts
    def get(d: dict, *keys, default=None):
        for k in keys:
            if not isinstance(d, dict):
                return default
            d = d.get(k, {})
        return d if d != {} else default

    defaults = Config()
    allow_overwrite = get(y, "registry", "allow_overwrite")
    session_timeout = get(y, "sessions", "timeout_seconds")

    return Config(
        # Server identity
        name=get(y, "server", "name") or defaults.name,
        version=str(get(y, "server", "version") or defaults.version),

        # Transport
        transport=get(y, "transport", "type") or defaults.transport,
        host=get(y, "transport", "host") or defaults.host,
        port=int(get(y, "transport", "port") or defaults.port),
        endpoint=get(y, "transport", "endpoint") or defaults.endpoint,

        # Sessions
        session_timeout_seconds=(
            defaults.session_timeout_seconds if session_timeout is None else int(session_timeout)
        ),
        session_reap_interval=float(
            get(y, "sessions", "reap_interval") or defaults.session_reap_interval
        ),

        # Registry
        allow_overwrite=defaults.allow_overwrite if allow_overwrite is None else bool(allow_overwrite),

        # Logging
        log_level=os.getenv("LOG_LEVEL") or get(y, "logging", "level") or defaults.log_level,
        log_format=get(y, "logging", "format") or defaults.log_format,
    )


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        config_path = os.getenv("MCP_RUNTIME_CONFIG_PATH", "configs/server.yaml")
        _config = load_config(config_path)
    return _config


def reload_config() -> Config:
    """Force reload configuration."""
    global _config
    _config = None
    return get_config()
