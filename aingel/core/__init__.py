"""Project core.

This package hosts the stable, non-domain-specific building blocks (errors,
contracts/types, and the CLI entrypoint).
"""

from __future__ import annotations

from .errors import AingelError, ConfigError, ModelNotSelectedError, TransportError

__all__ = [
    "AingelError",
    "ConfigError",
    "ModelNotSelectedError",
    "TransportError",
]
