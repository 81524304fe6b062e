"""
NFT Fractionalizer - Monitoring Package

Structured logging setup shared by every workflow component.
"""

from .logging import (
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
    log_duration,
    unbind_context,
)

__all__ = [
    "bind_context",
    "clear_context",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
    "log_duration",
    "unbind_context",
]
