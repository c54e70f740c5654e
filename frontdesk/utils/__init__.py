"""Utilities module."""

from .logger import bind_hotel, get_logger, mask_sensitive, redact_secrets, setup_logging

__all__ = [
    "bind_hotel",
    "get_logger",
    "mask_sensitive",
    "redact_secrets",
    "setup_logging",
]
