"""Core application utilities — structured logging.

This package is framework-agnostic. It must NEVER import from ``bot/`` or ``max_sdk/``.
"""

from core.logger import MaxBotLogger

__all__ = [
    "MaxBotLogger",
]
