"""Logging and metrics for discotrack."""

from discotrack.observability.logging import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
