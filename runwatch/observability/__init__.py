"""Observability package for structured logging setup."""

from .logging import JSONFormatter, observability_configure_logging

__all__ = ["JSONFormatter", "observability_configure_logging"]
