"""Convenience exports for the :mod:`mobius_query.utils` package."""

from .logging_config import setup_logging

__all__ = ["setup_logging"]
