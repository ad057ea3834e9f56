"""Exception hierarchy shared by every *mobius_query* module.

Only :class:`MobiusConnectionError` and :class:`MissingInputError` are meant to
halt a caller.  :class:`ParseError` describes a single malformed record and is
recovered by the bulk query engine, which skips the record and carries on.
"""

from __future__ import annotations


class MobiusError(RuntimeError):
    """Base class for all errors raised by this package."""


class MobiusConnectionError(MobiusError, ConnectionError):
    """Raised when the QA server cannot be reached or answers nonsense."""


class MobiusAuthError(MobiusError):
    """Raised when no credentials are available to open a session."""


class MissingInputError(MobiusError, ValueError):
    """Raised before any network access when required criteria are absent."""


class InvalidCriterionError(MissingInputError):
    """Raised when a supplied criterion cannot be evaluated (e.g. bad regex)."""


class ParseError(MobiusError, ValueError):
    """Raised when a detail or DVH payload cannot be decoded."""

    def __init__(self, message: str, cid: str | None = None) -> None:
        super().__init__(message)
        self.cid = cid
