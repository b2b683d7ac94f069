"""Error types raised by the forecasting services."""

from __future__ import annotations


class InvalidArgument(ValueError):
    """The caller asked for an impossible forecast or supplied malformed readings."""


class CompletionFailure(RuntimeError):
    """The text completion capability could not produce a response."""


class ParseFailure(ValueError):
    """A completion response could not be turned into forecast points."""
