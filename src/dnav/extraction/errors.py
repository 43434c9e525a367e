"""Error types raised by the extraction pipeline.

Only request errors reach the caller. Everything under
:class:`AugmentationError` is caught by the strategies and turned into a
warning on an otherwise successful, local-only result.
"""

from __future__ import annotations


class DecisionExtractError(Exception):
    """Base class for extraction errors."""


class InvalidRequestError(DecisionExtractError):
    """The request body matches neither accepted shape."""

    def __init__(self, message: str, issues: list[dict] | None = None) -> None:
        super().__init__(message)
        self.issues = issues or []


class PayloadTooLargeError(DecisionExtractError):
    """Total page text exceeds the configured limit."""

    def __init__(self, total_chars: int, limit: int) -> None:
        super().__init__(f"Document too large: {total_chars} chars exceeds limit of {limit}")
        self.total_chars = total_chars
        self.limit = limit


class AugmentationError(DecisionExtractError):
    """A model pass could not produce usable output."""

    warning = "Model augmentation failed; returned local results."


class ModelTimeoutError(AugmentationError):
    warning = "Model request timed out; returned local results."


class MalformedOutputError(AugmentationError):
    warning = "Model returned malformed JSON; returned local results."


class ModelCallError(AugmentationError):
    warning = "Model request failed; returned local results."


class InsufficientOutputError(AugmentationError):
    warning = "Model refinement kept too few candidates; returned local results."
