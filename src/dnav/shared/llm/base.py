"""Base LLM provider interface.

Providers are async: the extraction strategies issue several model passes
concurrently and race each one against a timeout, so ``generate`` must be
awaitable and cancellable.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class MissingCredentialsError(RuntimeError):
    """Raised when a provider is constructed without usable credentials."""


class ProviderTimeoutError(TimeoutError):
    """Raised when the HTTP request to the model exceeds its timeout."""


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------


class LLMProvider(ABC):
    """Abstract base for LLM providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g. 'anthropic')."""
        ...

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        model: str,
        system: str | None = None,
        timeout: float = 30,
        max_tokens: int = 2000,
        temperature: float = 0.0,
    ) -> str:
        """Generate a text completion.

        Args:
            prompt: User prompt text.
            model: Model name or alias (e.g. 'haiku', 'claude-sonnet-4-5').
            system: Optional system instruction.
            timeout: Request timeout in seconds.
            max_tokens: Maximum output tokens.
            temperature: Sampling temperature (0.0-1.0).

        Returns:
            Generated text. Empty string on failure.

        Raises:
            ProviderTimeoutError: If the request timed out. Cancellation
                also propagates.
        """
        ...


# ---------------------------------------------------------------------------
# Provider registry
# ---------------------------------------------------------------------------


def get_provider(name: str = "anthropic", api_key: str | None = None) -> LLMProvider:
    """Build a provider by name.

    Raises:
        MissingCredentialsError: If the provider has no credentials.
        ValueError: If *name* is not a known provider.
    """
    if name == "anthropic":
        from .anthropic_provider import AnthropicProvider

        logger.debug("Creating AnthropicProvider")
        return AnthropicProvider(api_key=api_key)
    raise ValueError(f"Unknown provider: {name}")
