"""LLM provider abstraction."""
from .base import LLMProvider, MissingCredentialsError, ProviderTimeoutError, get_provider
from .anthropic_provider import AnthropicProvider

__all__ = [
    "AnthropicProvider",
    "LLMProvider",
    "MissingCredentialsError",
    "ProviderTimeoutError",
    "get_provider",
]
