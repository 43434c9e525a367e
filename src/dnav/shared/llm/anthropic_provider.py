"""Anthropic (Claude) LLM provider over the Messages API.

Authentication uses an API key, either passed explicitly or read from the
``ANTHROPIC_API_KEY`` environment variable. Construction fails with
:class:`MissingCredentialsError` when neither is available, which callers
treat as "run without model augmentation".

Requests go through ``httpx.AsyncClient``. Transient HTTP statuses are
retried with jittered exponential backoff; timeouts are not retried because
the caller already bounds the whole call with its own deadline.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import random
import time
from typing import Any

import httpx

from .base import LLMProvider, MissingCredentialsError, ProviderTimeoutError

logger = logging.getLogger("dnav.shared.llm.anthropic")

# ---------------------------------------------------------------------------
# Retry configuration
# ---------------------------------------------------------------------------

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_BACKOFF = 0.5
DEFAULT_MAX_BACKOFF = 8.0
DEFAULT_BACKOFF_MULTIPLIER = 2.0
JITTER_FACTOR = 0.1
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 529}

# ---------------------------------------------------------------------------
# Model aliases
# ---------------------------------------------------------------------------

MODEL_MAP: dict[str, str] = {
    "claude-haiku": "claude-haiku-4-5",
    "claude-3-5-haiku": "claude-3-5-haiku-latest",
    "claude-sonnet": "claude-sonnet-4-5",
    "claude-sonnet-4": "claude-sonnet-4-20250514",
    "claude-opus": "claude-opus-4-1",
    "haiku": "claude-haiku-4-5",
    "sonnet": "claude-sonnet-4-5",
    "opus": "claude-opus-4-1",
}


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


class AnthropicProvider(LLMProvider):
    """Anthropic Claude provider authenticated with an API key."""

    API_ENDPOINT = "https://api.anthropic.com/v1/messages"
    API_VERSION = "2023-06-01"

    def __init__(
        self,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise MissingCredentialsError(
                "ANTHROPIC_API_KEY is not set; model augmentation is unavailable"
            )
        self._api_key = api_key
        self._transport = transport

    @property
    def name(self) -> str:
        return "anthropic"

    @staticmethod
    def _resolve_model(model: str) -> str:
        resolved = MODEL_MAP.get(model, model)
        if resolved != model:
            logger.debug("Model alias: %s -> %s", model, resolved)
        return resolved

    # -- retry helpers ------------------------------------------------------

    @staticmethod
    def _calculate_backoff(attempt: int, retry_after: float | None) -> float:
        if retry_after is not None:
            return min(retry_after, DEFAULT_MAX_BACKOFF)
        backoff = DEFAULT_INITIAL_BACKOFF * (DEFAULT_BACKOFF_MULTIPLIER ** attempt)
        backoff = min(backoff, DEFAULT_MAX_BACKOFF)
        return backoff + backoff * JITTER_FACTOR * random.random()

    @staticmethod
    def _parse_retry_after(response: httpx.Response) -> float | None:
        retry_after = response.headers.get("retry-after")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass
        return None

    @staticmethod
    def _extract_text(data: dict[str, Any]) -> str:
        parts = [
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        ]
        return "\n".join(parts).strip()

    # -- main generate ------------------------------------------------------

    async def generate(
        self,
        prompt: str,
        model: str = "claude-haiku-4-5",
        system: str | None = None,
        timeout: float = 30,
        max_tokens: int = 2000,
        temperature: float = 0.0,
    ) -> str:
        """Generate text using the Anthropic Messages API.

        Returns:
            Generated text. Empty string on failure.

        Raises:
            ProviderTimeoutError: If the HTTP request timed out.
        """
        resolved_model = self._resolve_model(model)
        logger.debug(
            "[anthropic] model=%s prompt_len=%d timeout=%.0fs",
            resolved_model,
            len(prompt),
            timeout,
        )

        request_body: dict[str, Any] = {
            "model": resolved_model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            request_body["system"] = system

        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": self.API_VERSION,
            "Content-Type": "application/json",
        }

        start_time = time.time()
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            for attempt in range(DEFAULT_MAX_RETRIES):
                try:
                    response = await client.post(
                        self.API_ENDPOINT, json=request_body, headers=headers
                    )
                except httpx.TimeoutException as e:
                    logger.error(
                        "[anthropic] FAILED timeout | model=%s | elapsed=%.1fs",
                        resolved_model,
                        time.time() - start_time,
                    )
                    raise ProviderTimeoutError(f"request exceeded {timeout:.0f}s") from e
                except (httpx.ConnectError, httpx.RemoteProtocolError, OSError) as e:
                    if attempt < DEFAULT_MAX_RETRIES - 1:
                        backoff = self._calculate_backoff(attempt, None)
                        logger.info(
                            "[anthropic] RETRY connection error | attempt=%d/%d | "
                            "model=%s | error=%s: %s | wait=%.1fs",
                            attempt + 1,
                            DEFAULT_MAX_RETRIES,
                            resolved_model,
                            type(e).__name__,
                            e,
                            backoff,
                        )
                        await asyncio.sleep(backoff)
                        continue
                    logger.error(
                        "[anthropic] FAILED connection after %d attempts | model=%s | "
                        "error=%s: %s",
                        DEFAULT_MAX_RETRIES,
                        resolved_model,
                        type(e).__name__,
                        e,
                    )
                    return ""

                elapsed = time.time() - start_time

                if response.status_code in RETRYABLE_STATUS_CODES:
                    if attempt == DEFAULT_MAX_RETRIES - 1:
                        break
                    backoff = self._calculate_backoff(
                        attempt, self._parse_retry_after(response)
                    )
                    logger.info(
                        "[anthropic] RETRY %d | attempt=%d/%d | model=%s | "
                        "wait=%.1fs | elapsed=%.1fs",
                        response.status_code,
                        attempt + 1,
                        DEFAULT_MAX_RETRIES,
                        resolved_model,
                        backoff,
                        elapsed,
                    )
                    await asyncio.sleep(backoff)
                    continue

                if not response.is_success:
                    logger.error(
                        "[anthropic] FAILED %d | model=%s | elapsed=%.1fs | %s",
                        response.status_code,
                        resolved_model,
                        elapsed,
                        response.text[:300],
                    )
                    return ""

                try:
                    data = response.json()
                except ValueError:
                    logger.error("[anthropic] FAILED non-JSON body | model=%s", resolved_model)
                    return ""

                usage = data.get("usage", {})
                logger.debug(
                    "[anthropic] OK | model=%s | in=%d out=%d | %.1fs",
                    resolved_model,
                    usage.get("input_tokens", 0),
                    usage.get("output_tokens", 0),
                    elapsed,
                )

                text = self._extract_text(data)
                if text:
                    if attempt > 0:
                        logger.info(
                            "[anthropic] RECOVERED after %d retries | model=%s | total=%.1fs",
                            attempt,
                            resolved_model,
                            elapsed,
                        )
                    return text

                logger.warning(
                    "[anthropic] Unexpected response: %s", json.dumps(data)[:500]
                )
                return ""

        logger.error(
            "[anthropic] EXHAUSTED %d retries | model=%s",
            DEFAULT_MAX_RETRIES,
            resolved_model,
        )
        return ""
