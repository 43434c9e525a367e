"""Extraction run orchestrator."""

from __future__ import annotations

import asyncio
import logging

from pydantic import ValidationError

from ..shared.llm import LLMProvider, MissingCredentialsError, get_provider
from .augment import ExternalAugmentor
from .config import ExtractionConfig
from .local import Components, analyze, rank_key
from .schema import DecisionCandidate, DocSummary, ExtractionRequest, ExtractionResponse, ResponseMeta
from .strategies import ExtractionStrategy, get_strategy

logger = logging.getLogger(__name__)


def build_strategy(
    mode: str,
    config: ExtractionConfig,
    provider: LLMProvider | None = None,
    model: str | None = None,
) -> ExtractionStrategy:
    """Strategy for *mode*; model modes get an augmentor only when credentials exist."""
    augmentor = None
    if mode != "local":
        if provider is None:
            try:
                provider = get_provider()
            except MissingCredentialsError as e:
                logger.warning("running %s mode without a model: %s", mode, e)
        if provider is not None:
            augmentor = ExternalAugmentor(provider, config, model=model)
    return get_strategy(mode, augmentor)


def _dedupe_warnings(warnings: list[str]) -> list[str]:
    return list(dict.fromkeys(w for w in warnings if w))


def _validated(candidates: list[DecisionCandidate]) -> list[DecisionCandidate]:
    out = []
    for candidate in candidates:
        try:
            out.append(DecisionCandidate.model_validate(candidate.model_dump()))
        except ValidationError as e:
            logger.warning("dropping candidate %s failing validation: %s", candidate.id, e.error_count())
    return out


async def run_extraction(
    request: ExtractionRequest,
    strategy: ExtractionStrategy | None = None,
    components: Components | None = None,
) -> ExtractionResponse:
    """
    Extract decision candidates from a normalized request.

    Args:
        request: Output of ``parse_request``.
        strategy: Defaults to the local heuristic strategy.
        components: Shared stage objects; built from the default config if omitted.

    Returns:
        ExtractionResponse with candidates sorted hard-first, then by confidence.
    """
    components = components or Components.build()
    strategy = strategy or get_strategy("local")
    config = components.config

    # Stage 1: segment + gate every page
    analysis = analyze(request.doc_name, request.pages, components)

    # Stage 2: strategy (local, model extraction or model refinement)
    result = await strategy.run(analysis, components, request.options.max_candidates_per_page)

    # Stage 3: validate, rank, cap
    candidates = _validated(result.candidates)
    candidates.sort(key=rank_key)
    candidates = candidates[: config.max_candidates]

    warnings = _dedupe_warnings(result.warnings)
    logger.info(
        "%s: %d candidates via %s (%d warnings)", request.doc_name, len(candidates), strategy.name, len(warnings)
    )
    return ExtractionResponse(
        doc=DocSummary(name=request.doc_name, page_count=request.page_count),
        candidates=candidates,
        meta=ResponseMeta(
            pages_received=len(request.pages),
            total_chars=request.total_chars,
            warnings=warnings or None,
        ),
    )


def extract_document(
    request: ExtractionRequest,
    mode: str = "local",
    config: ExtractionConfig | None = None,
    provider: LLMProvider | None = None,
) -> ExtractionResponse:
    """Synchronous entry point for scripts and the batch CLI."""
    config = config or ExtractionConfig()
    mode = request.options.mode or mode
    strategy = build_strategy(mode, config, provider, request.options.model)
    return asyncio.run(run_extraction(request, strategy, Components.build(config)))
