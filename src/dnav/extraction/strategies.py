"""Extraction strategies behind one interface.

All three share the same gate/canonicalizer/clusterer/resolver through
:class:`~dnav.extraction.local.Components`; they differ only in whether and
how a model is consulted. Every model failure degrades to the local result
with a warning.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from .augment import ExternalAugmentor, PageSnippets
from .errors import AugmentationError
from .local import Components, DocumentAnalysis, local_candidates
from .schema import DecisionCandidate
from .scoring import truncate_words

logger = logging.getLogger(__name__)

NO_CREDENTIALS_WARNING = "Model credentials are not configured; returned local results."


@dataclass
class StrategyResult:
    candidates: list[DecisionCandidate]
    warnings: list[str] = field(default_factory=list)


class ExtractionStrategy(ABC):
    """Turns an analyzed document into decision candidates."""

    name: str = ""

    def __init__(self, augmentor: ExternalAugmentor | None = None) -> None:
        self.augmentor = augmentor

    @abstractmethod
    async def run(
        self,
        analysis: DocumentAnalysis,
        components: Components,
        max_per_page: int | None = None,
    ) -> StrategyResult:
        ...

    @staticmethod
    def local_result(
        analysis: DocumentAnalysis,
        components: Components,
        max_per_page: int | None = None,
    ) -> StrategyResult:
        """Primary pages first; the remaining pages only if that finds nothing."""
        primary, secondary = analysis.page_selection()
        candidates = local_candidates(analysis, primary, components, max_per_page)
        if not candidates and secondary:
            logger.info("no candidates on %d primary pages; trying %d secondary pages", len(primary), len(secondary))
            candidates = local_candidates(analysis, secondary, components, max_per_page)
        return StrategyResult(candidates=candidates)


STRATEGIES: dict[str, type[ExtractionStrategy]] = {}


def register_strategy(cls: type[ExtractionStrategy]) -> type[ExtractionStrategy]:
    """Decorator to register a strategy class under its ``name``."""
    STRATEGIES[cls.name] = cls
    return cls


def get_strategy(name: str, augmentor: ExternalAugmentor | None = None) -> ExtractionStrategy:
    """Build the strategy registered as *name*.

    Raises:
        ValueError: If the strategy name is unknown.
    """
    if name not in STRATEGIES:
        raise ValueError(f"Unknown strategy: {name!r}. Available: {list(STRATEGIES)}")
    return STRATEGIES[name](augmentor)


@register_strategy
class LocalHeuristic(ExtractionStrategy):
    name = "local"

    async def run(self, analysis, components, max_per_page=None) -> StrategyResult:
        return self.local_result(analysis, components, max_per_page)


@register_strategy
class ModelExtraction(ExtractionStrategy):
    """Model reads gate-prefiltered snippets; its output is folded into the local result."""

    name = "extract"

    @staticmethod
    def snippets(analysis: DocumentAnalysis, pages: list[int], components: Components) -> list[PageSnippets]:
        budget = components.config.augment
        out: list[PageSnippets] = []
        used = 0
        for page in pages[: budget.max_pages]:
            units = [
                (seg, g)
                for seg, g in analysis.gated.get(page, [])
                if g.accepted or (g.commitment_verb and not g.is_table_noise)
            ]
            units.sort(key=lambda pair: -pair[1].optionality_score)
            texts: list[str] = []
            for seg, _ in units[: budget.max_snippets_per_page]:
                snippet = truncate_words(seg.text, budget.max_snippet_chars)
                if used + len(snippet) > budget.max_prompt_chars:
                    break
                used += len(snippet)
                texts.append(snippet)
            if texts:
                out.append(PageSnippets(page=page, snippets=tuple(texts)))
        return out

    async def run(self, analysis, components, max_per_page=None) -> StrategyResult:
        local = self.local_result(analysis, components, max_per_page)
        if self.augmentor is None:
            local.warnings.append(NO_CREDENTIALS_WARNING)
            return local

        primary = analysis.decision_pages()
        warnings: list[str] = []
        try:
            outcome = await self.augmentor.extract(
                self.snippets(analysis, primary, components), analysis.page_texts, max_per_page
            )
            warnings.extend(outcome.warnings)
            model_candidates = outcome.candidates
            if not model_candidates:
                broader = [p for p in analysis.page_numbers if p not in set(primary)]
                logger.info("model found nothing on %d pages; trying %d more", len(primary), len(broader))
                outcome = await self.augmentor.extract(
                    self.snippets(analysis, broader, components), analysis.page_texts, max_per_page
                )
                warnings.extend(outcome.warnings)
                model_candidates = outcome.candidates
        except AugmentationError as e:
            logger.warning("model extraction failed (%s): %s", type(e).__name__, e)
            local.warnings.append(e.warning)
            return local

        merged = components.resolver.merge_into(
            model_candidates, local.candidates, components.config.cross_model_merge_similarity
        )
        return StrategyResult(candidates=merged, warnings=warnings)


@register_strategy
class ModelRefinement(ExtractionStrategy):
    """Model keeps, drops and rewrites the local candidates; evidence stays local."""

    name = "refine"

    async def run(self, analysis, components, max_per_page=None) -> StrategyResult:
        local = self.local_result(analysis, components, max_per_page)
        if self.augmentor is None:
            local.warnings.append(NO_CREDENTIALS_WARNING)
            return local
        if not local.candidates:
            return local

        try:
            outcome = await self.augmentor.refine(local.candidates)
        except AugmentationError as e:
            logger.warning("model refinement failed (%s): %s", type(e).__name__, e)
            local.warnings.append(e.warning)
            return local
        return StrategyResult(candidates=outcome.candidates)
