"""External model augmentation.

Every provider call is raced against ``AugmentConfig.timeout_s`` with
``asyncio.wait_for``. Failures surface as :class:`AugmentationError`
subclasses; the strategies catch them and fall back to local output.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from pydantic import ValidationError

from ...shared.llm import LLMProvider, ProviderTimeoutError
from ..config import ExtractionConfig
from ..errors import (
    AugmentationError,
    InsufficientOutputError,
    MalformedOutputError,
    ModelCallError,
    ModelTimeoutError,
)
from ..merge import MergeResolver
from ..schema import DecisionCandidate, KeptCandidate, RefinementResult
from ..vocabulary import DEFAULT_VOCABULARY, Vocabulary
from . import prompts
from .normalize import normalize_candidate, normalize_category
from .parsing import Failed, parse_with_repair

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageSnippets:
    page: int
    snippets: tuple[str, ...]

    def payload(self) -> dict[str, Any]:
        return {"page": self.page, "snippets": list(self.snippets)}


@dataclass
class RefinementOutcome:
    candidates: list[DecisionCandidate]
    dropped_ids: list[str] = field(default_factory=list)
    notes: str | None = None


@dataclass
class ExtractionOutcome:
    candidates: list[DecisionCandidate]
    warnings: list[str] = field(default_factory=list)


class ExternalAugmentor:
    """Runs model extraction/refinement passes under a strict JSON contract."""

    def __init__(
        self,
        provider: LLMProvider,
        config: ExtractionConfig | None = None,
        vocabulary: Vocabulary = DEFAULT_VOCABULARY,
        model: str | None = None,
    ) -> None:
        self.provider = provider
        self.config = config or ExtractionConfig()
        self.vocabulary = vocabulary
        self.model = model or self.config.augment.model
        self.resolver = MergeResolver(vocabulary)

    # -- calls --------------------------------------------------------------

    async def _call(self, prompt: str, system: str = prompts.SYSTEM_PROMPT) -> str:
        timeout = self.config.augment.timeout_s
        try:
            text = await asyncio.wait_for(
                self.provider.generate(
                    prompt,
                    model=self.model,
                    system=system,
                    timeout=timeout,
                    max_tokens=self.config.augment.max_tokens,
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, ProviderTimeoutError) as e:
            logger.warning("[augment] model call timed out after %.1fs", timeout)
            raise ModelTimeoutError(f"model call exceeded {timeout:.0f}s") from e
        if not text:
            raise ModelCallError("empty model response")
        return text

    async def _repair(self, raw: str) -> str:
        logger.info("[augment] requesting JSON repair (%d chars)", len(raw))
        return await self._call(prompts.repair_prompt(raw), system=prompts.REPAIR_SYSTEM)

    async def call_json(self, prompt: str) -> Any:
        outcome = await parse_with_repair(await self._call(prompt), self._repair)
        if isinstance(outcome, Failed):
            raise MalformedOutputError(outcome.reason)
        return outcome.value

    # -- extraction ---------------------------------------------------------

    async def _extract_pass(
        self,
        snippets: Sequence[PageSnippets],
        pages: Mapping[int, str],
        mode: str,
        max_per_page: int,
    ) -> list[DecisionCandidate]:
        prompt = prompts.extraction_prompt([s.payload() for s in snippets], mode, max_per_page)
        value = await self.call_json(prompt)
        items = value.get("candidates") if isinstance(value, dict) else value
        if not isinstance(items, list):
            raise MalformedOutputError("response has no candidates array")

        fallback_page = snippets[0].page if len(snippets) == 1 else None
        out: list[DecisionCandidate] = []
        per_page: dict[int, int] = {}
        for i, raw in enumerate(items):
            candidate = normalize_candidate(
                raw,
                pages,
                fallback_id=f"m-{mode}-{i + 1}",
                default_strength=mode,
                fallback_page=fallback_page,
                vocabulary=self.vocabulary,
            )
            if candidate is None:
                continue
            page = candidate.evidence.page
            if per_page.get(page, 0) >= max_per_page:
                continue
            per_page[page] = per_page.get(page, 0) + 1
            out.append(candidate.model_copy(update={"id": f"m-{mode}-{i + 1}"}))

        logger.info("[augment] %s pass: %d raw -> %d valid candidates", mode, len(items), len(out))
        return out

    async def extract(
        self,
        snippets: Sequence[PageSnippets],
        pages: Mapping[int, str],
        max_per_page: int | None = None,
    ) -> ExtractionOutcome:
        """Run the hard and soft passes concurrently and merge their output.

        Raises:
            AugmentationError: Both passes failed.
        """
        if not snippets:
            return ExtractionOutcome(candidates=[])
        max_per_page = max_per_page or self.config.augment.max_candidates_per_page

        results = await asyncio.gather(
            self._extract_pass(snippets, pages, "hard", max_per_page),
            self._extract_pass(snippets, pages, "soft", max_per_page),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, AugmentationError)]
        for r in results:
            if isinstance(r, BaseException) and not isinstance(r, AugmentationError):
                raise r
        if len(failures) == len(results):
            raise failures[0]

        passes = [r for r in results if isinstance(r, list)]
        merged = self.resolver.merge_into(
            passes[0], [c for p in passes[1:] for c in p], self.config.cross_model_merge_similarity
        )
        return ExtractionOutcome(
            candidates=merged,
            warnings=[f.warning for f in failures],
        )

    # -- refinement ---------------------------------------------------------

    def min_keep(self, count: int) -> int:
        augment = self.config.augment
        return min(count, max(augment.min_keep_floor, int(count * augment.min_keep_ratio)))

    async def refine(self, candidates: Sequence[DecisionCandidate]) -> RefinementOutcome:
        """Ask the model to keep/drop/rewrite local candidates.

        Evidence quotes and pages are never taken from the model.

        Raises:
            AugmentationError: Call failed, output malformed, or too few kept.
        """
        if not candidates:
            return RefinementOutcome(candidates=[])

        by_id = {c.id: c for c in candidates}
        min_keep = self.min_keep(len(candidates))
        payload = [
            {
                "id": c.id,
                "title": c.title,
                "decision": c.decision,
                "category": c.category,
                "strength": c.strength,
                "page": c.evidence.page,
                "quote": c.evidence.quote,
                "tags": c.tags,
            }
            for c in candidates
        ]
        value = await self.call_json(prompts.refinement_prompt(payload, min_keep))
        try:
            result = RefinementResult.model_validate(value)
        except ValidationError as e:
            raise MalformedOutputError(f"refinement response does not match schema: {e.error_count()} errors") from e

        kept: list[DecisionCandidate] = []
        seen: set[str] = set()
        absorbed: set[str] = set()
        for entry in result.kept_candidates:
            original = by_id.get(entry.id)
            if original is None or entry.id in seen:
                logger.debug("[augment] ignoring unknown kept id %r", entry.id)
                continue
            seen.add(entry.id)
            merged_from = [i for i in entry.merged_from_ids if i in by_id and i != entry.id]
            absorbed.update(merged_from)
            kept.append(self._apply(original, entry, merged_from, by_id))

        kept = [c for c in kept if c.id not in absorbed]
        if len(kept) < min_keep:
            raise InsufficientOutputError(f"kept {len(kept)} of {len(candidates)}, need {min_keep}")

        dropped = [i for i in result.drop_ids if i in by_id]
        logger.info(
            "[augment] refinement kept %d, dropped %d, absorbed %d", len(kept), len(dropped), len(absorbed)
        )
        return RefinementOutcome(candidates=kept, dropped_ids=dropped, notes=result.notes)

    def _apply(
        self,
        original: DecisionCandidate,
        entry: KeptCandidate,
        merged_from: list[str],
        by_id: Mapping[str, DecisionCandidate],
    ) -> DecisionCandidate:
        update: dict[str, Any] = {}
        if entry.rewritten_decision and entry.rewritten_decision.strip():
            update["decision"] = entry.rewritten_decision.strip()[: self.config.max_decision_chars * 2]
        if entry.title and entry.title.strip():
            update["title"] = entry.title.strip()[:120]
        if entry.category:
            category = normalize_category(entry.category, self.vocabulary)
            if category != "Other" or original.category == "Other":
                update["category"] = category
        if entry.reason_keep:
            update["rationale"] = entry.reason_keep.strip() or original.rationale

        tags = list(original.tags)
        for tag in entry.tags or []:
            if isinstance(tag, str) and tag.strip():
                tags.append(tag.strip().lower())
        for other_id in merged_from:
            tags.extend(by_id[other_id].tags)
        if merged_from:
            tags.append("multi-source")
        update["tags"] = list(dict.fromkeys(tags))

        return original.model_copy(update=update)
