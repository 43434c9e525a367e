"""Shared local pass: segment, gate, canonicalize, cluster, score.

Every strategy starts from a :class:`DocumentAnalysis` and can ask for the
local candidates of any page subset, so the primary/secondary page passes
reuse one segmentation and one set of gate results.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from .canonical import Canonicalizer
from .cluster import Clusterer
from .config import ExtractionConfig
from .gate import Gate
from .merge import MergeResolver
from .schema import DecisionCandidate
from .scoring import CandidateScorer
from .sections import split_pages
from .segment import Segmenter
from .timecues import find_time_cues
from .types import CanonicalUnit, EvidenceAnchor, GateResult, PageSegments, PageText, RawCandidate, Segment
from .vocabulary import DEFAULT_VOCABULARY, Vocabulary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Components:
    config: ExtractionConfig
    vocabulary: Vocabulary
    segmenter: Segmenter
    gate: Gate
    canonicalizer: Canonicalizer
    clusterer: Clusterer
    scorer: CandidateScorer
    resolver: MergeResolver

    @classmethod
    def build(
        cls,
        config: ExtractionConfig | None = None,
        vocabulary: Vocabulary = DEFAULT_VOCABULARY,
    ) -> "Components":
        config = config or ExtractionConfig()
        return cls(
            config=config,
            vocabulary=vocabulary,
            segmenter=Segmenter(config, vocabulary),
            gate=Gate(config, vocabulary),
            canonicalizer=Canonicalizer(config, vocabulary),
            clusterer=Clusterer(config, vocabulary),
            scorer=CandidateScorer(config, vocabulary),
            resolver=MergeResolver(vocabulary),
        )


@dataclass
class DocumentAnalysis:
    doc_id: str
    doc_name: str
    pages: tuple[PageText, ...]
    page_segments: list[PageSegments]
    gated: dict[int, list[tuple[Segment, GateResult]]] = field(default_factory=dict)

    @property
    def page_texts(self) -> dict[int, str]:
        return {p.page: p.text for p in self.pages}

    @property
    def page_numbers(self) -> list[int]:
        return [ps.page for ps in self.page_segments]

    def page_selection(self) -> tuple[list[int], list[int]]:
        """(primary, secondary) pages; low-signal pages are secondary."""
        return split_pages(self.page_numbers, [ps.page for ps in self.page_segments if ps.low_signal])

    def decision_pages(self) -> list[int]:
        """Pages with at least one Decision/MaybeDecision unit."""
        return [page for page, units in self.gated.items() if any(g.accepted for _, g in units)]

    def bin_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for units in self.gated.values():
            for _, g in units:
                counts[g.bin] = counts.get(g.bin, 0) + 1
        return counts


def document_id(name: str, pages: Sequence[PageText]) -> str:
    digest = hashlib.sha1(name.encode("utf-8"))
    for page in pages:
        digest.update(f"\x00{page.page}\x00".encode("utf-8"))
        digest.update(page.text.encode("utf-8"))
    return f"doc_{digest.hexdigest()[:10]}"


def analyze(doc_name: str, pages: Sequence[PageText], components: Components) -> DocumentAnalysis:
    """Segment every page and gate every unit once."""
    page_segments = components.segmenter.segment_document(pages)
    analysis = DocumentAnalysis(
        doc_id=document_id(doc_name, pages),
        doc_name=doc_name,
        pages=tuple(sorted(pages, key=lambda p: p.page)),
        page_segments=page_segments,
    )
    for ps in page_segments:
        analysis.gated[ps.page] = [(seg, components.gate.evaluate(seg.text)) for seg in ps.segments]

    logger.info(
        "analyzed %s: %d pages, %d units, bins=%s",
        doc_name,
        len(page_segments),
        sum(len(ps.segments) for ps in page_segments),
        analysis.bin_counts(),
    )
    return analysis


def raw_candidate(segment: Segment, gate: GateResult, doc_id: str, file_name: str) -> RawCandidate:
    return RawCandidate(
        id=f"{doc_id}:p{segment.page}:u{segment.index}",
        doc_id=doc_id,
        page=segment.page,
        raw_text=segment.text,
        context_text=segment.context_text,
        gate=gate,
        evidence=(EvidenceAnchor(doc_id=doc_id, file_name=file_name, page=segment.page, excerpt=segment.excerpt),),
        section_hint=segment.section_hint,
        is_table_noise=gate.is_table_noise,
        extraction_score=gate.optionality_score,
        date_mentions=tuple(c.text for c in find_time_cues(segment.text)),
    )


def _cap_per_page(candidates: list[DecisionCandidate], limit: int) -> list[DecisionCandidate]:
    ranked = sorted(candidates, key=rank_key)
    kept_ids: set[str] = set()
    per_page: dict[int, int] = {}
    for c in ranked:
        if per_page.get(c.evidence.page, 0) < limit:
            per_page[c.evidence.page] = per_page.get(c.evidence.page, 0) + 1
            kept_ids.add(c.id)
    return [c for c in candidates if c.id in kept_ids]


def rank_key(candidate: DecisionCandidate) -> tuple[int, int, int]:
    """Hard first, then higher confidence, then earlier page."""
    return (
        0 if candidate.strength == "hard" else 1,
        -candidate.constraints.confidence.score,
        candidate.evidence.page,
    )


def local_candidates(
    analysis: DocumentAnalysis,
    pages: Iterable[int],
    components: Components,
    max_per_page: int | None = None,
) -> list[DecisionCandidate]:
    """Local candidates drawn only from *pages*."""
    config = components.config
    accepted = ("Decision", "MaybeDecision") if config.include_maybe else ("Decision",)

    units: list[CanonicalUnit] = []
    for page in pages:
        for segment, gate in analysis.gated.get(page, []):
            if gate.bin not in accepted:
                continue
            form = components.canonicalizer.canonicalize(segment.text)
            if form is None:
                continue
            candidate = raw_candidate(segment, gate, analysis.doc_id, analysis.doc_name)
            units.append(CanonicalUnit(candidate=candidate, form=form))

    decisions = components.clusterer.cluster(units, analysis.doc_id)
    candidates = [components.scorer.to_candidate(d) for d in decisions]
    candidates = components.resolver.dedupe(candidates, config.local_merge_similarity)
    return _cap_per_page(candidates, max_per_page or config.max_candidates_per_page)
