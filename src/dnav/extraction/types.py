"""Internal pipeline records.

Every record is frozen and built once per run; later stages derive new
records rather than updating earlier ones.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

Bin = Literal["Decision", "MaybeDecision", "EvidenceOnly", "Rejected"]
Precision = Literal["quarter", "half", "month", "fiscal", "year", "relative"]


@dataclass(frozen=True)
class PageText:
    page: int
    text: str
    file_name: str = ""


@dataclass(frozen=True)
class Segment:
    """One bounded statement unit drawn from a page.

    ``text`` is whitespace-normalized; ``excerpt`` is ``page_text[start:end]``
    of the raw page text, so it can always be located in the source.
    """

    page: int
    index: int
    text: str
    excerpt: str
    start: int
    end: int
    context_text: str
    section_hint: str | None = None


@dataclass(frozen=True)
class PageSegments:
    page: int
    segments: tuple[Segment, ...]
    low_signal: bool = False
    section_hint: str | None = None


@dataclass(frozen=True)
class EvidenceAnchor:
    doc_id: str
    file_name: str
    page: int
    excerpt: str


@dataclass(frozen=True)
class TimeCue:
    text: str
    start: int
    end: int
    bucket: str
    label: str
    precision: Precision
    confidence: float


@dataclass(frozen=True)
class ConstraintSignals:
    time: int = 0
    capital: int = 0
    exposure: int = 0
    dependency: int = 0
    reversal_cost: int = 0
    optionality_score: float = 0.0


@dataclass(frozen=True)
class GateResult:
    bin: Bin
    optionality_score: float
    signals: ConstraintSignals
    commitment_verb: str | None = None
    commitment_strength: float = 0.0
    is_table_noise: bool = False
    is_metric_recitation: bool = False
    matched_cues: tuple[str, ...] = ()
    reasons_included: tuple[str, ...] = ()
    reasons_excluded: tuple[str, ...] = ()

    @property
    def accepted(self) -> bool:
        return self.bin in ("Decision", "MaybeDecision")


@dataclass(frozen=True)
class RawCandidate:
    id: str
    doc_id: str
    page: int
    raw_text: str
    context_text: str
    gate: GateResult
    evidence: tuple[EvidenceAnchor, ...]
    section_hint: str | None = None
    is_table_noise: bool = False
    extraction_score: float = 0.0
    date_mentions: tuple[str, ...] = ()


@dataclass(frozen=True)
class CanonicalForm:
    title: str
    action_verb: str
    object_key: str
    object_phrase: str
    time_bucket: str | None = None
    time_cue: TimeCue | None = None


@dataclass(frozen=True)
class CanonicalUnit:
    candidate: RawCandidate
    form: CanonicalForm


@dataclass(frozen=True)
class MergeSources:
    candidate_ids: tuple[str, ...]
    merge_confidence: float
    merge_reason: tuple[str, ...]
    suggested_merge_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class CanonicalDecision:
    id: str
    doc_id: str
    title: str
    action_verb: str
    object_key: str
    time_bucket: str | None
    evidence: tuple[EvidenceAnchor, ...]
    sources: MergeSources
    representative: CanonicalUnit
    members: tuple[CanonicalUnit, ...] = field(default=())
