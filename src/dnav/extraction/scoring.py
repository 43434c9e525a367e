"""Local scoring: canonical decisions -> user-facing decision candidates."""

from __future__ import annotations

import re

from .config import ExtractionConfig
from .schema import ConstraintScore, Constraints, DecisionCandidate, Evidence
from .types import CanonicalDecision, GateResult
from .vocabulary import DEFAULT_VOCABULARY, Vocabulary

# time precision -> urgency bump
URGENCY_BY_PRECISION: dict[str, int] = {
    "quarter": 3,
    "month": 3,
    "half": 2,
    "fiscal": 1,
    "year": 1,
    "relative": 1,
}


def clamp_score(value: float) -> int:
    return max(1, min(10, int(round(value))))


def truncate_words(text: str, limit: int, ellipsis: str = "…") -> str:
    """Cut *text* to at most *limit* chars at a word boundary.

    With an ellipsis the marker counts toward the limit. With ``ellipsis=""``
    the result is a prefix of the stripped input, which keeps quotes verbatim.
    """
    text = text.strip()
    if len(text) <= limit:
        return text
    room = limit - len(ellipsis)
    cut = text[:room]
    space = cut.rfind(" ")
    if space > room // 2:
        cut = cut[:space]
    return cut.rstrip(" ,;:-\n\t") + ellipsis


class CandidateScorer:
    """Builds :class:`DecisionCandidate` records from clustered local output."""

    def __init__(
        self,
        config: ExtractionConfig | None = None,
        vocabulary: Vocabulary = DEFAULT_VOCABULARY,
    ) -> None:
        self.config = config or ExtractionConfig()
        self._categories = tuple((name, re.compile(p, re.I)) for name, p in vocabulary.category_rules)
        self._tags = tuple((name, re.compile(p, re.I)) for name, p in vocabulary.tag_rules)

    def category(self, text: str) -> str:
        for name, pattern in self._categories:
            if pattern.search(text):
                return name
        return "Other"

    def tags(self, text: str) -> list[str]:
        return [name for name, pattern in self._tags if pattern.search(text)]

    @staticmethod
    def strength(gate: GateResult) -> str:
        strong = gate.commitment_strength >= 1.0 or gate.signals.reversal_cost
        return "hard" if gate.bin == "Decision" and strong else "soft"

    def constraints(self, decision: CanonicalDecision) -> Constraints:
        unit = decision.representative
        gate = unit.candidate.gate
        s = gate.signals
        cue = unit.form.time_cue
        hedged = 0 < gate.commitment_strength < self.config.weak_strength
        merged = len(decision.sources.candidate_ids) > 1

        impact = 5 + 2 * s.capital + s.exposure + int(merged)
        cost = 5 + 2 * s.capital + s.reversal_cost
        risk = 5 + s.dependency + s.reversal_cost + int(hedged)
        urgency = 5 + (URGENCY_BY_PRECISION.get(cue.precision, 0) if cue else 0)
        confidence = gate.optionality_score * 10

        def note(*pairs: tuple[bool, str]) -> str:
            hits = [label for hit, label in pairs if hit]
            return "; ".join(hits) if hits else "no explicit cue"

        return Constraints(
            impact=ConstraintScore(
                score=clamp_score(impact),
                evidence=note((bool(s.capital), "capital/operational commitment"),
                              (bool(s.exposure), "public exposure"),
                              (merged, "stated in multiple places")),
            ),
            cost=ConstraintScore(
                score=clamp_score(cost),
                evidence=note((bool(s.capital), "capital/operational cue"),
                              (bool(s.reversal_cost), "costly to reverse")),
            ),
            risk=ConstraintScore(
                score=clamp_score(risk),
                evidence=note((bool(s.dependency), "depends on other events"),
                              (bool(s.reversal_cost), "hard to unwind"),
                              (hedged, "hedged language")),
            ),
            urgency=ConstraintScore(
                score=clamp_score(urgency),
                evidence=f"timing: {cue.label}" if cue else "no timing stated",
            ),
            confidence=ConstraintScore(
                score=clamp_score(confidence),
                evidence=f"optionality {gate.optionality_score:.2f}",
            ),
        )

    def rationale(self, decision: CanonicalDecision) -> str:
        gate = decision.representative.candidate.gate
        cues = [r for r in gate.reasons_included if not r.startswith("commitment:")]
        verb = gate.commitment_verb
        text = f'Commitment language ("{verb}")' if verb else "Irreversible action with a stated time"
        if cues:
            text += " with " + ", ".join(cues)
        text += "."
        if len(decision.sources.candidate_ids) > 1:
            text += f" Stated {len(decision.sources.candidate_ids)} times in the document."
        return text

    def to_candidate(self, decision: CanonicalDecision) -> DecisionCandidate:
        rep = decision.representative.candidate
        anchor = rep.evidence[0]
        text = f"{decision.title} {rep.raw_text}"

        tags = self.tags(text)
        if len(decision.sources.candidate_ids) > 1:
            tags.append("multi-source")
        if decision.sources.suggested_merge_ids:
            tags.append("review-merge")

        return DecisionCandidate(
            id=decision.id,
            title=decision.title,
            strength=self.strength(rep.gate),
            category=self.category(text),
            decision=truncate_words(rep.raw_text, self.config.max_decision_chars),
            rationale=self.rationale(decision),
            constraints=self.constraints(decision),
            evidence=Evidence(
                page=anchor.page,
                quote=truncate_words(anchor.excerpt, self.config.max_quote_chars, ellipsis=""),
                location_hint=rep.section_hint or (f"{anchor.file_name} p.{anchor.page}" if anchor.file_name else None),
            ),
            tags=tags,
        )
