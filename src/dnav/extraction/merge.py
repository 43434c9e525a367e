"""Duplicate resolution between decision candidates.

Used inside the local pipeline (threshold 0.65) and when folding model
candidates into local ones (threshold 0.55).
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from .cluster import TitleTokenizer, jaccard
from .schema import DecisionCandidate
from .vocabulary import DEFAULT_VOCABULARY, Vocabulary

logger = logging.getLogger(__name__)

STRENGTH_WEIGHT: dict[str, int] = {"hard": 2, "soft": 1}


def normalize_title(title: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"[^\w\s]", " ", title.lower())).strip()


def preference(candidate: DecisionCandidate) -> int:
    return STRENGTH_WEIGHT[candidate.strength] * 10 + candidate.constraints.confidence.score


class MergeResolver:
    def __init__(self, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> None:
        self.tokens = TitleTokenizer(vocabulary)

    def similarity(self, a: DecisionCandidate, b: DecisionCandidate) -> float:
        return jaccard(
            self.tokens(f"{a.title} {a.decision}"),
            self.tokens(f"{b.title} {b.decision}"),
        )

    def is_duplicate(self, a: DecisionCandidate, b: DecisionCandidate, threshold: float) -> bool:
        if normalize_title(a.title) == normalize_title(b.title):
            return True
        return self.similarity(a, b) >= threshold

    def resolve(self, a: DecisionCandidate, b: DecisionCandidate) -> DecisionCandidate:
        """Combine two duplicates; *a* wins ties."""
        preferred, other = (b, a) if preference(b) > preference(a) else (a, b)

        pref_conf = preferred.constraints.confidence.score
        other_conf = other.constraints.confidence.score
        evidence = other.evidence if other_conf > pref_conf else preferred.evidence

        tags = list(dict.fromkeys([*preferred.tags, *other.tags]))

        return preferred.model_copy(
            update={
                "decision": preferred.decision or other.decision,
                "rationale": preferred.rationale or other.rationale,
                "category": other.category if preferred.category == "Other" else preferred.category,
                "evidence": evidence,
                "tags": tags,
            }
        )

    def merge_into(
        self,
        base: Iterable[DecisionCandidate],
        incoming: Iterable[DecisionCandidate],
        threshold: float,
    ) -> list[DecisionCandidate]:
        """Fold *incoming* into *base*; each incoming item merges with its first duplicate."""
        merged = list(base)
        for candidate in incoming:
            for i, existing in enumerate(merged):
                if self.is_duplicate(existing, candidate, threshold):
                    logger.debug("merging %s into %s", candidate.id, existing.id)
                    merged[i] = self.resolve(existing, candidate)
                    break
            else:
                merged.append(candidate)
        return merged

    def dedupe(self, candidates: Iterable[DecisionCandidate], threshold: float) -> list[DecisionCandidate]:
        return self.merge_into([], candidates, threshold)
