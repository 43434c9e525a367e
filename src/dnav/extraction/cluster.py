"""Group canonical units into canonical decisions.

Units are first bucketed by ``(action_verb, object_key, time_bucket)``;
inside a bucket clusters grow first-fit in input order against each
cluster's first member. Assignment is therefore deterministic for a given
input order, not globally optimal.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, field
from typing import Sequence

from .config import ExtractionConfig
from .types import CanonicalDecision, CanonicalUnit, EvidenceAnchor, MergeSources
from .vocabulary import DEFAULT_VOCABULARY, Vocabulary

logger = logging.getLogger(__name__)

_PUNCT = re.compile(r"[^\w\s&-]")


def jaccard(a: set[str], b: set[str]) -> float:
    if not a and not b:
        return 1.0
    return len(a & b) / len(a | b)


class TitleTokenizer:
    """Lower-cased, punctuation-stripped, stop-word-free tokens with verb synonyms folded."""

    def __init__(self, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> None:
        self.stopwords = vocabulary.stopwords
        self.verbs = {form: verb for form, verb in vocabulary.verb_index().items() if " " not in form}

    def __call__(self, text: str) -> set[str]:
        words = _PUNCT.sub(" ", text.lower()).split()
        return {self.verbs.get(w, w) for w in words if w not in self.stopwords}


def dedupe_evidence(anchors: Sequence[EvidenceAnchor]) -> tuple[EvidenceAnchor, ...]:
    """Drop anchors repeating an earlier ``(page, excerpt)`` pair, keeping first-seen order."""
    seen: set[tuple[int, str]] = set()
    out: list[EvidenceAnchor] = []
    for anchor in anchors:
        key = (anchor.page, anchor.excerpt)
        if key not in seen:
            seen.add(key)
            out.append(anchor)
    return tuple(out)


@dataclass
class _Cluster:
    members: list[tuple[CanonicalUnit, set[str]]] = field(default_factory=list)
    suggested: list["_Cluster"] = field(default_factory=list)

    @property
    def seed_tokens(self) -> set[str]:
        return self.members[0][1]


class Clusterer:
    def __init__(
        self,
        config: ExtractionConfig | None = None,
        vocabulary: Vocabulary = DEFAULT_VOCABULARY,
    ) -> None:
        self.config = config or ExtractionConfig()
        self.tokens = TitleTokenizer(vocabulary)

    @staticmethod
    def representative_key(unit: CanonicalUnit) -> tuple[int, int, float]:
        return (
            0 if unit.form.time_bucket else 1,
            len(unit.form.title),
            -unit.candidate.extraction_score,
        )

    def _assign(self, units: Sequence[CanonicalUnit]) -> list[_Cluster]:
        groups: dict[tuple[str, str, str | None], list[_Cluster]] = {}
        ordered: list[_Cluster] = []

        for unit in units:
            key = (unit.form.action_verb, unit.form.object_key, unit.form.time_bucket)
            tokens = self.tokens(unit.form.title)
            clusters = groups.setdefault(key, [])
            for cluster in clusters:
                if jaccard(tokens, cluster.seed_tokens) >= self.config.cluster_similarity:
                    cluster.members.append((unit, tokens))
                    break
            else:
                cluster = _Cluster(members=[(unit, tokens)])
                for other in clusters:
                    if jaccard(tokens, other.seed_tokens) >= self.config.suggest_similarity:
                        other.suggested.append(cluster)
                        cluster.suggested.append(other)
                clusters.append(cluster)
                ordered.append(cluster)

        return ordered

    def cluster(self, units: Sequence[CanonicalUnit], doc_id: str = "") -> list[CanonicalDecision]:
        """Collapse *units* into canonical decisions, in order of first appearance."""
        clusters = self._assign(units)

        ids: dict[int, str] = {}
        for cluster in clusters:
            member_ids = "|".join(u.candidate.id for u, _ in cluster.members)
            digest = hashlib.sha1(f"{doc_id}|{member_ids}".encode("utf-8")).hexdigest()[:12]
            ids[id(cluster)] = f"cd_{digest}"

        decisions: list[CanonicalDecision] = []
        for cluster in clusters:
            suggested = tuple(ids[id(other)] for other in cluster.suggested)
            decisions.append(self._collapse(cluster, ids[id(cluster)], doc_id, suggested))

        merged = sum(1 for d in decisions if len(d.sources.candidate_ids) > 1)
        logger.debug("clustered %d units into %d decisions (%d merged)", len(units), len(decisions), merged)
        return decisions

    def _collapse(
        self,
        cluster: _Cluster,
        cluster_id: str,
        doc_id: str,
        suggested: tuple[str, ...],
    ) -> CanonicalDecision:
        members = [unit for unit, _ in cluster.members]
        rep_index = min(range(len(members)), key=lambda i: self.representative_key(members[i]))
        rep, rep_tokens = cluster.members[rep_index]

        if len(members) == 1:
            confidence = 1.0
            reasons: tuple[str, ...] = ("single candidate",)
        else:
            sims = [jaccard(tokens, rep_tokens) for i, (_, tokens) in enumerate(cluster.members) if i != rep_index]
            confidence = sum(sims) / len(sims)
            reasons = (
                "same action/object/time key",
                f"title similarity {confidence:.2f} across {len(members)} candidates",
            )
            if rep.form.time_bucket:
                confidence += self.config.time_confidence_bonus
                reasons += (f"time bucket {rep.form.time_bucket}",)
            confidence = round(min(1.0, max(0.0, confidence)), 4)

        evidence = dedupe_evidence([a for unit in members for a in unit.candidate.evidence])
        return CanonicalDecision(
            id=cluster_id,
            doc_id=doc_id,
            title=rep.form.title,
            action_verb=rep.form.action_verb,
            object_key=rep.form.object_key,
            time_bucket=rep.form.time_bucket,
            evidence=evidence,
            sources=MergeSources(
                candidate_ids=tuple(unit.candidate.id for unit in members),
                merge_confidence=confidence,
                merge_reason=reasons,
                suggested_merge_ids=suggested,
            ),
            representative=rep,
            members=tuple(members),
        )
