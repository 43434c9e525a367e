"""Noise/commitment gate.

Each unit is scored by an ordered list of rules evaluated once against a
precomputed feature record. Signal rules add their weight to the
optionality score; noise rules flag the unit as table/boilerplate; the
metric rule marks outcome statements that name a financial line item
without committing to anything.

Optionality is the weighted sum

    0.35*strength + 0.2*time + 0.2*capital + 0.1*exposure + 0.1*dependency + 0.1*reversal

clamped to [0, 1]. Weights and bin thresholds come from ``ExtractionConfig``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Literal, NamedTuple

from .config import ExtractionConfig
from .timecues import find_time_cues
from .types import Bin, ConstraintSignals, GateResult, TimeCue
from .vocabulary import DEFAULT_VOCABULARY, Vocabulary


def _word_alternation(phrases: tuple[str, ...], escape: bool = True) -> str:
    items = sorted(phrases, key=len, reverse=True)
    body = "|".join(re.escape(p) if escape else p for p in items)
    return rf"\b(?:{body})\b"


class CommitmentMatch(NamedTuple):
    phrase: str
    start: int
    end: int
    strength: float


class CommitmentMatcher:
    """Finds the earliest commitment phrase; ties on position go to the longer phrase."""

    def __init__(
        self,
        config: ExtractionConfig | None = None,
        vocabulary: Vocabulary = DEFAULT_VOCABULARY,
    ) -> None:
        config = config or ExtractionConfig()
        self._tiers: tuple[tuple[re.Pattern, float], ...] = (
            (re.compile(_word_alternation(vocabulary.strong_commitments), re.I), config.strong_strength),
            (re.compile(_word_alternation(vocabulary.weak_commitments), re.I), config.weak_strength),
            (
                re.compile(_word_alternation(vocabulary.hedges) + r"(?!\s+\d)", re.I),
                config.hedge_strength,
            ),
        )

    def find(self, text: str) -> CommitmentMatch | None:
        best: CommitmentMatch | None = None
        for pattern, strength in self._tiers:
            m = pattern.search(text)
            if m is None:
                continue
            found = CommitmentMatch(m.group(0).lower(), m.start(), m.end(), strength)
            if best is None or (found.start, -(found.end - found.start)) < (
                best.start,
                -(best.end - best.start),
            ):
                best = found
        return best


@dataclass(frozen=True)
class UnitFeatures:
    text: str
    commitment: CommitmentMatch | None
    time_cues: tuple[TimeCue, ...]
    digit_ratio: float
    has_letters: bool
    has_digits: bool
    comma_count: int
    separator_count: int


RuleKind = Literal["signal", "noise", "metric"]


@dataclass(frozen=True)
class GateRule:
    name: str
    kind: RuleKind
    predicate: Callable[[UnitFeatures], bool]
    weight: float = 0.0
    tag: str = ""


def extract_features(text: str, matcher: CommitmentMatcher) -> UnitFeatures:
    compact = "".join(text.split())
    digits = sum(ch.isdigit() for ch in compact)
    return UnitFeatures(
        text=text,
        commitment=matcher.find(text),
        time_cues=tuple(find_time_cues(text)),
        digit_ratio=digits / len(compact) if compact else 0.0,
        has_letters=any(ch.isalpha() for ch in compact),
        has_digits=digits > 0,
        comma_count=text.count(","),
        separator_count=len(re.findall(r"[|•·▪]", text)),
    )


def build_rules(config: ExtractionConfig, vocabulary: Vocabulary) -> tuple[GateRule, ...]:
    """The gate's rule table, in evaluation order."""
    capital = re.compile(_word_alternation(vocabulary.capital_cues, escape=False), re.I)
    exposure = re.compile(_word_alternation(vocabulary.exposure_cues, escape=False), re.I)
    dependency = re.compile(_word_alternation(vocabulary.dependency_cues, escape=False), re.I)
    reversal = re.compile(_word_alternation(vocabulary.reversal_cues, escape=False), re.I)
    metric = re.compile(_word_alternation(vocabulary.metric_terms, escape=False), re.I)
    boilerplate = re.compile("|".join(vocabulary.boilerplate), re.I)
    all_caps = re.compile(r"[A-Z\s&-]+")

    # "$5B" has no word boundary before "$", so capital cues are also searched unanchored
    dollar = re.compile(r"\$\s?\d")

    return (
        GateRule("time", "signal", lambda f: bool(f.time_cues), config.weight_time, "time cue"),
        GateRule(
            "capital",
            "signal",
            lambda f: bool(capital.search(f.text) or dollar.search(f.text)),
            config.weight_capital,
            "capital/operational cue",
        ),
        GateRule("exposure", "signal", lambda f: bool(exposure.search(f.text)), config.weight_exposure, "exposure cue"),
        GateRule(
            "dependency", "signal", lambda f: bool(dependency.search(f.text)), config.weight_dependency, "dependency cue"
        ),
        GateRule(
            "reversal_cost", "signal", lambda f: bool(reversal.search(f.text)), config.weight_reversal, "reversal-cost cue"
        ),
        GateRule(
            "digits_only", "noise", lambda f: f.has_digits and not f.has_letters, tag="numeric content without words"
        ),
        GateRule(
            "digit_ratio", "noise", lambda f: f.digit_ratio > config.noise_digit_ratio, tag="digit-heavy (table)"
        ),
        GateRule(
            "all_caps_header",
            "noise",
            lambda f: len(f.text.strip()) >= config.header_min_chars
            and f.has_letters
            and bool(all_caps.fullmatch(f.text.strip())),
            tag="all-caps header",
        ),
        GateRule(
            "comma_table_row",
            "noise",
            lambda f: f.comma_count >= config.table_min_commas and f.digit_ratio > config.table_digit_ratio,
            tag="comma-separated table row",
        ),
        GateRule(
            "separator_row",
            "noise",
            lambda f: f.separator_count >= config.table_min_separators,
            tag="separator table row",
        ),
        GateRule("boilerplate", "noise", lambda f: bool(boilerplate.search(f.text)), tag="boilerplate"),
        GateRule(
            "metric_recitation",
            "metric",
            lambda f: f.commitment is None and bool(metric.search(f.text)),
            tag="metric recitation without commitment",
        ),
    )


class Gate:
    """Pure classifier from unit text to :class:`GateResult`."""

    def __init__(
        self,
        config: ExtractionConfig | None = None,
        vocabulary: Vocabulary = DEFAULT_VOCABULARY,
    ) -> None:
        self.config = config or ExtractionConfig()
        self.matcher = CommitmentMatcher(self.config, vocabulary)
        self.rules = build_rules(self.config, vocabulary)

    def evaluate(self, text: str) -> GateResult:
        features = extract_features(text, self.matcher)
        fired = {rule.name: rule for rule in self.rules if rule.predicate(features)}

        commitment = features.commitment
        strength = commitment.strength if commitment else 0.0
        score = self.config.weight_commitment * strength + sum(
            rule.weight for rule in fired.values() if rule.kind == "signal"
        )
        score = round(min(1.0, max(0.0, score)), 4)

        signals = ConstraintSignals(
            time=int("time" in fired),
            capital=int("capital" in fired),
            exposure=int("exposure" in fired),
            dependency=int("dependency" in fired),
            reversal_cost=int("reversal_cost" in fired),
            optionality_score=score,
        )
        matched = tuple(rule.tag for rule in fired.values())
        noise = tuple(rule.tag for rule in fired.values() if rule.kind == "noise")
        included = tuple(rule.tag for rule in fired.values() if rule.kind == "signal")
        if commitment:
            included = (f"commitment: {commitment.phrase}",) + included

        common = dict(
            optionality_score=score,
            signals=signals,
            commitment_verb=commitment.phrase if commitment else None,
            commitment_strength=strength,
            matched_cues=matched,
        )

        if noise:
            return GateResult(
                bin="Rejected", is_table_noise=True, reasons_included=(), reasons_excluded=noise, **common
            )
        if "metric_recitation" in fired:
            return GateResult(
                bin="EvidenceOnly",
                is_table_noise=True,
                is_metric_recitation=True,
                reasons_included=included,
                reasons_excluded=(fired["metric_recitation"].tag,),
                **common,
            )

        committed = strength > 0 or (signals.reversal_cost and signals.time)
        if not committed:
            return GateResult(
                bin="Rejected", reasons_included=included, reasons_excluded=("no commitment verb",), **common
            )

        bin_: Bin
        if score >= self.config.decision_threshold:
            bin_ = "Decision"
        elif score >= self.config.maybe_threshold:
            bin_ = "MaybeDecision"
        else:
            return GateResult(
                bin="Rejected",
                reasons_included=included,
                reasons_excluded=(f"optionality {score:.2f} below {self.config.maybe_threshold:.2f}",),
                **common,
            )
        return GateResult(bin=bin_, reasons_included=included, reasons_excluded=(), **common)
