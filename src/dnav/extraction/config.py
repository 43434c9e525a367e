"""Extraction thresholds and presets."""

from __future__ import annotations

from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class AugmentConfig:
    model: str = "claude-haiku-4-5"
    timeout_s: float = 30.0
    max_tokens: int = 4000

    # extraction mode input budget
    max_pages: int = 12
    max_snippets_per_page: int = 8
    max_snippet_chars: int = 400
    max_prompt_chars: int = 24_000
    max_candidates_per_page: int = 10

    # refinement mode
    min_keep_ratio: float = 0.4
    min_keep_floor: int = 3


@dataclass(frozen=True)
class ExtractionConfig:
    name: str = "default"

    # segmenter
    min_unit_chars: int = 30
    max_unit_chars: int = 280
    max_context_chars: int = 500

    # gate
    decision_threshold: float = 0.55
    maybe_threshold: float = 0.45
    strong_strength: float = 1.0
    weak_strength: float = 0.8
    hedge_strength: float = 0.45
    weight_commitment: float = 0.35
    weight_time: float = 0.2
    weight_capital: float = 0.2
    weight_exposure: float = 0.1
    weight_dependency: float = 0.1
    weight_reversal: float = 0.1
    noise_digit_ratio: float = 0.28
    table_digit_ratio: float = 0.18
    table_min_commas: int = 4
    table_min_separators: int = 4
    header_min_chars: int = 8

    # canonicalizer
    max_title_chars: int = 90

    # clusterer / merge resolver
    cluster_similarity: float = 0.72
    suggest_similarity: float = 0.58
    local_merge_similarity: float = 0.65
    cross_model_merge_similarity: float = 0.55
    time_confidence_bonus: float = 0.1

    # candidates
    max_quote_chars: int = 280
    max_decision_chars: int = 160
    max_candidates: int = 25
    max_candidates_per_page: int = 10
    include_maybe: bool = True

    # page selection
    table_page_line_ratio: float = 0.5

    augment: AugmentConfig = field(default_factory=AugmentConfig)

    def with_overrides(self, **kwargs) -> "ExtractionConfig":
        return replace(self, **kwargs)


CONFIG_PRESETS: dict[str, ExtractionConfig] = {
    "default": ExtractionConfig(),

    # fewer, higher-commitment candidates
    "precise": ExtractionConfig(
        name="precise",
        decision_threshold=0.6,
        maybe_threshold=0.55,
        include_maybe=False,
        max_candidates=15,
    ),

    # long documents where recall matters more than review effort
    "recall": ExtractionConfig(
        name="recall",
        decision_threshold=0.5,
        maybe_threshold=0.4,
        cluster_similarity=0.66,
        suggest_similarity=0.5,
        max_candidates=40,
        max_candidates_per_page=15,
        augment=AugmentConfig(max_pages=20, max_snippets_per_page=12),
    ),
}


def get_config(name: str) -> ExtractionConfig:
    if name not in CONFIG_PRESETS:
        raise ValueError(f"Unknown preset: {name}. Available: {list(CONFIG_PRESETS.keys())}")
    return CONFIG_PRESETS[name]
