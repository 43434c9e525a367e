"""Tests for extraction strategies."""
import asyncio
import json

import pytest

from dnav.extraction.augment import ExternalAugmentor
from dnav.extraction.config import AugmentConfig, ExtractionConfig
from dnav.extraction.errors import InsufficientOutputError, ModelTimeoutError
from dnav.extraction.local import Components, analyze
from dnav.extraction.strategies import (
    NO_CREDENTIALS_WARNING,
    STRATEGIES,
    ExtractionStrategy,
    LocalHeuristic,
    ModelExtraction,
    ModelRefinement,
    get_strategy,
)
from dnav.extraction.types import PageText

TESLA_TITLE = "Begin volume production of the new platform (Q2 2026)"


@pytest.fixture
def components():
    return Components.build()


@pytest.fixture
def analysis(tesla_pages, components):
    return analyze("tsla-q4.pdf", tesla_pages, components)


def run(strategy, analysis, components):
    return asyncio.run(strategy.run(analysis, components))


class TestRegistry:
    def test_all_modes_registered(self):
        assert set(STRATEGIES) == {"local", "extract", "refine"}

    def test_get_strategy_returns_instance(self):
        strategy = get_strategy("refine")
        assert isinstance(strategy, ExtractionStrategy)
        assert strategy.name == "refine"

    def test_unknown_strategy(self):
        with pytest.raises(ValueError) as exc_info:
            get_strategy("magic")
        assert "Unknown strategy" in str(exc_info.value)


class TestLocal:
    def test_local_candidates(self, analysis, components):
        result = run(LocalHeuristic(), analysis, components)
        titles = [c.title for c in result.candidates]
        assert TESLA_TITLE in titles
        assert "Expand Megafactory capacity (2026)" in titles
        assert not any("Revenue" in c.evidence.quote for c in result.candidates)
        assert result.warnings == []

    def test_secondary_pages_used_when_primary_empty(self, components):
        pages = [
            PageText(page=1, text="Revenue grew 12% year-over-year to $25.2B.\n"),
            PageText(
                page=2,
                text="RISK FACTORS\nWe will build a second cathode plant in Texas during 2026.\n",
            ),
        ]
        analysis = analyze("deck.pdf", pages, components)
        assert analysis.page_selection() == ([1], [2])
        result = run(LocalHeuristic(), analysis, components)
        assert [c.evidence.page for c in result.candidates] == [2]


class TestModelExtraction:
    def test_without_credentials_returns_local(self, analysis, components):
        result = run(ModelExtraction(), analysis, components)
        assert TESLA_TITLE in [c.title for c in result.candidates]
        assert result.warnings == [NO_CREDENTIALS_WARNING]

    def test_model_duplicates_fold_into_local(self, analysis, components, fake_provider, make_candidate, reply_with):
        quote = "Tesla will begin volume production of the new platform in Q2 2026."
        provider = fake_provider({
            "hard": reply_with(make_candidate(1, quote, TESLA_TITLE)),
            "soft": reply_with(),
        })
        result = run(ModelExtraction(ExternalAugmentor(provider, components.config)), analysis, components)
        titles = [c.title for c in result.candidates]
        assert titles.count(TESLA_TITLE) == 1
        assert "Expand Megafactory capacity (2026)" in titles
        assert result.warnings == []

    def test_timeout_falls_back_to_local(self, analysis, fake_provider):
        config = ExtractionConfig(augment=AugmentConfig(timeout_s=0.05))
        components = Components.build(config)
        provider = fake_provider({"hard": "{}", "soft": "{}"}, delay=1.0)
        result = run(ModelExtraction(ExternalAugmentor(provider, config)), analysis, components)
        assert TESLA_TITLE in [c.title for c in result.candidates]
        assert result.warnings == [ModelTimeoutError.warning]

    def test_broader_pass_when_model_finds_nothing(self, components, fake_provider, reply_with):
        pages = [
            PageText(page=1, text="We will open a new factory in Texas during 2026.\n"),
            PageText(page=2, text="We might consider a second office someday, pending review.\n"),
        ]
        analysis = analyze("deck.pdf", pages, components)
        provider = fake_provider({"hard": reply_with(), "soft": reply_with()})
        run(ModelExtraction(ExternalAugmentor(provider, components.config)), analysis, components)
        assert len(provider.calls) == 4
        assert '"page": 2' in provider.calls[-1][1]

    def test_snippets_skip_table_noise(self, analysis, components):
        snippets = ModelExtraction.snippets(analysis, analysis.page_numbers, components)
        text = " ".join(s for page in snippets for s in page.snippets)
        assert "Tesla will begin" in text
        assert "Revenue grew" not in text


class TestModelRefinement:
    def test_without_credentials_returns_local(self, analysis, components):
        result = run(ModelRefinement(), analysis, components)
        assert result.warnings == [NO_CREDENTIALS_WARNING]
        assert result.candidates

    def test_refined_candidates(self, analysis, components, fake_provider):
        local = LocalHeuristic.local_result(analysis, components).candidates
        reply = {"kept_candidates": [{"id": c.id, "rewrittenDecision": f"Rewritten {c.id}"} for c in local]}
        provider = fake_provider({"refine": json.dumps(reply)})
        result = run(ModelRefinement(ExternalAugmentor(provider, components.config)), analysis, components)
        assert [c.id for c in result.candidates] == [c.id for c in local]
        assert all(c.decision.startswith("Rewritten") for c in result.candidates)
        assert [c.evidence for c in result.candidates] == [c.evidence for c in local]

    def test_insufficient_output_falls_back(self, analysis, components, fake_provider):
        provider = fake_provider({"refine": json.dumps({"kept_candidates": []})})
        result = run(ModelRefinement(ExternalAugmentor(provider, components.config)), analysis, components)
        assert result.warnings == [InsufficientOutputError.warning]
        assert TESLA_TITLE in [c.title for c in result.candidates]
