"""Tests for extraction presets."""
import dataclasses

import pytest

from dnav.extraction.config import CONFIG_PRESETS, ExtractionConfig, get_config


def test_default_thresholds():
    config = get_config("default")
    assert config.decision_threshold == 0.55
    assert config.maybe_threshold == 0.45
    assert config.cluster_similarity == 0.72
    assert config.suggest_similarity == 0.58
    assert config.local_merge_similarity == 0.65
    assert config.cross_model_merge_similarity == 0.55
    assert config.max_quote_chars == 280
    assert config.augment.timeout_s == 30.0


def test_presets_available():
    assert set(CONFIG_PRESETS) == {"default", "precise", "recall"}
    assert not get_config("precise").include_maybe


def test_unknown_preset():
    with pytest.raises(ValueError) as exc_info:
        get_config("aggressive")
    assert "Unknown preset" in str(exc_info.value)
    assert "default" in str(exc_info.value)


def test_config_is_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        ExtractionConfig().decision_threshold = 0.1


def test_with_overrides_returns_copy():
    base = ExtractionConfig()
    changed = base.with_overrides(max_candidates=5)
    assert changed.max_candidates == 5
    assert base.max_candidates == 25
