"""Tests for the extraction vocabulary."""
import dataclasses
from types import MappingProxyType

from dnav.extraction.vocabulary import (
    CATEGORY_ALIASES,
    IRREGULAR_FORMS,
    VERB_SYNONYMS,
    Vocabulary,
)


class TestVocabulary:
    def test_mapping_tables_use_factories(self):
        # mappingproxy defaults are rejected at class definition before 3.12
        for field in dataclasses.fields(Vocabulary):
            if field.name in ("irregular_forms", "verb_synonyms", "category_aliases"):
                assert field.default is dataclasses.MISSING
                assert field.default_factory is not dataclasses.MISSING

    def test_defaults_share_module_tables(self):
        vocabulary = Vocabulary()
        assert vocabulary.irregular_forms is IRREGULAR_FORMS
        assert vocabulary.verb_synonyms is VERB_SYNONYMS
        assert vocabulary.category_aliases is CATEGORY_ALIASES

    def test_override_mapping(self):
        vocabulary = dataclasses.replace(Vocabulary(), verb_synonyms=MappingProxyType({"spin up": "launch"}))
        assert vocabulary.verb_index()["spinning up"] == "launch"

    def test_verb_forms(self):
        assert Vocabulary().verb_forms("ship") >= {"ship", "ships", "shipped", "shipping"}
