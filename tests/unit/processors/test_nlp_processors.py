# tests/unit/processors/test_nlp_processors.py - v1
"""Tests for the spaCy entity and WordNet semantic processors.

Backends are never loaded: fallback mode is forced by patching the loaders,
and full semantic mode runs against a small in-test lexicon.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from blueprints_rag.config.settings import ConfigurationError
from blueprints_rag.processors.entity_processor import EntityProcessor, token_score
from blueprints_rag.processors.registry import (
    ProcessorKind,
    ProcessorRegistry,
    default_processor_registry,
)
from blueprints_rag.processors.semantic_processor import (
    SemanticProcessor,
    estimate_complexity,
)

TEXT = "The Configuration singleton keeps one shared instance. It is created lazily!"


class _Lemma:
    def __init__(self, name: str) -> None:
        self._name = name

    def name(self) -> str:
        return self._name

    def antonyms(self) -> list[_Lemma]:
        return []


class _Synset:
    def __init__(self, name: str, definition: str, lexname: str, parent: _Synset | None = None):
        self._name = name
        self._definition = definition
        self._lexname = lexname
        self._parent = parent

    def definition(self) -> str:
        return self._definition

    def lexname(self) -> str:
        return self._lexname

    def lemmas(self) -> list[_Lemma]:
        return [_Lemma(self._name)]

    def hypernyms(self) -> list[_Synset]:
        return [self._parent] if self._parent else []

    def hyponyms(self) -> list[_Synset]:
        return []

    def part_meronyms(self):
        return []

    member_meronyms = substance_meronyms = part_meronyms
    part_holonyms = member_holonyms = substance_holonyms = part_meronyms


class _FakeWordNet:
    NOUN = "n"

    def __init__(self) -> None:
        artifact = _Synset("artifact", "a man-made object", "noun.artifact")
        self._synsets = {
            "instance": [_Synset("instance", "an occurrence of something", "noun.cognition")],
            "singleton": [_Synset("singleton", "a single object", "noun.artifact", artifact)],
            "shared": [_Synset("shared", "a good thing held in common", "adj.all")],
        }

    def synsets(self, word: str) -> list[_Synset]:
        return self._synsets.get(word, [])

    def morphy(self, word: str, pos: str) -> str | None:
        return word[:-1] if word.endswith("s") else None


class TestEntityFallback:
    def test_missing_model_keeps_every_section(self):
        with patch(
            "blueprints_rag.processors.entity_processor._load_spacy_model", return_value=None
        ):
            processor = EntityProcessor(enable_cache=False)
        assert processor.available is False

        fragment = processor.process(TEXT)

        assert fragment.fallback is True
        assert fragment.error is None
        assert set(EntityProcessor.detail_keys) <= set(fragment.details)
        assert fragment.details["pos_tags"] == []
        assert fragment.details["sentences"] == [
            "The Configuration singleton keeps one shared instance.",
            "It is created lazily!",
        ]
        assert fragment.entities == []
        assert fragment.keywords
        assert set(fragment.complexity_metrics) == {
            "sentence_count",
            "token_count",
            "avg_sentence_length",
            "complexity_score",
            "avg_word_length",
        }
        assert fragment.complexity_metrics["sentence_count"] == 2.0

    def test_empty_text(self):
        with patch(
            "blueprints_rag.processors.entity_processor._load_spacy_model", return_value=None
        ):
            fragment = EntityProcessor(enable_cache=False).process("")
        assert fragment.fallback is True
        assert fragment.complexity_metrics["avg_sentence_length"] == 0.0

    def test_cache_scope_includes_model(self):
        processor = EntityProcessor(model_name="en_core_web_lg", nlp=MagicMock())
        assert processor.cache_scope == "entity:en_core_web_lg"
        assert processor.available is True

    def test_text_over_model_limit_is_an_error_fragment(self):
        nlp = MagicMock(max_length=10)
        processor = EntityProcessor(nlp=nlp, enable_cache=False)
        fragment = processor.process("x" * 11)
        assert fragment.error is not None
        assert fragment.error.startswith("ProcessingError")
        assert "max_length 10" in fragment.error
        assert set(EntityProcessor.detail_keys) <= set(fragment.details)
        nlp.assert_not_called()

    def test_token_score_clamped(self):
        assert token_score(is_alpha=True, pos="PROPN", in_entity=True, is_stop=False, length=12) == 1.0
        assert token_score(is_alpha=False, pos="X", in_entity=False, is_stop=True, length=0) == 0.0


class TestSemanticFallback:
    def test_missing_wordnet_keeps_every_section(self):
        with patch(
            "blueprints_rag.processors.semantic_processor._load_wordnet", return_value=None
        ):
            processor = SemanticProcessor(enable_cache=False)
        assert processor.available is False

        fragment = processor.process(TEXT)

        assert fragment.fallback is True
        assert set(fragment.details) == set(SemanticProcessor.detail_keys)
        assert fragment.details["word_forms"] == {}
        assert fragment.details["morphology"] == []
        assert fragment.concepts == []
        assert 0.0 < fragment.complexity_metrics["lexical_diversity"] < 1.0

    def test_estimate_complexity(self):
        assert estimate_complexity([]) == {
            "vocabulary_richness": 0.0,
            "avg_word_length": 0.0,
            "lexical_diversity": 0.0,
        }
        metrics = estimate_complexity(["ruby", "ruby", "gem", "rake"])
        assert metrics["vocabulary_richness"] == pytest.approx(0.75)
        assert metrics["lexical_diversity"] == pytest.approx(0.5)


class TestSemanticWithLexicon:
    @pytest.fixture
    def processor(self) -> SemanticProcessor:
        return SemanticProcessor(enable_cache=False, wordnet=_FakeWordNet(), stemmer=None)

    def test_concepts_and_fields(self, processor: SemanticProcessor):
        fragment = processor.process(TEXT)
        assert fragment.fallback is False
        words = {c.word for c in fragment.concepts}
        assert words == {"instance", "singleton", "shared"}
        singleton = next(c for c in fragment.concepts if c.word == "singleton")
        assert singleton.category == "artifact"
        assert singleton.hypernym_chain == ["artifact"]

    def test_relations_and_sentiment(self, processor: SemanticProcessor):
        fragment = processor.process(TEXT)
        relations = {r["word"]: r for r in fragment.details["semantic_relations"]}
        assert relations["singleton"]["hypernyms"] == ["artifact"]
        assert relations["shared"]["semantic_field"] == "quality"
        assert fragment.details["sentiment_words"][0]["word"] == "shared"
        assert fragment.details["sentiment_words"][0]["sentiment"] == "positive"

    def test_morphology_and_metrics(self, processor: SemanticProcessor):
        fragment = processor.process(TEXT)
        keeps = next(m for m in fragment.details["morphology"] if m["word"] == "keeps")
        assert keeps["singular"] == "keep"
        assert keeps["is_plural"] is True
        assert fragment.details["word_forms"]["singleton"]["linguistic_forms"]["plural"] == "singletons"
        assert fragment.complexity_metrics["semantic_density"] > 0.0
        assert fragment.complexity_metrics["morphological_complexity"] > 0.0


class TestRegistry:
    def test_default_registry(self):
        registry = default_processor_registry()
        assert set(registry.kinds) == {ProcessorKind.ENTITY, ProcessorKind.SEMANTIC}
        assert registry.get("semantic") is SemanticProcessor

    def test_unknown_kind(self):
        with pytest.raises(ConfigurationError):
            ProcessorRegistry.resolve_kind("sentiment")

    def test_create_passes_config(self):
        registry = ProcessorRegistry()
        registry.register("entity", EntityProcessor)
        processor = registry.create("entity", model_name="custom", nlp=MagicMock())
        assert isinstance(processor, EntityProcessor)
        assert processor.model_name == "custom"
