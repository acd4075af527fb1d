# src/processors/semantic_processor.py - v1
"""Morphological/semantic processor backed by NLTK WordNet.

Sections: morphology, inflections, semantic relations, word forms,
concepts, sentiment words and linguistic complexity metrics. When NLTK or
the WordNet corpus is missing, only the complexity estimates that need no
lexicon are filled in and the fragment is marked ``fallback``.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any

from blueprints_rag.cache.cache_manager import CacheManager
from blueprints_rag.core.models import AnalysisFragment, Concept
from blueprints_rag.processors.base_processor import BaseProcessor, alpha_words

logger = logging.getLogger(__name__)

MAX_CONCEPTS = 15
SYNSETS_PER_WORD = 3
HYPERNYM_CHAIN_DEPTH = 5

_POSITIVE = ("good", "great", "excellent", "positive", "beneficial", "pleasant")
_NEGATIVE = ("bad", "terrible", "negative", "harmful", "unpleasant", "difficult")

_SEMANTIC_FIELDS = (
    ("noun.person", "person"),
    ("noun.animal", "animal"),
    ("noun.plant", "plant"),
    ("noun.object", "object"),
    ("noun.artifact", "artifact"),
    ("noun.cognition", "cognition"),
    ("noun.act", "act"),
    ("verb.motion", "motion"),
    ("adj.all", "quality"),
)


def _load_wordnet() -> tuple[Any, Any] | None:
    """Return (wordnet, stemmer) or None when NLTK/WordNet is missing."""
    try:
        from nltk.corpus import wordnet
        from nltk.stem import PorterStemmer
    except ImportError:
        logger.warning(
            "nltk not installed, semantic processor runs in fallback mode. "
            "Install with: pip install blueprints-rag[nlp]"
        )
        return None
    try:
        wordnet.synsets("test")
    except LookupError:
        logger.warning(
            "WordNet corpus missing, semantic processor runs in fallback mode. "
            "Run: python -m nltk.downloader wordnet"
        )
        return None
    return wordnet, PorterStemmer()


class SemanticProcessor(BaseProcessor):
    """WordNet-based morphology, relations and concept extraction."""

    kind = "semantic"
    detail_keys = (
        "morphology",
        "inflections",
        "semantic_relations",
        "word_forms",
        "sentiment_words",
    )
    mapping_details = frozenset({"word_forms"})

    def __init__(
        self,
        cache_manager: CacheManager | None = None,
        prefix_chars: int = 1000,
        enable_cache: bool = True,
        wordnet: Any | None = None,
        stemmer: Any | None = None,
    ) -> None:
        super().__init__(cache_manager, prefix_chars, enable_cache)
        if wordnet is not None:
            self._wordnet, self._stemmer = wordnet, stemmer
        else:
            loaded = _load_wordnet()
            self._wordnet, self._stemmer = loaded if loaded else (None, None)

    @property
    def available(self) -> bool:
        return self._wordnet is not None

    def _analyze(self, text: str) -> AnalysisFragment:
        words = alpha_words(text)
        unique = list(dict.fromkeys(words))
        synsets = {w: self._wordnet.synsets(w) for w in unique}

        return AnalysisFragment(
            processor=self.kind,
            concepts=self._concepts(unique, synsets),
            complexity_metrics={
                **estimate_complexity(words),
                "morphological_complexity": self._morphological_complexity(words),
                "semantic_density": _semantic_density(words, synsets),
            },
            details={
                "morphology": [self._morphology(w) for w in unique if len(w) >= 2],
                "inflections": [_inflections(w) for w in unique],
                "semantic_relations": [
                    self._relations(w, synsets[w]) for w in unique if synsets[w]
                ],
                "word_forms": {w: _word_forms(w) for w in unique},
                "sentiment_words": sorted(
                    (s for s in (_sentiment(w, synsets[w]) for w in unique) if s),
                    key=lambda s: -s["intensity"],
                ),
            },
        )

    def _fallback(self, text: str) -> AnalysisFragment:
        return self.empty_fragment(complexity_metrics=estimate_complexity(alpha_words(text)))

    # --- Sections ---

    def _lemma(self, word: str) -> str:
        return self._wordnet.morphy(word, self._wordnet.NOUN) or word

    def _morphology(self, word: str) -> dict[str, Any]:
        singular = self._lemma(word)
        return {
            "word": word,
            "singular": singular,
            "plural": _pluralize(singular),
            "stem": self._stemmer.stem(word) if self._stemmer else _simple_stem(word),
            "is_plural": singular != word,
        }

    def _morphological_complexity(self, words: list[str]) -> float:
        if not words:
            return 0.0
        operations = sum(2 for w in words if self._lemma(w) != w)
        return operations / len(words)

    def _relations(self, word: str, synsets: list[Any]) -> dict[str, Any]:
        primary = synsets[0]
        return {
            "word": word,
            "definition": primary.definition(),
            "synonyms": sorted({lemma.name() for s in synsets for lemma in s.lemmas()}),
            "hypernyms": _lemma_names(primary.hypernyms()),
            "hyponyms": _lemma_names(primary.hyponyms()),
            "meronyms": _lemma_names(
                primary.part_meronyms()
                + primary.member_meronyms()
                + primary.substance_meronyms()
            ),
            "holonyms": _lemma_names(
                primary.part_holonyms()
                + primary.member_holonyms()
                + primary.substance_holonyms()
            ),
            "antonyms": sorted(
                {a.name() for s in synsets for lemma in s.lemmas() for a in lemma.antonyms()}
            ),
            "semantic_field": _semantic_field(primary.lexname()),
        }

    def _concepts(self, words: list[str], synsets: dict[str, list[Any]]) -> list[Concept]:
        concepts: list[Concept] = []
        for word in words:
            senses = synsets[word]
            for synset in senses[:SYNSETS_PER_WORD]:
                specificity = _specificity(synset)
                concepts.append(
                    Concept(
                        word=word,
                        concept=synset.definition(),
                        category=_semantic_field(synset.lexname()),
                        hypernym_chain=_hypernym_chain(synset),
                        specificity=specificity,
                        score=specificity / (len(senses) + 1),
                    )
                )
        concepts.sort(key=lambda c: -c.score)
        return concepts[:MAX_CONCEPTS]


# === HELPERS ===


def estimate_complexity(words: list[str]) -> dict[str, float]:
    """Complexity metrics computable without a lexicon."""
    if not words:
        return {"vocabulary_richness": 0.0, "avg_word_length": 0.0, "lexical_diversity": 0.0}
    max_freq = max(Counter(words).values())
    return {
        "vocabulary_richness": len(set(words)) / len(words),
        "avg_word_length": sum(len(w) for w in words) / len(words),
        "lexical_diversity": 1.0 - max_freq / len(words),
    }


def _semantic_density(words: list[str], synsets: dict[str, list[Any]]) -> float:
    if not words:
        return 0.0
    rich = sum(1 for w in words if synsets.get(w) and synsets[w][0].hypernyms())
    return rich / len(words)


def _lemma_names(synsets: list[Any]) -> list[str]:
    return [lemma.name() for s in synsets for lemma in s.lemmas()]


def _hypernym_chain(synset: Any) -> list[str]:
    chain: list[str] = []
    current = synset
    while len(chain) < HYPERNYM_CHAIN_DEPTH:
        parents = current.hypernyms()
        if not parents:
            break
        current = parents[0]
        chain.append(current.lemmas()[0].name())
    return chain


def _specificity(synset: Any) -> float:
    hyponyms = len(synset.hyponyms())
    hypernyms = len(synset.hypernyms())
    if hyponyms + hypernyms == 0:
        return 0.5
    return hyponyms / (hyponyms + hypernyms + 1)


def _semantic_field(lexname: str) -> str:
    for prefix, field in _SEMANTIC_FIELDS:
        if lexname.startswith(prefix):
            return field
    return "general"


def _sentiment(word: str, synsets: list[Any]) -> dict[str, Any] | None:
    if not synsets:
        return None
    definition = synsets[0].definition().lower()
    pos = sum(1 for ind in _POSITIVE if ind in definition)
    neg = sum(1 for ind in _NEGATIVE if ind in definition)
    if pos > neg:
        return {"word": word, "sentiment": "positive", "intensity": pos / 6.0}
    if neg > pos:
        return {"word": word, "sentiment": "negative", "intensity": neg / 6.0}
    return None


def _simple_stem(word: str) -> str:
    return re.sub(r"(ing|ed|s|ly)$", "", word)


def _pluralize(word: str) -> str:
    if re.search(r"[^aeiou]y$", word):
        return word[:-1] + "ies"
    if re.search(r"(s|x|z|ch|sh)$", word):
        return word + "es"
    return word + "s"


def _past_tense(word: str) -> str:
    if re.search(r"[^aeiou]y$", word):
        return word[:-1] + "ied"
    if word.endswith("e"):
        return word + "d"
    if re.search(r"[^aeiou][aeiou][^aeiouwxy]$", word):
        return word + word[-1] + "ed"
    return word + "ed"


def _present_participle(word: str) -> str:
    if word.endswith("e") and not word.endswith("ee"):
        return word[:-1] + "ing"
    if re.search(r"[^aeiou][aeiou][^aeiouwxy]$", word):
        return word + word[-1] + "ing"
    return word + "ing"


def _inflections(word: str) -> dict[str, str]:
    return {
        "word": word,
        "past_tense": _past_tense(word),
        "present_participle": _present_participle(word),
        "indefinite_article": "an" if word[:1] in "aeiou" else "a",
    }


def _word_forms(word: str) -> dict[str, Any]:
    return {
        "base": word,
        "variations": {
            "capitalized": word.capitalize(),
            "titlecase": word.title(),
            "underscore": word.replace(" ", "_").lower(),
            "hyphenated": word.replace(" ", "-").lower(),
        },
        "linguistic_forms": {
            "plural": _pluralize(word),
            "possessive": f"{word}'s",
            "gerund": _present_participle(word),
        },
    }
