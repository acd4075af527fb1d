# src/processors/entity_processor.py - v1
"""Lexical/entity processor backed by spaCy.

Produces tokens, POS tags, dependencies, sentences, noun phrases, named
entities and scored keywords. Without spaCy or the configured model it
falls back to regex tokenization and frequency-estimated keywords.
"""

from __future__ import annotations

import logging
from typing import Any

from blueprints_rag.cache.cache_manager import CacheManager
from blueprints_rag.core.models import AnalysisFragment, Entity, Keyword
from blueprints_rag.processors.base_processor import (
    BaseProcessor,
    ProcessingError,
    alpha_words,
    frequency_keywords,
    split_sentences,
    tokenize,
)

logger = logging.getLogger(__name__)

KEYWORD_THRESHOLD = 0.3
MAX_KEYWORDS = 20
DEFAULT_ENTITY_CONFIDENCE = 0.8


def _load_spacy_model(model_name: str) -> Any | None:
    try:
        import spacy
    except ImportError:
        logger.warning(
            "spaCy not installed, entity processor runs in fallback mode. "
            "Install with: pip install blueprints-rag[nlp]"
        )
        return None
    try:
        return spacy.load(model_name)
    except OSError as e:
        logger.warning("spaCy model %s unavailable (%s), using fallback", model_name, e)
        return None


class EntityProcessor(BaseProcessor):
    """spaCy pipeline: tokens, POS, dependencies, NER, noun phrases, keywords."""

    kind = "entity"
    detail_keys = ("tokens", "pos_tags", "dependencies", "sentences", "noun_phrases")

    def __init__(
        self,
        model_name: str = "en_core_web_sm",
        cache_manager: CacheManager | None = None,
        prefix_chars: int = 1000,
        enable_cache: bool = True,
        nlp: Any | None = None,
    ) -> None:
        super().__init__(cache_manager, prefix_chars, enable_cache)
        self.model_name = model_name
        self._nlp = nlp if nlp is not None else _load_spacy_model(model_name)

    @property
    def available(self) -> bool:
        return self._nlp is not None

    @property
    def cache_scope(self) -> str:
        return f"{self.kind}:{self.model_name}"

    def _analyze(self, text: str) -> AnalysisFragment:
        max_length = self._nlp.max_length
        if len(text) > max_length:
            raise ProcessingError(
                f"text of {len(text)} chars exceeds spaCy max_length {max_length}"
            )
        doc = self._nlp(text)
        sentences = [s.text for s in doc.sents]
        token_count = len(doc)
        child_counts = [sum(1 for _ in t.children) for t in doc]
        alpha_lengths = [len(t.text) for t in doc if t.is_alpha]
        avg_word_length = (
            sum(alpha_lengths) / len(alpha_lengths) if alpha_lengths else 0.0
        )

        return AnalysisFragment(
            processor=self.kind,
            keywords=self._keywords(doc),
            entities=self._entities(doc),
            complexity_metrics={
                "sentence_count": float(len(sentences)),
                "token_count": float(token_count),
                "avg_sentence_length": token_count / len(sentences) if sentences else 0.0,
                "complexity_score": (
                    sum(child_counts) / token_count / 3.0 if token_count else 0.0
                ),
                "avg_word_length": avg_word_length,
            },
            details={
                "tokens": [
                    {
                        "text": t.text,
                        "lemma": t.lemma_,
                        "pos": t.pos_,
                        "is_alpha": t.is_alpha,
                        "is_stop": t.is_stop,
                    }
                    for t in doc
                    if not t.is_space
                ],
                "pos_tags": [
                    {
                        "text": t.text,
                        "lemma": t.lemma_,
                        "pos": t.pos_,
                        "tag": t.tag_,
                        "shape": t.shape_,
                        "dependency": t.dep_,
                    }
                    for t in doc
                    if not (t.is_space or t.is_punct)
                ],
                "dependencies": [
                    {
                        "token": t.text,
                        "head": t.head.text,
                        "relation": t.dep_,
                        "children": [c.text for c in t.children],
                    }
                    for t in doc
                    if t.head.i != t.i
                ],
                "sentences": sentences,
                "noun_phrases": self._noun_phrases(doc),
                "readability": _readability(avg_word_length),
            },
        )

    def _entities(self, doc: Any) -> list[Entity]:
        entities = [
            Entity(
                text=ent.text,
                label=ent.label_,
                start=ent.start_char,
                end=ent.end_char,
                confidence=DEFAULT_ENTITY_CONFIDENCE,
            )
            for ent in doc.ents
        ]
        return sorted(entities, key=lambda e: -e.confidence)

    def _noun_phrases(self, doc: Any) -> list[dict[str, Any]]:
        # noun_chunks needs a dependency parser; blank pipelines raise
        try:
            chunks = list(doc.noun_chunks)
        except ValueError:
            return []
        return [
            {
                "text": chunk.text,
                "root": chunk.root.text,
                "root_pos": chunk.root.pos_,
                "start": chunk.start,
                "end": chunk.end,
            }
            for chunk in chunks
        ]

    def _keywords(self, doc: Any) -> list[Keyword]:
        keywords = []
        for token in doc:
            if token.is_stop or token.is_punct or token.is_space or len(token.text) < 3:
                continue
            score = token_score(
                is_alpha=token.is_alpha,
                pos=token.pos_,
                in_entity=bool(token.ent_type_),
                is_stop=token.is_stop,
                length=len(token.text),
            )
            if score > KEYWORD_THRESHOLD:
                keywords.append(
                    Keyword(text=token.text, lemma=token.lemma_, pos=token.pos_, score=score)
                )
        keywords.sort(key=lambda k: -k.score)
        return keywords[:MAX_KEYWORDS]

    def _fallback(self, text: str) -> AnalysisFragment:
        tokens = tokenize(text)
        sentences = split_sentences(text) or ([text] if text.strip() else [])
        words = alpha_words(text)
        fragment = self.empty_fragment(
            keywords=frequency_keywords(text, limit=MAX_KEYWORDS, threshold=KEYWORD_THRESHOLD),
            complexity_metrics={
                "sentence_count": float(len(sentences)),
                "token_count": float(len(tokens)),
                "avg_sentence_length": len(tokens) / len(sentences) if sentences else 0.0,
                "complexity_score": 0.0,
                "avg_word_length": (
                    sum(len(w) for w in words) / len(words) if words else 0.0
                ),
            },
        )
        fragment.details["tokens"] = [
            {"text": t, "lemma": t, "pos": None, "is_alpha": t.isalpha(), "is_stop": False}
            for t in tokens
        ]
        fragment.details["sentences"] = sentences
        fragment.details["readability"] = _readability(
            fragment.complexity_metrics["avg_word_length"]
        )
        return fragment


def token_score(
    *, is_alpha: bool, pos: str, in_entity: bool, is_stop: bool, length: int
) -> float:
    """Keyword score from token features, clamped to [0, 1]."""
    score = 0.0
    if is_alpha:
        score += 0.3
    score += {"NOUN": 0.2, "PROPN": 0.2, "VERB": 0.15, "ADJ": 0.1}.get(pos, 0.0)
    if in_entity:
        score += 0.4
    if is_stop:
        score -= 0.2
    score += min(length / 10.0, 0.3)
    return max(0.0, min(1.0, score))


def _readability(avg_word_length: float) -> str:
    if avg_word_length <= 4:
        return "easy"
    if avg_word_length <= 6:
        return "medium"
    return "hard"
