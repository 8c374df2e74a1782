"""Semantic embedding module using sentence-transformers.

Used as the fallback when lexical vocabulary matching finds nothing: the
vocabulary entries are pre-encoded via fit() and compared against the
startup's text with cosine similarity.
"""

from __future__ import annotations

import logging

import numpy as np

from src.investor_match.config import settings

logger = logging.getLogger(__name__)

_model = None
_cache: dict[str, np.ndarray] = {}


def _load_model():
    global _model
    if _model is None:
        from sentence_transformers import SentenceTransformer
        _model = SentenceTransformer(settings.embedding_model)
        logger.info("Loaded sentence-transformer model: %s", settings.embedding_model)
    return _model


def fit(texts: list[str]) -> None:
    """Pre-encode vocabulary entries for fast cached retrieval."""
    missing = [t for t in dict.fromkeys(texts) if t not in _cache]
    if not missing:
        return
    model = _load_model()
    vectors = model.encode(missing, show_progress_bar=False, normalize_embeddings=True)
    for text, vec in zip(missing, vectors):
        _cache[text] = vec
    logger.info("Pre-encoded %d texts (%d-dim embeddings)", len(missing), vectors.shape[1])


def get_embedding(text: str) -> np.ndarray:
    if text in _cache:
        return _cache[text]
    model = _load_model()
    vec = model.encode(text, show_progress_bar=False, normalize_embeddings=True)
    _cache[text] = vec
    return vec


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    dot = np.dot(a, b)
    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0:
        return 0.0
    return float(dot / norm)


def rank_by_similarity(query: str, candidates: list[str]) -> list[tuple[str, float]]:
    """Candidates sorted by similarity to ``query``, best first (stable)."""
    q = get_embedding(query)
    scored = [(c, cosine_similarity(q, get_embedding(c))) for c in candidates]
    return sorted(scored, key=lambda item: item[1], reverse=True)


def reset() -> None:
    _cache.clear()
