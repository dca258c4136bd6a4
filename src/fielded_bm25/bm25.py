"""
Field-weighted BM25 ranker.

Per field f of document d, for query terms q_1..q_n (repeats included):

    bm25_f(d) = sum_i idf(q_i) * tf * (k1 + 1) / (tf + k1 * (1 - b + b * len_f(d) / avglen_f))

    score(d) = sum_f weight(f) * bm25_f(d)

- avglen_f is taken over documents that carry f; an average of 0 becomes 1
- documents scoring exactly 0 are left out of the results
- ties keep batch order (stable sort), so output is deterministic

Usage:
    from fielded_bm25 import BM25

    bm25 = BM25(field_weights={"title": 3.0, "description": 1.5})
    bm25.index_documents([
        {"id": "1", "fields": {"title": "iOS Push Notification Setup"}},
        {"id": "2", "fields": {"title": "Android Setup Guide"}},
    ])
    bm25.search("push notification", max_results=5)

An instance owns its index. Build one per logical search when serving
concurrent requests; nothing is shared between instances.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from fielded_bm25.config import DEFAULT_MAX_RESULTS, BM25Config
from fielded_bm25.corpus import Document, FieldedCorpus
from fielded_bm25.tokenizer import Tokenizer

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    """A ranked hit: document id, relevance score and the indexed document."""

    id: str
    score: float
    document: Document


def score_kernel(
    tf: NDArray[np.float64],
    idf: NDArray[np.float64],
    norm: NDArray[np.float64],
    k1: float,
) -> NDArray[np.float64]:
    """
    BM25 for one field over all documents.

    Args:
        tf: Term frequencies, shape (num_query_terms, N)
        idf: IDF per query term, shape (num_query_terms,)
        norm: Length normalization 1 - b + b * len / avglen, shape (N,)
        k1: Saturation parameter

    Returns:
        Raw (unweighted) field score per document, shape (N,)
    """
    numerator = tf * (k1 + 1)
    denominator = tf + k1 * norm
    # tf == 0 contributes nothing, and must not divide by a zero denominator
    saturated = np.divide(
        numerator, denominator, out=np.zeros_like(tf, dtype=np.float64), where=tf > 0
    )
    return np.sum(idf[:, np.newaxis] * saturated, axis=0)


class BM25:
    """
    Field-weighted BM25 index and search over one document batch.

    Args:
        config: A ``BM25Config`` or a partial mapping
            (``{"k1": ..., "b": ..., "field_weights": ...}``).
        tokenizer: Callable used for both fields and queries. Defaults to
            ``Tokenizer()`` (ICU segmentation when available).
        **overrides: Keyword shortcuts for config keys
            (``BM25(k1=1.2, field_weights={...})``).
    """

    def __init__(
        self,
        config: BM25Config | Mapping[str, Any] | None = None,
        tokenizer: Callable[[str], list[str]] | None = None,
        **overrides: Any,
    ):
        if isinstance(config, BM25Config):
            if overrides:
                options = {"k1": config.k1, "b": config.b, "field_weights": config.field_weights}
                options.update(overrides)
                config = BM25Config.from_mapping(options)
        else:
            options = dict(config or {})
            options.update(overrides)
            config = BM25Config.from_mapping(options)

        self.config = config
        self.tokenizer = tokenizer if tokenizer is not None else Tokenizer()
        self.corpus = FieldedCorpus([], [])
        self._norms: dict[str, NDArray[np.float64]] = {}

    @property
    def k1(self) -> float:
        return self.config.k1

    @property
    def b(self) -> float:
        return self.config.b

    def index_documents(self, documents: Iterable[Document | Mapping[str, Any]]) -> None:
        """Replace the current index with one built from ``documents``."""
        corpus = FieldedCorpus.from_documents(documents, self.tokenizer)

        norms = {}
        for name in corpus.field_names:
            avg_length = corpus.average_length(name) or 1.0
            norms[name] = 1.0 - self.b + self.b * (corpus.field_lengths(name) / avg_length)

        self.corpus = corpus
        self._norms = norms

    def _query_term_ids(self, query_terms: list[str]) -> list[int]:
        # Repeats are kept: a term given twice is scored twice
        term_ids = []
        for term in query_terms:
            term_id = self.corpus.get_term_id(term)
            if term_id is not None:
                term_ids.append(term_id)
        return term_ids

    def _field_scores(self, term_ids: list[int]) -> dict[str, NDArray[np.float64]]:
        """Weighted score per field, each of shape (N,)."""
        idf = self.corpus.idf_array[term_ids]
        field_scores = {}
        for name in self.corpus.field_names:
            tf = self.corpus.tf_matrix(name)[term_ids, :].toarray()
            raw = score_kernel(tf, idf, self._norms[name], self.k1)
            field_scores[name] = raw * self.config.weight_for(name)
        return field_scores

    def _total_scores(self, query_terms: list[str]) -> NDArray[np.float64]:
        scores = np.zeros(len(self.corpus), dtype=np.float64)
        term_ids = self._query_term_ids(query_terms)
        if not term_ids:
            return scores
        for field_score in self._field_scores(term_ids).values():
            scores += field_score
        return scores

    def score_all(self, query: str) -> NDArray[np.float64]:
        """Total score of every indexed document, in batch order."""
        return self._total_scores(self.tokenizer(query))

    def score(self, query: str, doc_id: str) -> float:
        """Total score of one document (0.0 when nothing matches)."""
        idx = self.corpus.index_of(doc_id)
        return float(self.score_all(query)[idx])

    def explain(self, query: str, doc_id: str) -> dict[str, float]:
        """Weighted contribution of each field the document carries."""
        idx = self.corpus.index_of(doc_id)
        term_ids = self._query_term_ids(self.tokenizer(query))
        fields = [
            name for name in self.corpus.field_names if self.corpus.field_present(name)[idx]
        ]
        if not term_ids:
            return {name: 0.0 for name in fields}
        field_scores = self._field_scores(term_ids)
        return {name: float(field_scores[name][idx]) for name in fields}

    def search(self, query: str, max_results: int = DEFAULT_MAX_RESULTS) -> list[SearchResult]:
        """
        Rank indexed documents against ``query``.

        Args:
            query: Free text, tokenized like the documents.
            max_results: Result cap, truncated to an integer. Zero or negative
                returns no results.

        Returns:
            Matching documents, highest score first. Documents without any
            matching term are omitted; ties keep batch order.
        """
        max_results = int(max_results)
        if max_results <= 0 or len(self.corpus) == 0:
            return []

        query_terms = self.tokenizer(query)
        if not query_terms:
            logger.debug("Query %r has no usable terms", query)
            return []

        scores = self._total_scores(query_terms)
        matched = np.flatnonzero(scores > 0)
        order = matched[np.argsort(-scores[matched], kind="stable")][:max_results]

        logger.debug(
            "Query %r: %d terms, %d of %d documents matched",
            query,
            len(query_terms),
            len(matched),
            len(self.corpus),
        )
        return [
            SearchResult(
                id=self.corpus.ids[idx],
                score=float(scores[idx]),
                document=self.corpus.documents[idx],
            )
            for idx in order
        ]
