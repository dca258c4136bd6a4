"""
Fielded corpus: tokenized multi-field documents and the statistics BM25 needs.

A corpus is built once per document batch and never mutated afterwards.

Statistics:
    - per field: sparse term-document matrix (vocab_size, N), token counts,
      presence mask and average length over the documents carrying the field
    - global: document frequency per term (a document counts once even when
      the term shows up in several of its fields) and IDF

IDF:
    idf(t) = log((N - df(t) + 0.5) / (df(t) + 0.5) + 1)

The "+1" keeps every IDF non-negative, so terms present in most documents
still add a small positive amount instead of a penalty.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np
from scipy.sparse import csr_matrix

from fielded_bm25.errors import ValidationError

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Document:
    """
    A document to rank: an opaque id plus named text fields.

    Fields are caller-defined ("title", "description", "url", ...) and need
    not be the same across a batch. A ``None`` value counts as empty text.
    """

    id: str
    fields: Mapping[str, str | None] = field(default_factory=dict)

    @classmethod
    def coerce(cls, obj: Document | Mapping[str, Any]) -> Document:
        """Accept a ``Document`` or a ``{"id": ..., "fields": {...}}`` mapping."""
        if isinstance(obj, Document):
            doc = obj
        elif isinstance(obj, Mapping):
            if "id" not in obj:
                raise ValidationError(f"document mapping is missing 'id': {obj!r}")
            doc = cls(id=obj["id"], fields=obj.get("fields") or {})
        else:
            raise ValidationError(
                f"expected a Document or mapping, got {type(obj).__name__}"
            )

        if not isinstance(doc.id, str):
            raise ValidationError(f"document id must be a string, got {doc.id!r}")
        if not isinstance(doc.fields, Mapping):
            raise ValidationError(
                f"fields of document {doc.id!r} must be a mapping, "
                f"got {type(doc.fields).__name__}"
            )
        return doc


def inverse_document_frequency(df: NDArray[np.float64], N: int) -> NDArray[np.float64]:
    """BM25 IDF with the +1 inside the log (never negative)."""
    return np.log((N - df + 0.5) / (df + 0.5) + 1.0)


class FieldedCorpus:
    """
    Tokenized document batch with per-field and global statistics.

    Args:
        documents: The batch, in the order results tie-break on.
        tokenized: One ``{field: tokens}`` dict per document, aligned with
            ``documents``.
    """

    def __init__(
        self,
        documents: list[Document],
        tokenized: list[dict[str, list[str]]],
    ):
        if len(documents) != len(tokenized):
            raise ValidationError(
                f"{len(documents)} documents but {len(tokenized)} tokenized entries"
            )

        self.documents = documents
        self.ids = [doc.id for doc in documents]
        self._id_to_idx: dict[str, int] = {}
        for idx, doc_id in enumerate(self.ids):
            if doc_id in self._id_to_idx:
                raise ValidationError(f"duplicate document id {doc_id!r} in batch")
            self._id_to_idx[doc_id] = idx

        self.N = len(documents)
        self._tokens = tokenized

        # Field names and vocabulary in first-seen order
        self.field_names: list[str] = []
        self._vocab: dict[str, int] = {}
        for fields in tokenized:
            for name, tokens in fields.items():
                if name not in self.field_names:
                    self.field_names.append(name)
                for term in tokens:
                    if term not in self._vocab:
                        self._vocab[term] = len(self._vocab)
        self.vocab_size = len(self._vocab)

        self._tf: dict[str, csr_matrix] = {}
        self._lengths: dict[str, NDArray[np.float64]] = {}
        self._present: dict[str, NDArray[np.bool_]] = {}
        self._avg_length: dict[str, float] = {}

        for name in self.field_names:
            rows: list[int] = []
            cols: list[int] = []
            data: list[int] = []
            lengths = np.zeros(self.N, dtype=np.float64)
            present = np.zeros(self.N, dtype=bool)

            for doc_idx, fields in enumerate(tokenized):
                if name not in fields:
                    continue
                tokens = fields[name]
                present[doc_idx] = True
                lengths[doc_idx] = len(tokens)
                for term, count in Counter(tokens).items():
                    rows.append(self._vocab[term])
                    cols.append(doc_idx)
                    data.append(count)

            self._tf[name] = csr_matrix(
                (
                    np.array(data, dtype=np.float64),
                    (np.array(rows, dtype=np.int64), np.array(cols, dtype=np.int64)),
                ),
                shape=(self.vocab_size, self.N),
            )
            self._lengths[name] = lengths
            self._present[name] = present
            # Documents without the field are left out of its average
            self._avg_length[name] = float(lengths[present].mean()) if present.any() else 0.0

        # Document frequency over the union of each document's fields
        self._df = np.zeros(self.vocab_size, dtype=np.float64)
        for fields in tokenized:
            seen = {term for tokens in fields.values() for term in tokens}
            for term in seen:
                self._df[self._vocab[term]] += 1

        self.idf_array = inverse_document_frequency(self._df, self.N)

    @classmethod
    def from_documents(
        cls,
        documents: Iterable[Document | Mapping[str, Any]],
        tokenizer: Callable[[str], list[str]],
    ) -> FieldedCorpus:
        """Tokenize every field of every document and build the corpus."""
        docs = [Document.coerce(doc) for doc in documents]
        tokenized = [
            {name: tokenizer(text or "") for name, text in doc.fields.items()}
            for doc in docs
        ]
        corpus = cls(docs, tokenized)
        logger.debug(
            "Indexed %d documents: %d terms, fields=%s",
            corpus.N,
            corpus.vocab_size,
            corpus.field_names,
        )
        return corpus

    def __len__(self) -> int:
        return self.N

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._id_to_idx

    def index_of(self, doc_id: str) -> int:
        """Position of ``doc_id`` in the batch."""
        try:
            return self._id_to_idx[doc_id]
        except KeyError:
            raise KeyError(f"document {doc_id!r} is not in the corpus") from None

    def get_term_id(self, term: str) -> int | None:
        """Term ID (None if not in vocabulary)."""
        return self._vocab.get(term)

    def get_tokens(self, doc_id: str, field_name: str) -> list[str]:
        """Token sequence of one field (empty when the document lacks it)."""
        return list(self._tokens[self.index_of(doc_id)].get(field_name, []))

    def get_df(self, term: str) -> int:
        """Number of documents containing ``term`` in any field."""
        term_id = self._vocab.get(term)
        return 0 if term_id is None else int(self._df[term_id])

    def get_idf(self, term: str) -> float:
        """IDF of ``term`` (0.0 for terms outside the vocabulary)."""
        term_id = self._vocab.get(term)
        return 0.0 if term_id is None else float(self.idf_array[term_id])

    @property
    def idf(self) -> dict[str, float]:
        """IDF for every term in the vocabulary."""
        return {term: float(self.idf_array[term_id]) for term, term_id in self._vocab.items()}

    def average_length(self, field_name: str) -> float:
        """Mean token count of ``field_name`` over documents that carry it."""
        return self._avg_length.get(field_name, 0.0)

    def field_lengths(self, field_name: str) -> NDArray[np.float64]:
        """Token count per document (0 where the field is absent)."""
        return self._lengths[field_name]

    def field_present(self, field_name: str) -> NDArray[np.bool_]:
        """Mask of documents that carry ``field_name``."""
        return self._present[field_name]

    def tf_matrix(self, field_name: str) -> csr_matrix:
        """Sparse (vocab_size, N) term frequency matrix for ``field_name``."""
        return self._tf[field_name]
