"""Field-weighted BM25 ranking for small, heterogeneous document batches."""

from fielded_bm25.bm25 import BM25, SearchResult, score_kernel
from fielded_bm25.config import PRESETS, BM25Config, default_max_results
from fielded_bm25.corpus import Document, FieldedCorpus, inverse_document_frequency
from fielded_bm25.errors import ConfigurationError, FieldedBM25Error, ValidationError
from fielded_bm25.records import records_to_documents, search_records
from fielded_bm25.tokenizer import Tokenizer, contains_hangul, is_cjk, tokenize

__all__ = [
    "BM25",
    "BM25Config",
    "ConfigurationError",
    "Document",
    "FieldedBM25Error",
    "FieldedCorpus",
    "PRESETS",
    "SearchResult",
    "Tokenizer",
    "ValidationError",
    "contains_hangul",
    "default_max_results",
    "inverse_document_frequency",
    "is_cjk",
    "records_to_documents",
    "score_kernel",
    "search_records",
    "tokenize",
]
