"""Rank arbitrary caller records (link entries, SDK file entries, ...) with BM25."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeVar

from fielded_bm25.bm25 import BM25
from fielded_bm25.config import DEFAULT_MAX_RESULTS, BM25Config
from fielded_bm25.corpus import Document

T = TypeVar("T")


def _field_value(record: Any, name: str) -> str:
    if isinstance(record, Mapping):
        value = record.get(name)
    else:
        value = getattr(record, name, None)
    return "" if value is None else str(value)


def records_to_documents(records: Sequence[Any], fields: Sequence[str]) -> list[Document]:
    """One document per record; the id is the record's position in ``records``."""
    return [
        Document(id=str(idx), fields={name: _field_value(record, name) for name in fields})
        for idx, record in enumerate(records)
    ]


def search_records(
    records: Sequence[T],
    query: str,
    fields: Sequence[str],
    config: BM25Config | Mapping[str, Any] | None = None,
    max_results: int = DEFAULT_MAX_RESULTS,
    tokenizer: Callable[[str], list[str]] | None = None,
) -> list[T]:
    """
    Return the records matching ``query`` in rank order.

    Each record becomes a document whose fields are read from mapping keys or
    attributes named in ``fields`` (missing values are empty text). A fresh
    ranker is built per call.

    Example:
        >>> links = [{"title": "Push setup", "url": "/push"}, {"title": "SMS", "url": "/sms"}]
        >>> search_records(links, "push", ["title", "url"], BM25Config.preset("docs"))
        [{'title': 'Push setup', 'url': '/push'}]
    """
    if not records:
        return []
    bm25 = BM25(config, tokenizer=tokenizer)
    bm25.index_documents(records_to_documents(records, fields))
    return [records[int(result.id)] for result in bm25.search(query, max_results)]
