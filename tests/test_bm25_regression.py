import math

import numpy as np
import pytest

from fielded_bm25 import BM25, Tokenizer


def _term_score(idf: float, tf: int, length: float, avg_length: float, k1: float = 1.5, b: float = 0.75) -> float:
    return idf * tf * (k1 + 1) / (tf + k1 * (1 - b + b * length / avg_length))


def _idf(N: int, df: int) -> float:
    return math.log((N - df + 0.5) / (df + 0.5) + 1)


def test_bm25_ordering_regression() -> None:
    """
    Regression check to guard BM25 kernel behavior:
    - Documents with repeated query terms should score higher than those with fewer matches.
    - Non-matching documents are omitted.
    """
    bm25 = BM25(k1=1.5, b=0.75)
    bm25.index_documents([
        {"id": "0", "fields": {"text": "foo foo foo bar"}},  # heavy tf on foo
        {"id": "1", "fields": {"text": "foo bar baz"}},  # single foo/bar
        {"id": "2", "fields": {"text": "baz qux"}},  # no query terms
    ])

    results = bm25.search("foo bar")

    assert [r.id for r in results] == ["0", "1"]
    assert results[0].score > results[1].score
    # Ensure score gaps are meaningful (avoid degenerate normalization).
    assert results[0].score - results[1].score > 0.05
    assert np.isclose(bm25.score("foo bar", "2"), 0.0)


@pytest.mark.parametrize("segmenter", ["regex", "auto"])
def test_push_notification_scenario_exact_scores(segmenter: str) -> None:
    bm25 = BM25(
        field_weights={"title": 3.0, "description": 1.5},
        tokenizer=Tokenizer(segmenter=segmenter),
    )
    bm25.index_documents([
        {"id": "1", "fields": {"title": "iOS Push Notification Setup", "description": "Complete guide"}},
        {"id": "2", "fields": {"title": "Android Setup Guide", "description": "Push notification configuration"}},
    ])

    results = bm25.search("iOS push notification")

    idf_ios, idf_shared = _idf(2, 1), _idf(2, 2)
    title_avg, description_avg = 3.5, 2.5
    expected_1 = 3.0 * (
        _term_score(idf_ios, 1, 4, title_avg) + 2 * _term_score(idf_shared, 1, 4, title_avg)
    )
    expected_2 = 1.5 * 2 * _term_score(idf_shared, 1, 3, description_avg)

    assert [r.id for r in results] == ["1", "2"]
    assert results[0].score == pytest.approx(expected_1)
    assert results[1].score == pytest.approx(expected_2)


def test_idf_is_never_negative() -> None:
    bm25 = BM25()
    bm25.index_documents([
        {"id": str(i), "fields": {"text": "common words" + (" rare" if i == 0 else "")}}
        for i in range(20)
    ])
    idf = bm25.corpus.idf
    assert all(value >= 0 for value in idf.values())
    assert idf["common"] == pytest.approx(_idf(20, 20))
    assert idf["rare"] == pytest.approx(_idf(20, 1))
