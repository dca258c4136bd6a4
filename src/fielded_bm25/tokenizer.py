"""
Unicode-aware tokenizer shared by indexing and querying.

Pipeline:
1. NFKC normalization + lowercasing
2. Word segmentation
   - ICU word boundaries (PyICU) when available
   - Fallback: every non letter/number character becomes a space, split on whitespace
3. Filtering
   - drop segments without any letter or number
   - CJK/Hangul/Kana segments are kept from length 1 (single ideographs carry meaning)
   - everything else needs length >= 2

Usage:
    from fielded_bm25.tokenizer import Tokenizer

    tokenizer = Tokenizer()            # ICU if importable, regex otherwise
    tokenizer("푸시 알림 설정")          # ['푸시', '알림', '설정']
    Tokenizer(segmenter="regex")("iOS Push-Notification")  # ['ios', 'push', 'notification']
"""

from __future__ import annotations

import logging
import re
import unicodedata
from collections.abc import Callable

from fielded_bm25.errors import ConfigurationError

logger = logging.getLogger(__name__)

SEGMENTERS = ("auto", "icu", "regex")

# Han, Hiragana, Katakana and Hangul blocks (inclusive code point ranges)
_CJK_RANGES: tuple[tuple[int, int], ...] = (
    (0x1100, 0x11FF),  # Hangul Jamo
    (0x2E80, 0x2FDF),  # CJK radicals, Kangxi radicals
    (0x3005, 0x3007),  # ideographic iteration / closing / number zero
    (0x3021, 0x3029),  # Hangzhou numerals
    (0x3038, 0x303B),
    (0x3041, 0x309F),  # Hiragana
    (0x30A0, 0x30FF),  # Katakana
    (0x3130, 0x318F),  # Hangul compatibility Jamo
    (0x31F0, 0x31FF),  # Katakana phonetic extensions
    (0x3400, 0x4DBF),  # CJK extension A
    (0x4E00, 0x9FFF),  # CJK unified ideographs
    (0xA960, 0xA97F),  # Hangul Jamo extended A
    (0xAC00, 0xD7AF),  # Hangul syllables
    (0xD7B0, 0xD7FF),  # Hangul Jamo extended B
    (0xF900, 0xFAFF),  # CJK compatibility ideographs
    (0xFF66, 0xFF9F),  # halfwidth Katakana
    (0x1AFF0, 0x1AFFF),  # Kana extended B
    (0x1B000, 0x1B16F),  # Kana supplement / extended A
    (0x20000, 0x323AF),  # CJK extensions B-H
)

_HANGUL_RANGES: tuple[tuple[int, int], ...] = (
    (0x1100, 0x11FF),
    (0x3130, 0x318F),
    (0xA960, 0xA97F),
    (0xAC00, 0xD7AF),
    (0xD7B0, 0xD7FF),
)

# \w minus underscore is exactly "letter or number" for str patterns
_NON_WORD = re.compile(r"[\W_]+")


def _in_ranges(char: str, ranges: tuple[tuple[int, int], ...]) -> bool:
    code = ord(char)
    return any(lo <= code <= hi for lo, hi in ranges)


def _has_letter_or_number(segment: str) -> bool:
    return any(ch.isalnum() for ch in segment)


def is_cjk(token: str) -> bool:
    """True when every letter/number in ``token`` is Han, Kana or Hangul."""
    chars = [ch for ch in token if ch.isalnum()]
    return bool(chars) and all(_in_ranges(ch, _CJK_RANGES) for ch in chars)


def contains_hangul(text: str) -> bool:
    """True when ``text`` contains at least one Hangul character."""
    return any(_in_ranges(ch, _HANGUL_RANGES) for ch in text or "")


def _keep(segment: str) -> bool:
    if not segment or not _has_letter_or_number(segment):
        return False
    return len(segment) >= (1 if is_cjk(segment) else 2)


def _regex_segment(text: str) -> list[str]:
    """Fallback segmentation: non letters/numbers become spaces."""
    return _NON_WORD.sub(" ", text).split()


def _get_icu_segmenter() -> Callable[[str], list[str]] | None:
    """Try to build an ICU word segmenter (root locale)."""
    try:
        import icu
    except ImportError:
        return None

    try:
        iterator = icu.BreakIterator.createWordInstance(icu.Locale.getRoot())
    except icu.ICUError as exc:
        logger.debug("ICU word segmenter unavailable: %s", exc)
        return None

    def segment(text: str) -> list[str]:
        # ICU boundaries are UTF-16 offsets, so slice the ICU string, not the Python one
        ustr = icu.UnicodeString(text)
        iterator.setText(ustr)
        segments = []
        start = iterator.first()
        for end in iterator:
            segments.append(str(ustr[start:end]))
            start = end
        return segments

    return segment


class Tokenizer:
    """
    Normalizing, segmenting and filtering tokenizer.

    Args:
        segmenter: "auto" (ICU when importable, else regex), "icu" (required)
            or "regex" (always the fallback strategy).

    The same instance must be used for documents and queries so both sides
    see identical terms. Instances are not shared between threads because the
    ICU break iterator keeps the text it is iterating.
    """

    def __init__(self, segmenter: str = "auto"):
        if segmenter not in SEGMENTERS:
            raise ConfigurationError(
                f"unknown segmenter {segmenter!r}; expected one of {SEGMENTERS}"
            )

        self._segment: Callable[[str], list[str]] = _regex_segment
        self.segmenter_name = "regex"

        if segmenter in ("auto", "icu"):
            icu_segment = _get_icu_segmenter()
            if icu_segment is not None:
                self._segment = icu_segment
                self.segmenter_name = "icu"
            elif segmenter == "icu":
                raise ConfigurationError(
                    "ICU segmentation requested but PyICU is not installed "
                    "(pip install 'fielded-bm25[icu]')"
                )

        logger.debug("Tokenizer using %s segmentation", self.segmenter_name)

    def __call__(self, text: str | None) -> list[str]:
        """Tokenize ``text`` into normalized terms (duplicates kept, order preserved)."""
        normalized = unicodedata.normalize("NFKC", text or "").lower()
        if not normalized:
            return []
        segments = (segment.strip() for segment in self._segment(normalized))
        return [segment for segment in segments if _keep(segment)]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(segmenter={self.segmenter_name!r})"


def tokenize(text: str | None) -> list[str]:
    """Tokenize with the fallback (regex) strategy; deterministic across platforms."""
    return _REGEX_TOKENIZER(text)


_REGEX_TOKENIZER = Tokenizer(segmenter="regex")
