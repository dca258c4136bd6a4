"""
BM25 configuration: parameters, field weights and named presets.

Defaults:
    - k1=1.5 (term frequency saturation)
    - b=0.75 (length normalization strength, within [0, 1])
    - field weights: title 2.0, description 1.0, content 0.8, url 0.5
      (fields not listed weigh 1.0)

Presets mirror the two search surfaces that consume the ranker:
    - "docs": documentation link index (title / description / url)
    - "sdk":  SDK source file index (title / description / file / platform)
"""

from __future__ import annotations

import math
import os
import types
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from fielded_bm25.errors import ConfigurationError

DEFAULT_K1 = 1.5
DEFAULT_B = 0.75
DEFAULT_MAX_RESULTS = 10

DEFAULT_FIELD_WEIGHTS: dict[str, float] = {
    "title": 2.0,
    "description": 1.0,
    "content": 0.8,
    "url": 0.5,
}

# Weight applied to fields missing from the weight mapping
UNLISTED_FIELD_WEIGHT = 1.0

_CONFIG_KEYS = {
    "k1": "k1",
    "b": "b",
    "field_weights": "field_weights",
    "fieldWeights": "field_weights",
}


def _default_field_weights() -> dict[str, float]:
    return dict(DEFAULT_FIELD_WEIGHTS)


@dataclass(frozen=True)
class BM25Config:
    """
    Ranking parameters for BM25.

    Args:
        k1: Term frequency saturation. Higher values let repeated terms keep
            adding score for longer. Must be finite and >= 0.
        b: Length normalization. 0 ignores field length, 1 normalizes fully.
            Must lie in [0, 1] so the normalization term stays positive.
        field_weights: Multiplier per field name. Replaces the default mapping
            as a whole; fields missing from it weigh 1.0.
    """

    k1: float = DEFAULT_K1
    b: float = DEFAULT_B
    field_weights: Mapping[str, float] = field(default_factory=_default_field_weights)

    def __post_init__(self) -> None:
        if not _is_finite_number(self.k1) or self.k1 < 0:
            raise ConfigurationError(f"k1 must be a finite number >= 0, got {self.k1!r}")
        if not _is_finite_number(self.b) or not 0.0 <= self.b <= 1.0:
            raise ConfigurationError(
                f"b must be within [0, 1] to avoid negative length-normalization "
                f"denominators, got {self.b!r}"
            )
        if not isinstance(self.field_weights, Mapping):
            raise ConfigurationError(
                f"field_weights must be a mapping, got {type(self.field_weights).__name__}"
            )
        for name, weight in self.field_weights.items():
            if not isinstance(name, str) or not name:
                raise ConfigurationError(f"field weight keys must be non-empty strings, got {name!r}")
            if not _is_finite_number(weight) or weight < 0:
                raise ConfigurationError(
                    f"weight for field {name!r} must be a finite number >= 0, got {weight!r}"
                )
        # Read-only view: presets and live rankers must not see later edits
        object.__setattr__(
            self,
            "field_weights",
            types.MappingProxyType({name: float(w) for name, w in self.field_weights.items()}),
        )

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None) -> BM25Config:
        """
        Build a config from a partially specified mapping.

        Missing keys fall back to their defaults. Unknown keys are rejected
        rather than being mistaken for field weights.
        """
        if not options:
            return cls()
        unknown = sorted(set(options) - set(_CONFIG_KEYS))
        if unknown:
            raise ConfigurationError(
                f"unknown BM25 configuration keys: {', '.join(map(str, unknown))}"
            )
        if "field_weights" in options and "fieldWeights" in options:
            raise ConfigurationError(
                "pass field weights as either 'field_weights' or 'fieldWeights', not both"
            )
        kwargs: dict[str, Any] = {}
        for key, value in options.items():
            if value is not None:
                kwargs[_CONFIG_KEYS[key]] = value
        return cls(**kwargs)

    @classmethod
    def preset(cls, name: str) -> BM25Config:
        """Return the named preset ("default", "docs" or "sdk")."""
        try:
            return PRESETS[name]
        except KeyError:
            raise ConfigurationError(
                f"unknown preset {name!r}; expected one of {sorted(PRESETS)}"
            ) from None

    def weight_for(self, field_name: str) -> float:
        """Weight applied to ``field_name`` (1.0 when not configured)."""
        return self.field_weights.get(field_name, UNLISTED_FIELD_WEIGHT)


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


PRESETS: dict[str, BM25Config] = {
    "default": BM25Config(),
    "docs": BM25Config(
        field_weights={
            "title": 3.0,  # page titles carry most of the signal
            "description": 1.5,
            "url": 0.8,
        },
    ),
    "sdk": BM25Config(
        field_weights={
            "title": 3.0,
            "description": 1.5,
            "file": 1.0,  # paths often contain class names
            "platform": 0.5,  # usually already filtered on
        },
    ),
}

# Per-preset result limits and the environment variables overriding them
_MAX_RESULTS_DEFAULTS: dict[str, tuple[str, int]] = {
    "default": ("DEFAULT_SEARCH_MAX_RESULTS", DEFAULT_MAX_RESULTS),
    "docs": ("DOCS_SEARCH_MAX_RESULTS", 3),
    "sdk": ("SDK_SEARCH_MAX_RESULTS", 3),
}


def default_max_results(preset: str = "default") -> int:
    """
    Result limit for a preset, honoring its environment override.

    The environment is read on every call so long-running processes pick up
    changes made by their launcher.
    """
    try:
        env_var, fallback = _MAX_RESULTS_DEFAULTS[preset]
    except KeyError:
        raise ConfigurationError(
            f"unknown preset {preset!r}; expected one of {sorted(_MAX_RESULTS_DEFAULTS)}"
        ) from None
    raw = os.environ.get(env_var, "").strip()
    if not raw:
        return fallback
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{env_var} must be an integer, got {raw!r}") from None
