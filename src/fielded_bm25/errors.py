"""Exception hierarchy for fielded_bm25."""


class FieldedBM25Error(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(FieldedBM25Error, ValueError):
    """Raised when ranking parameters, presets or segmenters are invalid."""


class ValidationError(FieldedBM25Error, ValueError):
    """Raised when a document batch is malformed (e.g. duplicate ids)."""
