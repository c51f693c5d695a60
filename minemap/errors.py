"""
errors.py
Exception types raised by the minemap package.
"""


class DataLoadError(RuntimeError):
    """The GeoJSON source could not be read, fetched or parsed."""


class SchemaError(ValueError):
    """The dataset lacks the features or year attributes needed to render."""


class DomainError(ValueError):
    """A value falls outside the domain of the radius scaling formula."""
