from typing import Any, Dict, Iterable, List

from .config import ATTRIBUTE_MARKER
from .errors import SchemaError


def extract_attributes(features: Iterable[Dict[str, Any]], marker: str = ATTRIBUTE_MARKER) -> List[str]:
    """
    Return the year attribute names of the first feature, in schema order.

    Only property names containing `marker` are kept. Raises SchemaError when there
    are no features or no matching property names.
    """
    first = next(iter(features), None)
    if first is None:
        raise SchemaError("Dataset contains no features.")
    props = first.get("props") or {}
    attributes = [str(key) for key in props.keys() if marker in str(key)]
    if not attributes:
        raise SchemaError(f"No attributes containing '{marker}' found in feature properties.")
    return attributes


def attribute_year(attribute: str) -> str:
    """'Mine_2009' -> '2009'."""
    return str(attribute).rsplit("_", 1)[-1]


def missing_attributes(features: Iterable[Dict[str, Any]], attributes: List[str]) -> Dict[str, List[str]]:
    """Map feature id -> attribute names absent (or null) in that feature's properties."""
    missing: Dict[str, List[str]] = {}
    for feat in features:
        props = feat.get("props") or {}
        absent = [attr for attr in attributes if props.get(attr) is None]
        if absent:
            missing[feat.get("id")] = absent
    return missing
