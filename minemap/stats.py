"""
stats.py
Dataset-wide statistics and proportional symbol scaling.

- compute_global_min / compute_global_stats: flatten every state x year value.
- radius: Flannery appearance compensation, anchored on the global minimum.
- scaling_anchor: zero-minimum policy (floor the anchor at 1).
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

import numpy as np
import pandas as pd

from .errors import DomainError, SchemaError

logger = logging.getLogger(__name__)

FLANNERY_CONSTANT = 1.0083
FLANNERY_EXPONENT = 0.5715
MIN_RADIUS = 3
# Anchor substituted when the global minimum is zero
ANCHOR_FLOOR = 1.0
# Smallest radius actually drawn, so zero-count states stay clickable
MIN_MARKER_RADIUS = 1.0


@dataclass(frozen=True)
class GlobalStats:
    min: float
    max: float
    mean: float

    def as_dict(self) -> Dict[str, float]:
        return {"min": self.min, "max": self.max, "mean": self.mean}


def _flatten(features: Iterable[Dict[str, Any]], attributes: List[str]) -> pd.Series:
    raw = [
        (feat.get("props") or {}).get(attr)
        for feat in features
        for attr in attributes
    ]
    values = pd.to_numeric(pd.Series(raw, dtype=object), errors="coerce")
    dropped = int(values.isna().sum())
    if dropped:
        logger.warning("Ignoring %d missing or non-numeric values out of %d", dropped, len(values))
    values = values.dropna()
    if values.empty:
        raise SchemaError("Dataset contains no numeric values for the year attributes.")
    return values.astype(float)


def compute_global_min(features: Iterable[Dict[str, Any]], attributes: List[str]) -> float:
    return float(_flatten(features, attributes).min())


def compute_global_stats(features: Iterable[Dict[str, Any]], attributes: List[str]) -> GlobalStats:
    """Min, max and unweighted mean over every (feature, attribute) value."""
    values = _flatten(features, attributes)
    return GlobalStats(
        min=float(values.min()),
        max=float(values.max()),
        mean=float(values.sum() / len(values)),
    )


def scaling_anchor(global_min: float) -> float:
    """Return the denominator used for radius scaling; zero or negative minimums use ANCHOR_FLOOR."""
    if global_min > 0:
        return float(global_min)
    logger.warning(
        "Global minimum is %s; scaling radii against %s instead", global_min, ANCHOR_FLOOR
    )
    return ANCHOR_FLOOR


def radius(value: float, min_value: float) -> float:
    """
    Flannery-compensated proportional symbol radius:

        1.0083 * (value / min_value) ** 0.5715 * 3

    Raises DomainError when min_value <= 0, value < 0, or either is not finite.
    """
    try:
        val = float(value)
        anchor = float(min_value)
    except (TypeError, ValueError) as exc:
        raise DomainError(f"Radius inputs must be numeric: {value!r}, {min_value!r}") from exc
    if not (math.isfinite(val) and math.isfinite(anchor)):
        raise DomainError(f"Radius inputs must be finite: {value!r}, {min_value!r}")
    if anchor <= 0:
        raise DomainError(f"Minimum value must be positive, got {min_value!r}")
    if val < 0:
        raise DomainError(f"Value must be non-negative, got {value!r}")
    return FLANNERY_CONSTANT * math.pow(val / anchor, FLANNERY_EXPONENT) * MIN_RADIUS


def drawn_radius(value: float, min_value: float) -> float:
    return max(MIN_MARKER_RADIUS, radius(value, min_value))


def radius_table(frame: pd.DataFrame, anchor: float) -> pd.DataFrame:
    """Vectorised radius() over a numeric DataFrame. NaN cells stay NaN."""
    if anchor <= 0:
        raise DomainError(f"Minimum value must be positive, got {anchor!r}")
    values = frame.to_numpy(dtype=float)
    present = values[~np.isnan(values)]
    if np.any(np.isinf(present)):
        raise DomainError("Values must be finite.")
    if np.any(present < 0):
        raise DomainError("Values must be non-negative.")
    radii = FLANNERY_CONSTANT * np.power(values / anchor, FLANNERY_EXPONENT) * MIN_RADIUS
    return pd.DataFrame(radii, index=frame.index, columns=frame.columns)
