"""
loader.py
Load the mine-count GeoJSON FeatureCollection from a local path or an http(s) URL
and extract one record per state with a marker location.

Each record is a dict with: id, lat, lon, props(dict).
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import requests

from .errors import DataLoadError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30
USER_AGENT = "minemap/1.0"


class MineDataset:
    """Ordered, read-only collection of state features loaded from one source."""

    def __init__(self, features: List[Dict[str, Any]], source: str, metadata: Optional[Dict[str, Any]] = None):
        self._features = tuple(features)
        self.source = source
        self.metadata = dict(metadata or {})

    @property
    def features(self) -> Tuple[Dict[str, Any], ...]:
        return self._features

    @property
    def name(self) -> str:
        return os.path.basename(self.source.rstrip("/")) or self.source

    def __len__(self) -> int:
        return len(self._features)

    def __iter__(self):
        return iter(self._features)

    def to_frame(self, attributes: List[str], name_key: str = "State") -> pd.DataFrame:
        """Return a DataFrame of numeric values, one row per state, one column per attribute."""
        rows = []
        names = []
        for feat in self._features:
            props = feat.get("props") or {}
            names.append(str(props.get(name_key) or feat.get("id")))
            rows.append({attr: props.get(attr) for attr in attributes})
        df = pd.DataFrame(rows, columns=list(attributes), index=names)
        return df.apply(pd.to_numeric, errors="coerce")


def _is_url(source: str) -> bool:
    return str(source).lower().startswith(("http://", "https://"))


def _read_source(source: str) -> Dict[str, Any]:
    if _is_url(source):
        try:
            resp = requests.get(source, headers={"User-Agent": USER_AGENT}, timeout=REQUEST_TIMEOUT)
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as exc:
            raise DataLoadError(f"Failed to fetch {source}: {exc}") from exc
        except ValueError as exc:
            raise DataLoadError(f"Response from {source} is not valid JSON: {exc}") from exc

    if not os.path.exists(source):
        raise DataLoadError(f"GeoJSON file not found: {source}")
    try:
        with open(source, "r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as exc:
        raise DataLoadError(f"Could not read {source}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise DataLoadError(f"{source} is not valid JSON: {exc}") from exc


def _ring_center(ring: Any) -> Optional[Tuple[float, float]]:
    """Mean of a linear ring's vertices as (lon, lat)."""
    pts = []
    for coord in ring or []:
        if not isinstance(coord, (list, tuple)) or len(coord) < 2:
            continue
        try:
            pts.append((float(coord[0]), float(coord[1])))
        except (TypeError, ValueError):
            continue
    if not pts:
        return None
    # closing vertex repeats the first one
    if len(pts) > 1 and pts[0] == pts[-1]:
        pts = pts[:-1]
    lon = sum(p[0] for p in pts) / len(pts)
    lat = sum(p[1] for p in pts) / len(pts)
    return lon, lat


def _feature_location(geometry: Any) -> Optional[Tuple[float, float]]:
    """Return (lat, lon) for Point geometries, or a vertex-mean center for polygons."""
    if not geometry or not isinstance(geometry, dict):
        return None
    gtype = geometry.get("type")
    coords = geometry.get("coordinates")
    if not coords or not isinstance(coords, (list, tuple)):
        return None

    lonlat: Optional[Tuple[float, float]] = None
    if gtype == "Point":
        if len(coords) < 2 or coords[0] is None or coords[1] is None:
            return None
        try:
            lonlat = (float(coords[0]), float(coords[1]))
        except (TypeError, ValueError):
            return None
    elif gtype == "Polygon":
        lonlat = _ring_center(coords[0])
    elif gtype == "MultiPolygon":
        # largest part by vertex count
        parts = [poly[0] for poly in coords if poly]
        if parts:
            lonlat = _ring_center(max(parts, key=len))
    if lonlat is None:
        return None
    return lonlat[1], lonlat[0]


def _extract_features(features: List[Any]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for idx, feat in enumerate(features):
        if not feat or not isinstance(feat, dict):
            logger.warning("Skipping feature %d: not an object", idx)
            continue
        loc = _feature_location(feat.get("geometry"))
        if loc is None:
            logger.warning("Skipping feature %d: no usable geometry", idx)
            continue
        props = feat.get("properties") or {}
        out.append({
            "id": f"state-{idx}",
            "lat": loc[0],
            "lon": loc[1],
            "props": props,
        })
    return out


def load_geojson(source: str) -> MineDataset:
    """
    Read a GeoJSON FeatureCollection from a file path or URL.

    Raises DataLoadError when the source cannot be read or is not a FeatureCollection.
    Features without a usable geometry are skipped.
    """
    data = _read_source(source)
    if not isinstance(data, dict):
        raise DataLoadError(f"{source} does not contain a GeoJSON object.")
    features = data.get("features")
    if not isinstance(features, list):
        raise DataLoadError("GeoJSON does not contain a valid 'features' list.")

    records = _extract_features(features)
    metadata = data.get("metadata") or data.get("properties") or {}
    logger.info("Loaded %d of %d features from %s", len(records), len(features), source)
    return MineDataset(records, str(source), metadata if isinstance(metadata, dict) else {})
