"""
symbols.py
Proportional symbol markers for each state.

- render_all: create one CircleMarker per feature for the selected attribute.
- update: re-style existing markers in place (radius + popup content).
- symbol_table: per-marker radii/popups for every attribute, consumed by the
  browser-side sequence control so it can restyle the same markers.
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Optional

import folium
import pandas as pd
from folium import Html, Popup

from .config import MapSettings
from .popup import popup_html
from .stats import MIN_MARKER_RADIUS, drawn_radius, radius_table

logger = logging.getLogger(__name__)


class MarkerSet(dict):
    """Feature id -> marker entry ('feature', 'marker', 'popup', 'content'), annotated with the shown attribute."""

    def __init__(self, attribute: str):
        super().__init__()
        self.attribute = attribute

    def marker(self, feature_id: str) -> folium.CircleMarker:
        return self[feature_id]["marker"]

    def radius_of(self, feature_id: str) -> float:
        return float(self.marker(feature_id).options["radius"])

    def popup_of(self, feature_id: str) -> str:
        return self[feature_id]["content"].data


def _numeric(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(num):
        return None
    return num


def feature_radius(props: Dict[str, Any], attribute: str, anchor: float) -> Optional[float]:
    """Drawn radius for a feature's value, or None when the value is missing."""
    value = _numeric(props.get(attribute))
    if value is None:
        return None
    return drawn_radius(value, anchor)


def render_all(
    map_obj: folium.Map,
    features: Iterable[Dict[str, Any]],
    attributes: List[str],
    index: int,
    anchor: float,
    settings: Optional[MapSettings] = None,
) -> MarkerSet:
    """Add a sized, styled circle marker with a bound popup for every feature."""
    settings = settings or MapSettings()
    attribute = attributes[index]
    marker_set = MarkerSet(attribute)
    for feat in features:
        props = feat.get("props") or {}
        radius_value = feature_radius(props, attribute, anchor)
        if radius_value is None:
            logger.debug("Feature %s has no value for %s", feat.get("id"), attribute)
            radius_value = MIN_MARKER_RADIUS

        content = Html(popup_html(props, attribute), script=True)
        popup = Popup(content, max_width=settings.popup_width)
        marker = folium.CircleMarker(
            location=[feat["lat"], feat["lon"]],
            radius=radius_value,
            color=settings.color,
            weight=settings.weight,
            opacity=settings.opacity,
            fill=True,
            fill_color=settings.fill_color,
            fill_opacity=settings.fill_opacity,
            popup=popup,
        )
        marker.add_to(map_obj)
        marker_set[feat["id"]] = {
            "feature": feat,
            "marker": marker,
            "popup": popup,
            "content": content,
        }
    return marker_set


def update(marker_set: MarkerSet, attributes: List[str], index: int, anchor: float) -> List[str]:
    """
    Restyle every marker for attributes[index] without recreating it.

    Markers whose feature lacks a value for the attribute are left untouched;
    their ids are returned.
    """
    attribute = attributes[index]
    skipped: List[str] = []
    for feature_id, entry in marker_set.items():
        props = entry["feature"].get("props") or {}
        radius_value = feature_radius(props, attribute, anchor)
        if radius_value is None:
            logger.debug("Skipping marker %s: no value for %s", feature_id, attribute)
            skipped.append(feature_id)
            continue
        entry["marker"].options["radius"] = radius_value
        entry["content"].data = popup_html(props, attribute)
    marker_set.attribute = attribute
    return skipped


def symbol_table(marker_set: MarkerSet, attributes: List[str], anchor: float) -> List[Dict[str, Any]]:
    """[{layer, radii, popups}] with None where a feature lacks an attribute."""
    entries = list(marker_set.values())
    frame = pd.DataFrame(
        [
            [_numeric((entry["feature"].get("props") or {}).get(attribute)) for attribute in attributes]
            for entry in entries
        ],
        columns=list(attributes),
        dtype=float,
    )
    radii_frame = radius_table(frame, anchor).clip(lower=MIN_MARKER_RADIUS)

    table: List[Dict[str, Any]] = []
    for row, entry in enumerate(entries):
        props = entry["feature"].get("props") or {}
        radii: List[Optional[float]] = []
        popups: List[Optional[str]] = []
        for col, attribute in enumerate(attributes):
            radius_value = radii_frame.iat[row, col]
            if math.isnan(radius_value):
                radii.append(None)
                popups.append(None)
            else:
                radii.append(round(float(radius_value), 4))
                popups.append(popup_html(props, attribute))
        table.append({
            "layer": entry["marker"].get_name(),
            "radii": radii,
            "popups": popups,
        })
    return table
