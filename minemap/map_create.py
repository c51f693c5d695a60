import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

import folium

from .attributes import attribute_year, extract_attributes, missing_attributes
from .config import MapSettings, init_project
from .errors import DataLoadError
from .legend import attach_legend
from .loader import MineDataset, load_geojson
from .popup import _esc
from .sequence import SequenceController, attach_sequence_control
from .stats import GlobalStats, compute_global_stats, scaling_anchor
from . import symbols

logger = logging.getLogger(__name__)


# ----------------------------
# Helpers
# ----------------------------


def _base_map(settings: MapSettings) -> folium.Map:
    m = folium.Map(location=list(settings.center), zoom_start=settings.zoom_start, tiles=None)
    folium.TileLayer(
        tiles=settings.tiles,
        attr=settings.attribution,
        max_zoom=settings.max_zoom,
        name="USGS Topo",
    ).add_to(m)
    return m


def _panel_html(lines: List[str], background: str = "rgba(255,255,255,0.92)", color: str = "inherit") -> str:
    return (
        '<div style="position: fixed; top: 5px; left: 50px; z-index:9999;">'
        f'<div style="max-width: 560px; background: {background}; color: {color}; '
        'padding: 8px 12px; border-radius: 6px; box-shadow: 0 1px 4px rgba(0,0,0,0.2); '
        'font-size: 13px; line-height: 1.4;">'
        + ''.join(lines)
        + '</div></div>'
    )


def _format_stat(value: float) -> str:
    return f"{round(value, 2):,}"


def _default_output_path(source: str, project_dir: Optional[str] = None) -> str:
    timestamp = datetime.now().strftime('%Y%m%d-%H%M%S')
    base_name = os.path.splitext(os.path.basename(str(source).rstrip('/')))[0] or "minemap"
    if os.path.exists(source) and not project_dir:
        out_dir = os.path.dirname(os.path.abspath(source))
    else:
        out_dir = init_project(project_dir or os.getcwd())["output"]
    return os.path.join(out_dir, f"{base_name}_map_{timestamp}.html")


# ----------------------------
# Session
# ----------------------------

class MineMapSession:
    """
    Everything one rendered map needs for its lifetime: the immutable dataset,
    the ordered year attributes, global stats, the scaling anchor, the sequence
    controller and the marker set it drives.
    """

    def __init__(self, dataset: MineDataset, settings: Optional[MapSettings] = None):
        self.dataset = dataset
        self.settings = settings or MapSettings()
        self.attributes: List[str] = extract_attributes(dataset.features)
        self.stats: GlobalStats = compute_global_stats(dataset.features, self.attributes)
        self.anchor: float = scaling_anchor(self.stats.min)
        self.missing = missing_attributes(dataset.features, self.attributes)
        if self.missing:
            logger.warning("%d features are missing year values", len(self.missing))
        self.controller: Optional[SequenceController] = None
        self.map: Optional[folium.Map] = None
        self.marker_set: Optional[symbols.MarkerSet] = None
        self.last_skipped: List[str] = []

    @property
    def years(self) -> List[str]:
        return [attribute_year(attr) for attr in self.attributes]

    def render(self, start_index: int = 0) -> folium.Map:
        """Build the map: tiles, markers at the start index, sequence control and legend."""
        self.controller = SequenceController(self.attributes, start_index)
        m = _base_map(self.settings)
        self.marker_set = symbols.render_all(
            m,
            self.dataset.features,
            self.attributes,
            self.controller.index,
            self.anchor,
            self.settings,
        )
        table = symbols.symbol_table(self.marker_set, self.attributes, self.anchor)
        attach_sequence_control(m, self.controller, table, position=self.settings.sequence_position)
        attach_legend(m, self.stats, self.anchor, self.settings)
        self.controller.subscribe(self._on_select)
        self.map = m
        return m

    def _on_select(self, index: int, attribute: str) -> None:
        self.last_skipped = symbols.update(self.marker_set, self.attributes, index, self.anchor)

    def _require_render(self) -> SequenceController:
        if self.controller is None:
            raise RuntimeError("Session has not been rendered yet.")
        return self.controller

    def select(self, index: Any) -> int:
        return self._require_render().seek(index)

    def step(self, direction: str) -> int:
        return self._require_render().step(direction)

    def summary(self, start_index: int = 0) -> Dict[str, Any]:
        index = self.controller.index if self.controller else start_index
        return {
            'geojson_name': self.dataset.name,
            'states': len(self.dataset),
            'years': self.years,
            'start_year': attribute_year(self.attributes[index]),
            'min': self.stats.min,
            'max': self.stats.max,
            'mean': self.stats.mean,
            'missing_values': sum(len(v) for v in self.missing.values()),
        }

    def add_summary_panel(self) -> None:
        if self.map is None:
            return
        years = self.years
        year_text = years[0] if len(years) == 1 else f"{years[0]} – {years[-1]}"
        lines = [
            f'<div><strong>File:</strong> {_esc(self.dataset.name)}</div>',
            f'<div><strong>States:</strong> {len(self.dataset):,} | <strong>Years:</strong> {_esc(year_text)}</div>',
            '<div><strong>Mines per state-year:</strong> '
            f'min {_esc(_format_stat(self.stats.min))} | '
            f'mean {_esc(_format_stat(self.stats.mean))} | '
            f'max {_esc(_format_stat(self.stats.max))}</div>',
        ]
        self.map.get_root().html.add_child(folium.Element(_panel_html(lines)))


# ----------------------------
# Public API
# ----------------------------

def create_map(
    source: str,
    output_path: Optional[str] = None,
    start_index: int = 0,
    settings: Optional[MapSettings] = None,
    show_summary: bool = True,
    project_dir: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a proportional symbol map of mines per state with a year slider.

    source: path or http(s) URL of the GeoJSON FeatureCollection.
    output_path: HTML file to write; defaults to a timestamped file next to the
      input (or in <project_dir>/output for URLs).
    start_index: initial year index, clamped to the available years.

    If the source cannot be loaded, a base map with a visible error message is
    written instead and the message is returned under 'error'. Schema problems
    (no features, no year attributes, no numeric values) raise SchemaError.

    Returns:
        dict with 'map_path', 'summary', 'settings' and, on load failure, 'error'.
    """
    settings = settings or MapSettings()
    out_html = output_path or _default_output_path(source, project_dir)
    out_dir = os.path.dirname(os.path.abspath(out_html))
    os.makedirs(out_dir, exist_ok=True)

    try:
        dataset = load_geojson(source)
    except DataLoadError as exc:
        logger.error("Could not load %s: %s", source, exc)
        m = _base_map(settings)
        lines = [
            '<div><strong>Map data could not be loaded.</strong></div>',
            f'<div>{_esc(exc)}</div>',
        ]
        m.get_root().html.add_child(folium.Element(_panel_html(lines, background="#fdecea", color="#611a15")))
        m.save(out_html)
        return {
            'map_path': out_html,
            'summary': {},
            'settings': settings.to_dict(),
            'error': str(exc),
        }

    session = MineMapSession(dataset, settings)
    session.render(start_index)
    if show_summary:
        session.add_summary_panel()
    session.map.save(out_html)
    logger.info("Map written to %s", out_html)

    result: Dict[str, Any] = {
        'map_path': out_html,
        'summary': session.summary(),
        'settings': settings.to_dict(),
    }
    result['settings']['start_index'] = session.controller.index
    return result
