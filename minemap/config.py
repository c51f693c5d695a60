# Project structure:
#
# minemap_project/
# ├── minemap/                      # Python package
# │   ├── __init__.py
# │   ├── config.py                 # paths, defaults and map settings
# │   ├── errors.py                 # exception types
# │   ├── loader.py                 # GeoJSON loading (path or URL)
# │   ├── attributes.py             # year attribute discovery
# │   ├── stats.py                  # global stats + Flannery radius
# │   ├── popup.py                  # popup text / html
# │   ├── symbols.py                # proportional symbol markers
# │   ├── sequence.py               # year sequence state + slider control
# │   ├── legend.py                 # static legend control
# │   ├── map_create.py             # session + create_map entry point
# │   └── visualize.py              # matplotlib charts
# ├── app.py                        # PyQt GUI, imports minemap.* modules
# ├── pyproject.toml
# ├── data/                         # created under project root
# │   └── NumMines.geojson          # input dataset (not bundled)
# └── output/                       # generated maps and charts

import os
from dataclasses import dataclass, field, asdict, fields
from typing import Any, Dict, List

# Default file names
DEFAULT_GEOJSON_FILENAME = "NumMines.geojson"
DEFAULT_OUTPUT_DIRNAME = "output"

# Only properties whose name contains this marker are treated as year values
ATTRIBUTE_MARKER = "Mine"
NAME_PROPERTY = "State"

USGS_TOPO_TILES = "https://basemap.nationalmap.gov/arcgis/rest/services/USGSTopo/MapServer/tile/{z}/{y}/{x}"
USGS_ATTRIBUTION = 'Tiles courtesy of the <a href="https://usgs.gov/">U.S. Geological Survey</a>'


@dataclass
class MapSettings:
    center: List[float] = field(default_factory=lambda: [38.0, -95.0])
    zoom_start: int = 5
    tiles: str = USGS_TOPO_TILES
    attribution: str = USGS_ATTRIBUTION
    max_zoom: int = 20
    fill_color: str = "#ff7800"
    color: str = "#000"
    weight: float = 1
    opacity: float = 1.0
    fill_opacity: float = 0.8
    legend_fill_color: str = "#F47821"
    legend_base_height: int = 90
    popup_width: int = 300
    sequence_position: str = "bottomleft"
    legend_position: str = "bottomright"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MapSettings":
        """Build settings from a dict, ignoring keys that are not settings."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def default_geojson_path(project_dir: str) -> str:
    return os.path.join(project_dir, "data", DEFAULT_GEOJSON_FILENAME)


def init_project(project_dir: str) -> dict:
    """
    Ensure the project directory structure exists and returns key paths.

    Creates:
      project_dir/data/
      project_dir/output/
    """
    data_dir = os.path.join(project_dir, "data")
    out_dir = os.path.join(project_dir, DEFAULT_OUTPUT_DIRNAME)
    os.makedirs(data_dir, exist_ok=True)
    os.makedirs(out_dir, exist_ok=True)

    paths = {
        "project": project_dir,
        "data": data_dir,
        "output": out_dir,
        "geojson": default_geojson_path(project_dir),
    }
    return paths
