"""
MineMap package

Builds a proportional symbol map of mines per U.S. state (2007-2015) from a
GeoJSON FeatureCollection: Flannery-scaled circle markers, a year slider with
step buttons that restyles markers in place, and a static max/mean/min legend.
Also provides matplotlib companion charts.
"""

__version__ = "0.1.0"

from .config import init_project, MapSettings
from .errors import DataLoadError, DomainError, SchemaError
from .loader import MineDataset, load_geojson
from .attributes import extract_attributes, attribute_year
from .stats import compute_global_min, compute_global_stats, radius, scaling_anchor
from .popup import format_popup, popup_html
from .sequence import SequenceController
from .map_create import MineMapSession, create_map
from .visualize import plot_year_bar, plot_rank_changes

__all__ = [
    "init_project",
    "MapSettings",
    "DataLoadError",
    "DomainError",
    "SchemaError",
    "MineDataset",
    "load_geojson",
    "extract_attributes",
    "attribute_year",
    "compute_global_min",
    "compute_global_stats",
    "radius",
    "scaling_anchor",
    "format_popup",
    "popup_html",
    "SequenceController",
    "MineMapSession",
    "create_map",
    "plot_year_bar",
    "plot_rank_changes",
]
