"""
legend.py
Static attribute legend: max/mean/min reference circles drawn once from the
dataset-wide stats, sharing a common baseline.
"""

import html
import json
from typing import Any, Dict, List

from branca.element import MacroElement
from jinja2 import Template as JinjaTemplate

from .stats import GlobalStats, drawn_radius

LEGEND_CIRCLES = ("max", "mean", "min")


def _format_label(value: float) -> str:
    rounded = round(float(value), 2)
    if float(rounded).is_integer():
        return f"{int(rounded)} mines"
    return f"{rounded} mines"


def legend_circles(stats: GlobalStats, anchor: float, base_height: int = 90) -> List[Dict[str, Any]]:
    """Radius, baseline-aligned cy and label for each of max, mean and min."""
    circles: List[Dict[str, Any]] = []
    for i, name in enumerate(LEGEND_CIRCLES):
        value = getattr(stats, name)
        r = drawn_radius(value, anchor)
        circles.append({
            "name": name,
            "value": value,
            "radius": r,
            "cy": base_height - r,
            "label": _format_label(value),
            "text_y": i * 20 + 47,
        })
    return circles


def legend_svg(
    circles: List[Dict[str, Any]],
    base_height: int = 90,
    fill_color: str = "#F47821",
    cx: int = 50,
    text_x: int = 95,
) -> str:
    parts = [f'<svg id="attribute-legend" width="180px" height="{base_height}px">']
    for circle in circles:
        name = html.escape(circle["name"], quote=True)
        parts.append(
            f'<circle class="legend-circle" id="{name}" r="{circle["radius"]:.4f}" '
            f'cy="{circle["cy"]:.4f}" cx="{cx}" fill="{html.escape(fill_color, quote=True)}" '
            f'fill-opacity="0.8" stroke="#000000"/>'
        )
        parts.append(
            f'<text id="{name}-text" x="{text_x}" y="{circle["text_y"]}">{html.escape(circle["label"])}</text>'
        )
    parts.append('</svg>')
    return ''.join(parts)


class LegendControl(MacroElement):
    _template = JinjaTemplate(
        """
        {% macro header(this, kwargs) %}
        <style>
          .legend-control-container {
            background: rgba(255,255,255,0.92);
            padding: 6px 10px;
            border-radius: 6px;
            box-shadow: 0 1px 4px rgba(0,0,0,0.2);
            font-size: 13px;
          }
          .legend-control-container .temporalLegend { margin: 0 0 4px 0; font-weight: 600; }
        </style>
        {% endmacro %}

        {% macro script(this, kwargs) %}
        (function() {
          var legend = L.control({position: {{ this.position_json }}});
          legend.onAdd = function() {
            var container = L.DomUtil.create('div', 'legend-control-container');
            container.innerHTML = {{ this.content_json }};
            return container;
          };
          legend.addTo({{ this._parent.get_name() }});
        })();
        {% endmacro %}
        """
    )

    def __init__(self, svg: str, title: str = "Number of mines", position: str = "bottomright"):
        super().__init__()
        self._name = "LegendControl"
        self.svg = svg
        content = f'<p class="temporalLegend">{html.escape(title)}</p>{svg}'
        self.content_json = json.dumps(content).replace('</', '<\\/')
        self.position_json = json.dumps(position)


def attach_legend(map_obj, stats: GlobalStats, anchor: float, settings) -> LegendControl:
    """Draw the legend once; it reflects all years, not the selected one."""
    circles = legend_circles(stats, anchor, base_height=settings.legend_base_height)
    svg = legend_svg(circles, base_height=settings.legend_base_height, fill_color=settings.legend_fill_color)
    control = LegendControl(svg, title="Number of mines (all years)", position=settings.legend_position)
    map_obj.add_child(control)
    return control
