"""
sequence.py
Year sequence state and the slider/step control.

SequenceController holds the selected attribute index (single source of truth) and
notifies listeners synchronously after every transition. SequenceControl emits the
matching Leaflet control: a plain L.control() descriptor with an onAdd function,
a range slider, reverse/forward buttons and a year label. In the browser it applies
the same wraparound/clamp rules and restyles existing markers from the precomputed
symbol table.
"""

import json
import math
from typing import Any, Callable, Dict, List, Optional

from branca.element import MacroElement
from jinja2 import Template as JinjaTemplate

from .attributes import attribute_year
from .errors import SchemaError

Listener = Callable[[int, str], None]


class SequenceController:
    def __init__(self, attributes: List[str], start_index: int = 0):
        if not attributes:
            raise SchemaError("Sequence requires at least one attribute.")
        self.attributes = list(attributes)
        self._listeners: List[Listener] = []
        self._index = self._clamp(start_index)

    def __len__(self) -> int:
        return len(self.attributes)

    @property
    def index(self) -> int:
        return self._index

    @property
    def attribute(self) -> str:
        return self.attributes[self._index]

    @property
    def year(self) -> str:
        return attribute_year(self.attribute)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _clamp(self, value: Any) -> int:
        try:
            num = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Sequence index must be numeric, got {value!r}") from exc
        if math.isnan(num):
            raise ValueError("Sequence index must not be NaN.")
        num = min(max(num, 0), len(self.attributes) - 1)
        return int(num)

    def _transition(self, index: int) -> int:
        self._index = index
        attribute = self.attribute
        for listener in list(self._listeners):
            listener(index, attribute)
        return index

    def forward(self) -> int:
        """Step to the next attribute, wrapping from the last to the first."""
        return self._transition((self._index + 1) % len(self.attributes))

    def reverse(self) -> int:
        """Step to the previous attribute, wrapping from the first to the last."""
        n = len(self.attributes)
        return self._transition((self._index - 1 + n) % n)

    def seek(self, value: Any) -> int:
        """Jump to a slider position; out-of-range positions are clamped."""
        return self._transition(self._clamp(value))

    def step(self, direction: str) -> int:
        if direction == "forward":
            return self.forward()
        if direction == "reverse":
            return self.reverse()
        raise ValueError(f"Unknown step direction: {direction!r}")


class SequenceControl(MacroElement):
    _template = JinjaTemplate(
        """
        {% macro header(this, kwargs) %}
        <style>
          .sequence-control-container {
            background: rgba(255,255,255,0.92);
            padding: 6px 10px;
            border-radius: 6px;
            box-shadow: 0 1px 4px rgba(0,0,0,0.2);
            font-size: 13px;
          }
          .sequence-control-container .range-slider { width: 220px; vertical-align: middle; }
          .sequence-control-container .step { margin-left: 4px; cursor: pointer; }
          .sequence-control-container .year { margin-left: 8px; font-weight: 600; }
        </style>
        {% endmacro %}

        {% macro script(this, kwargs) %}
        (function() {
          var map = {{ this._parent.get_name() }};
          var years = {{ this.years_json }};
          var symbols = {{ this.symbols_json }};
          var count = years.length;
          var index = {{ this.controller.index }};
          var slider = null;
          var label = null;
          function restyle(i) {
            symbols.forEach(function(entry) {
              var layer = window[entry.layer];
              var r = entry.radii[i];
              if (!layer || r === null || typeof r === 'undefined') {
                return;
              }
              layer.setRadius(r);
              var popup = layer.getPopup && layer.getPopup();
              if (popup && entry.popups[i] !== null) {
                popup.setContent(entry.popups[i]).update();
              }
            });
          }
          function select(i) {
            index = i;
            slider.value = index;
            label.textContent = years[index];
            restyle(index);
          }
          var control = L.control({position: {{ this.position_json }}});
          control.onAdd = function() {
            var container = L.DomUtil.create('div', 'sequence-control-container');
            slider = L.DomUtil.create('input', 'range-slider', container);
            slider.type = 'range';
            slider.min = 0;
            slider.max = count - 1;
            slider.step = 1;
            slider.value = index;
            var reverse = L.DomUtil.create('button', 'step', container);
            reverse.id = 'reverse';
            reverse.title = 'Reverse';
            reverse.innerHTML = '&#9664;';
            var forward = L.DomUtil.create('button', 'step', container);
            forward.id = 'forward';
            forward.title = 'Forward';
            forward.innerHTML = '&#9654;';
            label = L.DomUtil.create('span', 'year', container);
            label.textContent = years[index];
            L.DomEvent.disableClickPropagation(container);
            L.DomEvent.on(reverse, 'click', function() {
              select((index - 1 + count) % count);
            });
            L.DomEvent.on(forward, 'click', function() {
              select((index + 1) % count);
            });
            L.DomEvent.on(slider, 'input', function() {
              var v = parseInt(slider.value, 10);
              if (isNaN(v)) {
                return;
              }
              select(Math.max(0, Math.min(count - 1, v)));
            });
            return container;
          };
          control.addTo(map);
        })();
        {% endmacro %}
        """
    )

    def __init__(
        self,
        controller: SequenceController,
        symbols: List[Dict[str, Any]],
        position: str = "bottomleft",
    ):
        super().__init__()
        self._name = "SequenceControl"
        # the page index is read from the controller when the page is rendered
        self.controller = controller
        self.years = [attribute_year(attr) for attr in controller.attributes]
        self.years_json = json.dumps(self.years)
        self.symbols_json = json.dumps(symbols, ensure_ascii=False).replace('</', '<\\/')
        self.position_json = json.dumps(position)


def attach_sequence_control(
    map_obj,
    controller: SequenceController,
    symbols: List[Dict[str, Any]],
    position: Optional[str] = None,
) -> SequenceControl:
    control = SequenceControl(
        controller,
        symbols,
        position=position or "bottomleft",
    )
    map_obj.add_child(control)
    return control
