import html
import math
from typing import Any, Dict, List, Tuple

from .attributes import attribute_year
from .config import NAME_PROPERTY


def _esc(value: Any) -> str:
    """HTML-escape arbitrary user data for popup output."""
    if value is None:
        return ""
    escaped = html.escape(str(value))
    # Prevent Jinja from treating brace sequences like {{ }} or {% %} as template tags
    return escaped.replace('{', '&#123;').replace('}', '&#125;')


def format_value(value: Any) -> str:
    """Integral numbers print without a decimal point; missing values print 'n/a'."""
    if value is None:
        return "n/a"
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float)):
        if isinstance(value, float):
            if math.isnan(value):
                return "n/a"
            if value.is_integer():
                return str(int(value))
        return str(value)
    return str(value)


def _popup_pairs(props: Dict[str, Any], attribute: str) -> List[Tuple[str, str]]:
    year = attribute_year(attribute)
    return [
        ("State", str(props.get(NAME_PROPERTY) or "")),
        (f"Number of mines in {year}", format_value(props.get(attribute))),
    ]


def format_popup(props: Dict[str, Any], attribute: str) -> str:
    """Plain-text popup: 'State: <name>' and 'Number of mines in <year>: <value>' on two lines."""
    return "\n".join(f"{label}: {value}" for label, value in _popup_pairs(props, attribute))


def popup_html(props: Dict[str, Any], attribute: str) -> str:
    return "".join(
        f"<p><b>{_esc(label)}:</b> {_esc(value)}</p>"
        for label, value in _popup_pairs(props, attribute)
    )
