import folium
import pytest

from minemap import symbols
from minemap.config import MapSettings
from minemap.stats import MIN_MARKER_RADIUS, radius, radius_table


@pytest.fixture
def rendered(mine_dataset, attributes):
    m = folium.Map(location=[38, -95], zoom_start=5, tiles=None)
    marker_set = symbols.render_all(m, mine_dataset.features, attributes, 0, 10.0, MapSettings())
    return m, marker_set


def test_render_all_creates_one_marker_per_feature(rendered):
    m, marker_set = rendered
    assert list(marker_set) == ["state-0", "state-1", "state-2"]
    assert marker_set.attribute == "Mine_2007"
    assert marker_set.radius_of("state-0") == pytest.approx(radius(10, 10))
    assert marker_set.radius_of("state-1") == pytest.approx(radius(20, 10))
    assert "Number of mines in 2007:</b> 10" in marker_set.popup_of("state-0")


def test_render_all_style(rendered):
    _, marker_set = rendered
    opts = marker_set.marker("state-0").options
    # folium stores options camelCase in older releases, snake_case in newer ones
    assert opts.get("fillColor", opts.get("fill_color")) == "#ff7800"
    assert opts["color"] == "#000"
    assert opts.get("fillOpacity", opts.get("fill_opacity")) == 0.8


def test_update_mutates_in_place(rendered, attributes):
    m, marker_set = rendered
    before = {fid: entry["marker"] for fid, entry in marker_set.items()}
    popups = {fid: entry["popup"] for fid, entry in marker_set.items()}
    skipped = symbols.update(marker_set, attributes, 8, 10.0)
    assert skipped == []
    assert marker_set.attribute == "Mine_2015"
    for fid, entry in marker_set.items():
        assert entry["marker"] is before[fid]
        assert entry["popup"] is popups[fid]
    assert marker_set.radius_of("state-2") == pytest.approx(radius(38, 10))
    assert "Number of mines in 2015:</b> 18" in marker_set.popup_of("state-0")
    html = m.get_root().render()
    assert "Number of mines in 2015" in html


def test_update_skips_missing_values(attributes):
    features = [
        {"id": "a", "lat": 40, "lon": -90, "props": {"State": "A", "Mine_2007": 10, "Mine_2008": 20}},
        {"id": "b", "lat": 41, "lon": -91, "props": {"State": "B", "Mine_2007": 12}},
    ]
    m = folium.Map(tiles=None)
    marker_set = symbols.render_all(m, features, ["Mine_2007", "Mine_2008"], 0, 10.0)
    old_radius = marker_set.radius_of("b")
    skipped = symbols.update(marker_set, ["Mine_2007", "Mine_2008"], 1, 10.0)
    assert skipped == ["b"]
    assert marker_set.radius_of("b") == old_radius
    assert "2007" in marker_set.popup_of("b")


def test_missing_initial_value_gets_floor_radius():
    features = [{"id": "a", "lat": 40, "lon": -90, "props": {"State": "A"}}]
    marker_set = symbols.render_all(folium.Map(tiles=None), features, ["Mine_2007"], 0, 10.0)
    assert marker_set.radius_of("a") == MIN_MARKER_RADIUS
    assert "n/a" in marker_set.popup_of("a")


def test_zero_value_drawn_at_floor():
    features = [{"id": "a", "lat": 40, "lon": -90, "props": {"State": "A", "Mine_2007": 0}}]
    marker_set = symbols.render_all(folium.Map(tiles=None), features, ["Mine_2007"], 0, 1.0)
    assert marker_set.radius_of("a") == MIN_MARKER_RADIUS


def test_symbol_table(rendered, attributes):
    _, marker_set = rendered
    table = symbols.symbol_table(marker_set, attributes, 10.0)
    assert len(table) == 3
    entry = table[0]
    assert entry["layer"] == marker_set.marker("state-0").get_name()
    assert len(entry["radii"]) == 9
    assert entry["radii"][1] == pytest.approx(radius(11, 10), abs=1e-4)
    assert "Number of mines in 2008:</b> 11" in entry["popups"][1]


def test_symbol_table_uses_radius_table(rendered, attributes, mine_dataset):
    _, marker_set = rendered
    table = symbols.symbol_table(marker_set, attributes, 10.0)
    expected = radius_table(mine_dataset.to_frame(attributes), 10.0)
    for row, entry in enumerate(table):
        assert entry["radii"] == pytest.approx(list(expected.iloc[row].round(4)), abs=1e-4)


def test_symbol_table_floor_and_gaps():
    features = [{"id": "a", "lat": 40, "lon": -90, "props": {"State": "A", "Mine_2007": 0, "Mine_2008": "x"}}]
    marker_set = symbols.render_all(folium.Map(tiles=None), features, ["Mine_2007", "Mine_2008"], 0, 1.0)
    table = symbols.symbol_table(marker_set, ["Mine_2007", "Mine_2008"], 1.0)
    assert table[0]["radii"] == [MIN_MARKER_RADIUS, None]
    assert table[0]["popups"][1] is None
    assert "Number of mines in 2007:</b> 0" in table[0]["popups"][0]
