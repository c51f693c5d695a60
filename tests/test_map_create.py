import os

import pytest

from minemap.config import MapSettings
from minemap.errors import SchemaError
from minemap.loader import load_geojson
from minemap.map_create import MineMapSession, create_map
from minemap.stats import radius

from .conftest import make_collection, make_feature


def test_session_render_and_select(mine_dataset):
    session = MineMapSession(mine_dataset)
    assert session.anchor == 10
    assert session.years[0] == "2007" and session.years[-1] == "2015"
    session.render()
    assert session.controller.index == 0
    assert session.marker_set.radius_of("state-1") == pytest.approx(radius(20, 10))

    markers = dict(session.marker_set)
    session.step("forward")
    assert session.controller.index == 1
    assert session.marker_set.attribute == "Mine_2008"
    assert session.marker_set.radius_of("state-1") == pytest.approx(radius(21, 10))
    assert session.select(99) == 8
    assert session.marker_set.attribute == "Mine_2015"
    for fid, entry in session.marker_set.items():
        assert entry["marker"] is markers[fid]["marker"]


def test_saved_page_matches_selected_year(mine_dataset):
    session = MineMapSession(mine_dataset)
    session.render()
    session.select(5)
    html = session.map.get_root().render()
    assert session.controller.index == 5
    assert session.controller.year == "2012"
    assert "var index = 5;" in html
    assert "Number of mines in 2012" in session.marker_set.popup_of("state-0")

    session.step("reverse")
    html = session.map.get_root().render()
    assert "var index = 4;" in html
    assert "Number of mines in 2011" in session.marker_set.popup_of("state-0")


def test_session_requires_render(mine_dataset):
    with pytest.raises(RuntimeError):
        MineMapSession(mine_dataset).step("forward")


def test_zero_minimum_uses_anchor_floor(write_geojson):
    features = [
        make_feature("A", -90, 40, {"Mine_2007": 0, "Mine_2008": 4}),
        make_feature("B", -91, 41, {"Mine_2007": 2, "Mine_2008": 9}),
    ]
    session = MineMapSession(load_geojson(write_geojson(make_collection(features))))
    assert session.stats.min == 0
    assert session.anchor == 1.0
    session.render()
    assert session.marker_set.radius_of("state-0") >= 1.0


def test_schema_error_fails_before_render(write_geojson):
    features = [make_feature("A", -90, 40, {"Count": 3})]
    with pytest.raises(SchemaError):
        create_map(write_geojson(make_collection(features)), output_path="unused.html")


def test_empty_collection_raises(write_geojson, tmp_path):
    out = tmp_path / "empty.html"
    with pytest.raises(SchemaError):
        create_map(write_geojson(make_collection([])), output_path=str(out))
    assert not out.exists()


def test_create_map_writes_html(mine_geojson, tmp_path):
    out = tmp_path / "out" / "mines.html"
    result = create_map(mine_geojson, output_path=str(out), start_index=3)
    assert result["map_path"] == str(out)
    assert "error" not in result
    summary = result["summary"]
    assert summary["states"] == 3
    assert summary["start_year"] == "2010"
    assert summary["min"] == 10 and summary["max"] == 38
    assert result["settings"]["start_index"] == 3

    html = out.read_text(encoding="utf-8")
    assert "basemap.nationalmap.gov" in html
    assert "sequence-control-container" in html
    assert "attribute-legend" in html
    assert "Number of mines in 2010" in html
    assert "NumMines.geojson" in html


def test_create_map_default_output_next_to_input(mine_geojson):
    result = create_map(mine_geojson, show_summary=False)
    assert os.path.dirname(result["map_path"]) == os.path.dirname(os.path.abspath(mine_geojson))
    assert os.path.exists(result["map_path"])


def test_create_map_load_failure_writes_error_page(tmp_path):
    out = tmp_path / "broken.html"
    result = create_map(str(tmp_path / "missing.geojson"), output_path=str(out))
    assert "not found" in result["error"]
    assert result["summary"] == {}
    html = out.read_text(encoding="utf-8")
    assert "Map data could not be loaded." in html
    assert "sequence-control-container" not in html


def test_create_map_custom_settings(mine_geojson, tmp_path):
    settings = MapSettings(fill_color="#123456", zoom_start=4)
    result = create_map(mine_geojson, output_path=str(tmp_path / "m.html"), settings=settings)
    assert result["settings"]["fill_color"] == "#123456"
    assert "#123456" in (tmp_path / "m.html").read_text(encoding="utf-8")


def test_summary_panel_escapes_file_name(mine_collection, write_geojson, tmp_path):
    source = write_geojson(mine_collection, name="<mines>{{year}}.geojson")
    out = tmp_path / "escaped.html"
    create_map(source, output_path=str(out))
    html = out.read_text(encoding="utf-8")
    assert "&lt;mines&gt;&#123;&#123;year&#125;&#125;.geojson" in html
    assert "<mines>" not in html
