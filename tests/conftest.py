import json

import matplotlib

matplotlib.use("Agg")

import pytest

YEARS = list(range(2007, 2016))

STATES = [
    ("Ohio", -82.9, 40.4),
    ("Kentucky", -84.3, 37.8),
    ("Nevada", -116.6, 39.3),
]


def make_feature(name, lon, lat, values):
    props = {"State": name}
    props.update(values)
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
        "properties": props,
    }


def make_collection(features):
    return {"type": "FeatureCollection", "features": features}


@pytest.fixture
def mine_collection():
    features = []
    for i, (name, lon, lat) in enumerate(STATES):
        values = {f"Mine_{year}": (i + 1) * 10 + (year - 2007) for year in YEARS}
        features.append(make_feature(name, lon, lat, values))
    return make_collection(features)


@pytest.fixture
def write_geojson(tmp_path):
    def _write(collection, name="NumMines.geojson"):
        path = tmp_path / name
        path.write_text(json.dumps(collection), encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture
def mine_geojson(mine_collection, write_geojson):
    return write_geojson(mine_collection)


@pytest.fixture
def mine_dataset(mine_geojson):
    from minemap.loader import load_geojson
    return load_geojson(mine_geojson)


@pytest.fixture
def attributes():
    return [f"Mine_{year}" for year in YEARS]
