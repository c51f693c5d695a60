import pytest

from minemap.attributes import attribute_year, extract_attributes, missing_attributes
from minemap.errors import SchemaError


def test_extract_attributes_in_schema_order(mine_dataset, attributes):
    result = extract_attributes(mine_dataset.features)
    assert result == attributes
    assert len(result) == 9


def test_extract_attributes_skips_non_mine_keys():
    features = [{"props": {"State": "Ohio", "FIPS": "39", "Mine_2010": 1, "Mine_2009": 2}}]
    assert extract_attributes(features) == ["Mine_2010", "Mine_2009"]


def test_extract_attributes_empty_dataset():
    with pytest.raises(SchemaError):
        extract_attributes([])


def test_extract_attributes_without_matches():
    with pytest.raises(SchemaError):
        extract_attributes([{"props": {"State": "Ohio", "Count": 3}}])


def test_attribute_year():
    assert attribute_year("Mine_2009") == "2009"
    assert attribute_year("Coal_Mine_2015") == "2015"


def test_missing_attributes():
    features = [
        {"id": "state-0", "props": {"Mine_2007": 1, "Mine_2008": 2}},
        {"id": "state-1", "props": {"Mine_2007": 1, "Mine_2008": None}},
        {"id": "state-2", "props": {"Mine_2008": 4}},
    ]
    assert missing_attributes(features, ["Mine_2007", "Mine_2008"]) == {
        "state-1": ["Mine_2008"],
        "state-2": ["Mine_2007"],
    }
