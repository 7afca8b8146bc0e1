"""Tests for dictionary load-time validation, cleanup-on-save, and JSON dump."""

import pytest

from pyprotoelem.dictmap import bool_labels, clean_dict_items, dump_dict_config, parse_dict_config
from pyprotoelem.errors import ConfigError, DuplicateDictItemError, InvalidDictItemError
from pyprotoelem.types import BitItem, DependencyOperator, MapType, ValueItem


def test_parse_value_dict() -> None:
    cfg = parse_dict_config({"mapType": "VALUE", "items": [{"key": "1", "label": "开启"}, {"key": 0, "label": "关闭"}]})
    assert cfg.map_type == MapType.VALUE
    assert cfg.items == (ValueItem("1", "开启"), ValueItem("0", "关闭"))


def test_parse_bit_dict_defaults() -> None:
    cfg = parse_dict_config({"mapType": "BIT", "items": [{"key": "7", "label": "alarm"}]})
    assert cfg.items == (BitItem(7, "alarm", trigger=1, depends_on=None),)


def test_parse_bit_dict_with_dependency() -> None:
    cfg = parse_dict_config(
        {
            "mapType": "BIT",
            "items": [
                {
                    "key": "3",
                    "label": "x",
                    "value": "0",
                    "dependsOn": {"operator": "OR", "conditions": [{"bitIndex": "1", "bitValue": "1"}]},
                }
            ],
        }
    )
    item = cfg.items[0]
    assert isinstance(item, BitItem)
    assert item.trigger == 0
    assert item.depends_on is not None
    assert item.depends_on.operator == DependencyOperator.OR
    assert item.depends_on.conditions[0].bit_index == 1
    assert item.depends_on.conditions[0].bit_value == 1


def test_missing_map_type_uses_default() -> None:
    cfg = parse_dict_config({"items": [{"key": "1", "label": "on"}]}, MapType.VALUE)
    assert cfg.map_type == MapType.VALUE


def test_missing_map_type_without_default_raises() -> None:
    with pytest.raises(ConfigError, match="mapType"):
        parse_dict_config({"items": []})


@pytest.mark.parametrize("key", ["32", "-1", "01", "a", "3.0"])
def test_bit_index_out_of_range_raises(key: str) -> None:
    with pytest.raises(InvalidDictItemError, match="bit index"):
        parse_dict_config({"mapType": "BIT", "items": [{"key": key, "label": "x"}]})


def test_bad_trigger_value_raises() -> None:
    with pytest.raises(InvalidDictItemError, match="trigger"):
        parse_dict_config({"mapType": "BIT", "items": [{"key": "1", "label": "x", "value": "2"}]})


def test_bad_dependency_bit_raises() -> None:
    raw = {
        "mapType": "BIT",
        "items": [{"key": "1", "label": "x", "dependsOn": {"conditions": [{"bitIndex": "40", "bitValue": "1"}]}}],
    }
    with pytest.raises(InvalidDictItemError) as exc_info:
        parse_dict_config(raw)
    assert exc_info.value.index == 0


@pytest.mark.parametrize("item", [{"key": "1"}, {"label": "x"}, {"key": " ", "label": "x"}, "1"])
def test_incomplete_item_raises(item: object) -> None:
    with pytest.raises(InvalidDictItemError):
        parse_dict_config({"mapType": "VALUE", "items": [item]})


def test_value_item_with_dependency_raises() -> None:
    raw = {
        "mapType": "VALUE",
        "items": [{"key": "1", "label": "x", "dependsOn": {"operator": "AND", "conditions": []}}],
    }
    with pytest.raises(InvalidDictItemError, match="dependsOn"):
        parse_dict_config(raw)


def test_duplicate_value_key_raises() -> None:
    with pytest.raises(DuplicateDictItemError) as exc_info:
        parse_dict_config({"mapType": "VALUE", "items": [{"key": "1", "label": "a"}, {"key": "1", "label": "b"}]})
    assert exc_info.value.index == 1
    assert exc_info.value.key == "1"


def test_bit_same_index_other_polarity_allowed() -> None:
    cfg = parse_dict_config(
        {"mapType": "BIT", "items": [{"key": "1", "label": "on", "value": "1"}, {"key": "1", "label": "off", "value": "0"}]}
    )
    assert len(cfg.items) == 2


def test_bit_identical_items_raise() -> None:
    with pytest.raises(DuplicateDictItemError):
        parse_dict_config({"mapType": "BIT", "items": [{"key": "1", "label": "a"}, {"key": "1", "label": "a"}]})


# ============================================================================
# Cleanup-on-save
# ============================================================================


def test_clean_drops_blank_rows() -> None:
    rows = [
        {"key": "1", "label": "on"},
        {"key": "", "label": "orphan"},
        {"key": "2", "label": "   "},
        {},
        None,
        {"key": " 3 ", "label": " three "},
    ]
    assert clean_dict_items("VALUE", rows) == [{"key": "1", "label": "on"}, {"key": "3", "label": "three"}]


def test_clean_bit_rows() -> None:
    rows = [
        {"key": "0", "label": "a", "dependsOn": {"operator": "OR", "conditions": [{"bitIndex": "", "bitValue": "1"}]}},
        {
            "key": "3",
            "label": "b",
            "value": "0",
            "dependsOn": {"conditions": [{"bitIndex": "1", "bitValue": "1"}, {"bitIndex": None, "bitValue": "0"}]},
        },
    ]
    assert clean_dict_items(MapType.BIT, rows) == [
        {"key": "0", "label": "a", "value": "1"},
        {
            "key": "3",
            "label": "b",
            "value": "0",
            "dependsOn": {"operator": "AND", "conditions": [{"bitIndex": "1", "bitValue": "1"}]},
        },
    ]


def test_clean_then_parse_still_validates() -> None:
    items = clean_dict_items("BIT", [{"key": "99", "label": "bad"}])
    with pytest.raises(InvalidDictItemError):
        parse_dict_config({"mapType": "BIT", "items": items})


def test_clean_empty() -> None:
    assert clean_dict_items("VALUE", None) == []


# ============================================================================
# Dump and BOOL labels
# ============================================================================


def test_dump_dict_config_round_trip() -> None:
    raw = {
        "mapType": "BIT",
        "items": [
            {"key": "0", "label": "a", "value": "1"},
            {
                "key": "3",
                "label": "b",
                "value": "0",
                "dependsOn": {"operator": "AND", "conditions": [{"bitIndex": "0", "bitValue": "1"}]},
            },
        ],
    }
    assert dump_dict_config(parse_dict_config(raw)) == raw


def test_dump_without_map_type() -> None:
    cfg = parse_dict_config({"mapType": "VALUE", "items": [{"key": "1", "label": "on"}]})
    assert dump_dict_config(cfg, include_map_type=False) == {"items": [{"key": "1", "label": "on"}]}


def test_bool_labels() -> None:
    cfg = bool_labels("停止", "运行")
    assert cfg is not None
    assert cfg.items == (ValueItem("0", "停止"), ValueItem("1", "运行"))
    only_on = bool_labels(None, "运行")
    assert only_on is not None and only_on.items == (ValueItem("1", "运行"),)
    assert bool_labels("", "  ") is None
