"""Dictionary configs: load-time validation into ValueItem/BitItem, cleanup-on-save, JSON dump."""

import logging
import re
from typing import Any

from .errors import ConfigError, DuplicateDictItemError, InvalidDictItemError
from .types import (
    BitItem,
    DependencyCondition,
    DependencyOperator,
    DependsOn,
    DictConfig,
    DictItem,
    MapType,
    ValueItem,
)

logger = logging.getLogger(__name__)

# Bit index 0-31, no sign, no leading zeros
_BIT_INDEX_PATTERN = re.compile(r"^([0-9]|[1-2][0-9]|3[0-1])$")
_BIT_STATES = frozenset({"0", "1"})


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _parse_bit_index(raw: Any, index: int, what: str) -> int:
    s = _text(raw)
    if not _BIT_INDEX_PATTERN.match(s):
        raise InvalidDictItemError(index, f"{what} must be 0-31, got {raw!r}")
    return int(s)


def _parse_bit_state(raw: Any, index: int, what: str) -> int:
    s = _text(raw)
    if s not in _BIT_STATES:
        raise InvalidDictItemError(index, f"{what} must be '0' or '1', got {raw!r}")
    return int(s)


def _parse_depends_on(raw: Any, index: int) -> DependsOn | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise InvalidDictItemError(index, "dependsOn must be an object")
    op_raw = raw.get("operator") or "AND"
    try:
        operator = DependencyOperator(op_raw)
    except ValueError:
        raise InvalidDictItemError(index, f"Unknown dependsOn operator {op_raw!r}") from None
    conditions_raw = raw.get("conditions") or []
    if not isinstance(conditions_raw, list):
        raise InvalidDictItemError(index, "dependsOn.conditions must be a list")
    conditions: list[DependencyCondition] = []
    for cond in conditions_raw:
        if not isinstance(cond, dict):
            raise InvalidDictItemError(index, "dependsOn condition must be an object")
        conditions.append(
            DependencyCondition(
                bit_index=_parse_bit_index(cond.get("bitIndex"), index, "dependsOn bitIndex"),
                bit_value=_parse_bit_state(cond.get("bitValue"), index, "dependsOn bitValue"),
            )
        )
    return DependsOn(operator=operator, conditions=tuple(conditions))


def _parse_item(map_type: MapType, raw: Any, index: int) -> DictItem:
    if not isinstance(raw, dict):
        raise InvalidDictItemError(index, "item must be an object")
    key = _text(raw.get("key"))
    label = _text(raw.get("label"))
    if not key:
        raise InvalidDictItemError(index, "key is required")
    if not label:
        raise InvalidDictItemError(index, "label is required")

    if map_type == MapType.VALUE:
        if raw.get("dependsOn"):
            raise InvalidDictItemError(index, "VALUE items cannot declare dependsOn")
        return ValueItem(key=key, label=label)

    trigger_raw = raw.get("value")
    return BitItem(
        bit_index=_parse_bit_index(key, index, "bit index"),
        label=label,
        trigger=_parse_bit_state("1" if trigger_raw in (None, "") else trigger_raw, index, "trigger value"),
        depends_on=_parse_depends_on(raw.get("dependsOn"), index),
    )


def parse_map_type(raw: Any, default: MapType | None = None) -> MapType:
    if raw in (None, "") and default is not None:
        return default
    try:
        return MapType(raw)
    except ValueError:
        raise ConfigError(f"Unknown dictionary mapType: {raw!r}") from None


def parse_dict_config(raw: dict[str, Any], default_map_type: MapType | None = None) -> DictConfig:
    """
    Validate a JSON dictionary config ({mapType, items}) into a DictConfig.

    Raises InvalidDictItemError for incomplete or out-of-range items and
    DuplicateDictItemError for repeated VALUE keys or identical BIT items.
    default_map_type applies when mapType is absent (Modbus dictionaries).
    """
    if not isinstance(raw, dict):
        raise ConfigError("dictConfig must be an object")
    map_type = parse_map_type(raw.get("mapType"), default_map_type)
    items_raw = raw.get("items") or []
    if not isinstance(items_raw, list):
        raise ConfigError("dictConfig.items must be a list")

    items: list[DictItem] = []
    seen: set[Any] = set()
    for i, entry in enumerate(items_raw):
        item = _parse_item(map_type, entry, i)
        # BIT items may repeat a bit with another polarity or dependency
        ident = item.key if isinstance(item, ValueItem) else item
        if ident in seen:
            raise DuplicateDictItemError(i, item.key)
        seen.add(ident)
        items.append(item)
    return DictConfig(map_type=map_type, items=tuple(items))


def clean_dict_items(map_type: MapType | str, raw_items: list[Any] | None) -> list[dict[str, Any]]:
    """
    Cleanup-on-save for edited dictionary rows.

    Rows whose trimmed key or label is empty are dropped without error; they are
    the blank or half-filled rows an operator leaves in the editor. BIT rows keep
    their trigger value (default "1"), conditions without a bitIndex are dropped,
    and dependsOn is omitted when no condition remains. Everything returned still
    goes through parse_dict_config.
    """
    mt = parse_map_type(map_type)
    cleaned: list[dict[str, Any]] = []
    for row in raw_items or []:
        if not isinstance(row, dict):
            continue
        key = _text(row.get("key"))
        label = _text(row.get("label"))
        if not key or not label:
            logger.debug("Discarding incomplete dictionary row: %r", row)
            continue
        if mt == MapType.VALUE:
            cleaned.append({"key": key, "label": label})
            continue

        item: dict[str, Any] = {"key": key, "label": label, "value": _text(row.get("value")) or "1"}
        depends = row.get("dependsOn") if isinstance(row.get("dependsOn"), dict) else {}
        conditions = [
            {"bitIndex": _text(c.get("bitIndex")), "bitValue": _text(c.get("bitValue"))}
            for c in depends.get("conditions") or []
            if isinstance(c, dict)
            and c.get("bitIndex") is not None
            and c.get("bitValue") is not None
            and _text(c.get("bitIndex")) != ""
        ]
        if conditions:
            item["dependsOn"] = {"operator": depends.get("operator") or "AND", "conditions": conditions}
        cleaned.append(item)
    return cleaned


def dump_dict_item(item: DictItem) -> dict[str, Any]:
    if isinstance(item, ValueItem):
        return {"key": item.key, "label": item.label}
    out: dict[str, Any] = {"key": item.key, "label": item.label, "value": str(item.trigger)}
    if item.depends_on is not None:
        out["dependsOn"] = {
            "operator": item.depends_on.operator.value,
            "conditions": [
                {"bitIndex": str(c.bit_index), "bitValue": str(c.bit_value)}
                for c in item.depends_on.conditions
            ],
        }
    return out


def dump_dict_config(config: DictConfig, include_map_type: bool = True) -> dict[str, Any]:
    """JSON-shaped dictionary; Modbus documents omit mapType."""
    out: dict[str, Any] = {}
    if include_map_type:
        out["mapType"] = config.map_type.value
    out["items"] = [dump_dict_item(item) for item in config.items]
    return out


def bool_labels(label0: str | None, label1: str | None) -> DictConfig | None:
    """VALUE dictionary for a BOOL register from its off/on labels; None when both are blank."""
    items = [
        ValueItem(key=key, label=label.strip())
        for key, label in (("0", label0), ("1", label1))
        if label and label.strip()
    ]
    if not items:
        return None
    return DictConfig(map_type=MapType.VALUE, items=tuple(items))
