"""Dictionary decoding of raw telemetry values into display text or triggered bit labels."""

import logging
from functools import lru_cache
from typing import Any

from .codec import format_raw, format_with_unit, parse_raw_to_integer
from .errors import RawValueParseError
from .types import (
    BitItem,
    BitsDisplay,
    DependencyOperator,
    DependsOn,
    DictConfig,
    Display,
    MapType,
    TextDisplay,
    ValueItem,
)

logger = logging.getLogger(__name__)

PLACEHOLDER = "---"


def _bit(n: int, index: int) -> int:
    return (n >> index) & 1


def dependency_met(n: int, depends_on: DependsOn | None) -> bool:
    """
    Evaluate an item's dependsOn against n.

    AND needs every condition, OR needs at least one. An empty AND list is met
    and an empty OR list is not.
    """
    if depends_on is None:
        return True
    results = [_bit(n, c.bit_index) == c.bit_value for c in depends_on.conditions]
    if depends_on.operator == DependencyOperator.OR:
        return any(results)
    return all(results)


def _walk_bits(n: int, items: tuple[BitItem, ...]) -> list[str]:
    labels: list[str] = []
    for item in items:
        if not dependency_met(n, item.depends_on):
            continue
        if _bit(n, item.bit_index) == item.trigger:
            labels.append(item.label)
    return labels


def bit_labels(raw_value: Any, dict_config: DictConfig) -> list[str]:
    """Labels of triggered BIT items in declaration order; empty when raw_value does not parse."""
    if dict_config.map_type != MapType.BIT:
        return []
    try:
        n = parse_raw_to_integer(raw_value)
    except RawValueParseError:
        return []
    return _walk_bits(n, dict_config.items)  # type: ignore[arg-type]


def lookup_value_label(raw_value: Any, dict_config: DictConfig) -> str | None:
    """Label of the first VALUE item whose key equals the raw value text, or None."""
    text = format_raw(raw_value)
    for item in dict_config.items:
        if isinstance(item, ValueItem) and item.key == text:
            return item.label
    return None


def _is_absent(raw_value: Any) -> bool:
    return raw_value is None or raw_value == ""


def decode(raw_value: Any, unit: str | None, dict_config: DictConfig | None) -> Display:
    """
    Display representation of raw_value for an element with the given unit and dictionary.

    Returns TextDisplay for unmapped, absent or unparsable values and
    BitsDisplay when at least one BIT item triggers. Never raises.
    """
    if _is_absent(raw_value):
        return TextDisplay(PLACEHOLDER)

    if dict_config is None:
        return TextDisplay(format_with_unit(raw_value, unit))

    fallback = TextDisplay(format_with_unit(raw_value, unit))

    if dict_config.map_type == MapType.VALUE:
        label = lookup_value_label(raw_value, dict_config)
        return TextDisplay(label) if label is not None else fallback

    try:
        n = parse_raw_to_integer(raw_value)
    except RawValueParseError as e:
        logger.debug("BIT decode fell back to raw text: %s", e)
        return fallback
    labels = _walk_bits(n, dict_config.items)  # type: ignore[arg-type]
    if not labels:
        return fallback
    return BitsDisplay(tuple(labels))


class DictionaryDecoder:
    """
    Decoder bound to one element's dictionary and unit.

    Results are memoized per raw value; unhashable raw values are decoded
    without the cache.
    """

    def __init__(self, dict_config: DictConfig | None, unit: str | None = None, cache_size: int = 256) -> None:
        self._dict_config = dict_config
        self._unit = unit
        self._cached = lru_cache(maxsize=cache_size, typed=True)(self._decode)

    def _decode(self, raw_value: Any) -> Display:
        return decode(raw_value, self._unit, self._dict_config)

    def decode(self, raw_value: Any) -> Display:
        try:
            return self._cached(raw_value)
        except TypeError:
            return self._decode(raw_value)

    @property
    def dict_config(self) -> DictConfig | None:
        return self._dict_config

    @property
    def unit(self) -> str | None:
        return self._unit
