"""Join a configuration snapshot with telemetry values by data key and decode each element."""

from dataclasses import dataclass
from typing import Any, Mapping

from .decoder import decode
from .keys import iter_element_keys
from .types import Display, ProtocolConfig, ProtocolType


@dataclass(frozen=True)
class RenderedElement:
    key: str
    name: str
    unit: str | None
    value: Any
    display: Display


def _split_value(entry: Any) -> tuple[Any, str | None]:
    # Telemetry entries are either the raw value or {"value": ..., "unit": ...}
    if isinstance(entry, Mapping):
        return entry.get("value"), entry.get("unit")
    return entry, None


def render_elements(
    protocol: ProtocolType | str,
    config: ProtocolConfig,
    values: Mapping[str, Any],
) -> list[RenderedElement]:
    """
    One RenderedElement per configured element, in configuration order.

    The element's configured unit wins over a unit carried by the telemetry
    entry. Elements with no value render the placeholder.
    """
    out: list[RenderedElement] = []
    for key, el in iter_element_keys(protocol, config):
        raw, feed_unit = _split_value(values.get(key))
        unit = el.unit or feed_unit
        out.append(
            RenderedElement(
                key=key,
                name=el.name,
                unit=unit,
                value=raw,
                display=decode(raw, unit, el.dict_config),
            )
        )
    return out
