"""Data keys joining configuration elements with telemetry, and alert-editor element options."""

from typing import Any, Iterator

from .errors import ConfigError
from .types import (
    ElementOption,
    MapType,
    ModbusConfig,
    ModbusRegister,
    ProtocolConfig,
    ProtocolType,
    RegisterType,
    SL651Config,
    SL651Element,
    SL651EncodeType,
    SL651Func,
)


def to_protocol(protocol: Any) -> ProtocolType:
    try:
        return ProtocolType(protocol)
    except ValueError:
        raise ConfigError(f"Unknown protocol: {protocol!r}") from None


def sl651_key(func_code: str, guide_hex: str) -> str:
    """"{funcCode}_{guideHex}" exactly as stored; the uplink parser emits the same key."""
    return f"{func_code}_{guide_hex}"


def modbus_key(register_type: RegisterType | str, address: int) -> str:
    """"{registerType}_{address}" with the address in plain decimal."""
    rt = register_type.value if isinstance(register_type, RegisterType) else register_type
    return f"{rt}_{int(address)}"


def element_key(
    protocol: ProtocolType | str,
    element: SL651Element | ModbusRegister,
    func: SL651Func | None = None,
) -> str:
    """Data key of an element; SL651 elements need their owning function."""
    proto = to_protocol(protocol)
    if proto == ProtocolType.SL651:
        if func is None or not isinstance(element, SL651Element):
            raise ConfigError("SL651 element key needs the element and its function")
        return sl651_key(func.func_code, element.guide_hex)
    if not isinstance(element, ModbusRegister):
        raise ConfigError("Modbus element key needs a register")
    return modbus_key(element.register_type, element.address)


def iter_element_keys(
    protocol: ProtocolType | str,
    config: ProtocolConfig,
) -> Iterator[tuple[str, SL651Element | ModbusRegister]]:
    """(key, element) pairs in configuration order."""
    proto = to_protocol(protocol)
    if proto == ProtocolType.SL651:
        if not isinstance(config, SL651Config):
            raise ConfigError("SL651 protocol needs an SL651Config")
        for func in config.funcs:
            for el in func.elements:
                yield sl651_key(func.func_code, el.guide_hex), el
        return
    if not isinstance(config, ModbusConfig):
        raise ConfigError("Modbus protocol needs a ModbusConfig")
    for reg in config.registers:
        yield modbus_key(reg.register_type, reg.address), reg


def element_options(protocol: ProtocolType | str, config: ProtocolConfig) -> list[ElementOption]:
    """
    Alert-condition targets for a configuration.

    SL651 elements carry their dictionary only when encoded as DICT; Modbus
    registers carry a VALUE dictionary when it has items.
    """
    options: list[ElementOption] = []
    for key, el in iter_element_keys(protocol, config):
        dc = el.dict_config
        show_dict = dc is not None and bool(dc.items)
        if isinstance(el, SL651Element) and el.encode != SL651EncodeType.DICT:
            show_dict = False
        if show_dict and dc is not None:
            map_type = dc.map_type if isinstance(el, SL651Element) else MapType.VALUE
            options.append(ElementOption(value=key, label=el.name, dict_map_type=map_type, dict_items=dc.items))
        else:
            options.append(ElementOption(value=key, label=el.name))
    return options
