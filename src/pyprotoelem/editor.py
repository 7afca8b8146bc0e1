"""Configuration-save workflows: register create/edit/remove and element dictionary edits."""

import logging
import uuid
from dataclasses import replace
from typing import Any

from .address import validate_register
from .codec import quantity_for_data_type, to_data_type
from .config import check_register_fields
from .dictmap import bool_labels, clean_dict_items, parse_dict_config, parse_map_type
from .errors import ConfigError
from .types import DataType, MapType, ModbusConfig, ModbusRegister, RegisterType, SL651Config

logger = logging.getLogger(__name__)


def new_id() -> str:
    """Collision-resistant id for a new element or register."""
    return str(uuid.uuid4())


def _build_register(
    register_id: str,
    fields: dict[str, Any],
    previous: ModbusRegister | None = None,
) -> ModbusRegister:
    try:
        register_type = RegisterType(fields["registerType"])
    except KeyError:
        raise ConfigError("registerType is required") from None
    except ValueError:
        raise ConfigError(f"Unknown registerType: {fields['registerType']!r}") from None
    if "address" not in fields or "name" not in fields or "dataType" not in fields:
        raise ConfigError("name, address and dataType are required")
    data_type = to_data_type(fields["dataType"])
    try:
        address = int(fields["address"])
    except (TypeError, ValueError):
        raise ConfigError(f"address must be an integer, got {fields['address']!r}") from None
    quantity = quantity_for_data_type(data_type)
    check_register_fields(register_type, address, data_type, quantity, f"register {fields['name']!r}")

    if data_type == DataType.BOOL:
        dict_config = bool_labels(fields.get("boolLabel0"), fields.get("boolLabel1"))
    elif "dictConfig" in fields:
        raw = fields["dictConfig"]
        dict_config = parse_dict_config(raw, MapType.VALUE) if raw else None
    else:
        # non-BOOL registers keep the dictionary they already had
        dict_config = previous.dict_config if previous is not None else None

    try:
        return ModbusRegister(
            id=register_id,
            name=str(fields["name"]),
            register_type=register_type,
            address=address,
            data_type=data_type,
            quantity=quantity,
            unit=fields.get("unit") or None,
            decimals=None if fields.get("decimals") is None else int(fields["decimals"]),
            dict_config=dict_config,
            remark=fields.get("remark") or None,
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(str(e)) from None


def add_register(config: ModbusConfig, fields: dict[str, Any]) -> tuple[ModbusConfig, ModbusRegister]:
    """
    Append a register to a Modbus configuration.

    fields uses the document's camelCase names (name, registerType, address,
    dataType, unit, decimals, remark, dictConfig, and boolLabel0/boolLabel1 for
    BOOL registers). quantity is derived from dataType. Raises ConfigError when
    the register type cannot hold the data type, and AddressOverflowError or
    AddressConflictError before anything is added.
    """
    register = _build_register(new_id(), fields)
    validate_register(config.registers, register)
    logger.debug("Adding register %s (%s)", register.name, register.id)
    return replace(config, registers=config.registers + (register,)), register


def update_register(
    config: ModbusConfig,
    register_id: str,
    fields: dict[str, Any],
) -> tuple[ModbusConfig, ModbusRegister]:
    """Replace a register in place; it is never checked against its own previous span."""
    previous = next((r for r in config.registers if r.id == register_id), None)
    if previous is None:
        raise ConfigError(f"Unknown register id: {register_id!r}")
    register = _build_register(register_id, fields, previous)
    validate_register(config.registers, register, exclude_id=register_id)
    logger.debug("Updating register %s (%s)", register.name, register.id)
    registers = tuple(register if r.id == register_id else r for r in config.registers)
    return replace(config, registers=registers), register


def remove_register(config: ModbusConfig, register_id: str) -> ModbusConfig:
    registers = tuple(r for r in config.registers if r.id != register_id)
    if len(registers) == len(config.registers):
        raise ConfigError(f"Unknown register id: {register_id!r}")
    return replace(config, registers=registers)


def set_element_dict(
    config: SL651Config,
    func_id: str,
    element_id: str,
    map_type: MapType | str,
    raw_items: list[Any] | None,
) -> SL651Config:
    """
    Save an SL651 element's dictionary from editor rows.

    Incomplete rows are discarded (see clean_dict_items), the rest is validated
    strictly. When no row survives, the element's dictionary is removed.
    """
    mt = parse_map_type(map_type)
    items = clean_dict_items(mt, raw_items)
    dict_config = parse_dict_config({"mapType": mt.value, "items": items}) if items else None

    found = False
    funcs = []
    for func in config.funcs:
        if func.id != func_id:
            funcs.append(func)
            continue
        elements = []
        for el in func.elements:
            if el.id == element_id:
                found = True
                el = replace(el, dict_config=dict_config)
            elements.append(el)
        funcs.append(replace(func, elements=tuple(elements)))
    if not found:
        raise ConfigError(f"Unknown element {element_id!r} in function {func_id!r}")
    logger.debug("Element %s dictionary saved with %d items", element_id, len(items))
    return replace(config, funcs=tuple(funcs))
