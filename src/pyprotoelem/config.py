"""Load device-type configuration documents (JSON-shaped) into typed snapshots, and dump them back."""

import json
import logging
from pathlib import Path
from typing import Any

from .address import MAX_ADDRESS, validate_register
from .codec import quantity_for_data_type, to_data_type
from .dictmap import dump_dict_config, parse_dict_config
from .errors import ConfigError
from .keys import modbus_key, to_protocol
from .types import (
    ByteOrder,
    DataType,
    MapType,
    ModbusConfig,
    ModbusRegister,
    ProtocolConfig,
    ProtocolType,
    RegisterType,
    SL651Config,
    SL651Direction,
    SL651Element,
    SL651ElementOption,
    SL651EncodeType,
    SL651Func,
)

logger = logging.getLogger(__name__)

MAX_QUANTITY = 125
MAX_DIGITS = 8
READ_INTERVAL_RANGE = (1, 3600)

_BIT_REGISTER_TYPES = frozenset({RegisterType.COIL, RegisterType.DISCRETE_INPUT})


def _require(raw: dict[str, Any], name: str, where: str) -> Any:
    value = raw.get(name)
    if value is None or value == "":
        raise ConfigError(f"{where}: missing {name!r}")
    return value


def _enum(enum_cls: Any, value: Any, where: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        raise ConfigError(f"{where}: unknown {enum_cls.__name__} {value!r}") from None


def _int(value: Any, name: str, where: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{where}: {name} must be an integer, got {value!r}") from None


def _optional_str(value: Any) -> str | None:
    return str(value) if value not in (None, "") else None


def check_register_fields(
    register_type: RegisterType,
    address: int,
    data_type: DataType,
    quantity: int,
    where: str = "register",
) -> None:
    """
    Save-time rules for one register, raising ConfigError.

    Coils and discrete inputs hold BOOL only, holding and input registers never
    do. address must fit 0-65535 and quantity 1-125 (one Modbus read).
    """
    if register_type in _BIT_REGISTER_TYPES and data_type != DataType.BOOL:
        raise ConfigError(f"{where}: {register_type.value} only supports BOOL, got {data_type.value}")
    if register_type not in _BIT_REGISTER_TYPES and data_type == DataType.BOOL:
        raise ConfigError(f"{where}: {register_type.value} does not support BOOL")
    if not 0 <= address <= MAX_ADDRESS:
        raise ConfigError(f"{where}: address {address} out of range (0-{MAX_ADDRESS})")
    if not 1 <= quantity <= MAX_QUANTITY:
        raise ConfigError(f"{where}: quantity {quantity} out of range (1-{MAX_QUANTITY})")


def parse_register(raw: dict[str, Any]) -> ModbusRegister:
    """
    Build a ModbusRegister from a JSON entry.

    quantity defaults to the data type's register count; id defaults to the
    data key for hand-written documents. Modbus dictionaries are VALUE maps.
    """
    if not isinstance(raw, dict):
        raise ConfigError("register entry must be an object")
    where = f"register {raw.get('name')!r}"
    register_type = _enum(RegisterType, _require(raw, "registerType", where), where)
    address = _int(_require(raw, "address", where), "address", where)
    data_type = to_data_type(_require(raw, "dataType", where))
    quantity_raw = raw.get("quantity")
    quantity = quantity_for_data_type(data_type) if quantity_raw is None else _int(quantity_raw, "quantity", where)
    check_register_fields(register_type, address, data_type, quantity, where)
    decimals_raw = raw.get("decimals")
    dict_raw = raw.get("dictConfig")
    try:
        return ModbusRegister(
            id=str(raw.get("id") or modbus_key(register_type, address)),
            name=str(_require(raw, "name", where)),
            register_type=register_type,
            address=address,
            data_type=data_type,
            quantity=quantity,
            unit=_optional_str(raw.get("unit")),
            decimals=None if decimals_raw is None else _int(decimals_raw, "decimals", where),
            dict_config=parse_dict_config(dict_raw, MapType.VALUE) if dict_raw else None,
            remark=_optional_str(raw.get("remark")),
        )
    except ValueError as e:
        raise ConfigError(f"{where}: {e}") from None


def parse_element(raw: dict[str, Any]) -> SL651Element:
    if not isinstance(raw, dict):
        raise ConfigError("element entry must be an object")
    where = f"element {raw.get('name')!r}"
    guide_hex = str(_require(raw, "guideHex", where))
    dict_raw = raw.get("dictConfig")
    options = tuple(
        SL651ElementOption(label=str(o.get("label", "")), value=str(o.get("value", "")))
        for o in raw.get("options") or []
        if isinstance(o, dict)
    )
    length = _int(raw.get("length", 0), "length", where)
    if length < 1:
        raise ConfigError(f"{where}: length must be >= 1, got {length}")
    digits = _int(raw.get("digits", 0), "digits", where)
    if not 0 <= digits <= MAX_DIGITS:
        raise ConfigError(f"{where}: digits must be 0-{MAX_DIGITS}, got {digits}")
    return SL651Element(
        id=str(raw.get("id") or guide_hex),
        name=str(_require(raw, "name", where)),
        guide_hex=guide_hex,
        encode=_enum(SL651EncodeType, _require(raw, "encode", where), where),
        length=length,
        digits=digits,
        unit=_optional_str(raw.get("unit")),
        remark=_optional_str(raw.get("remark")),
        options=options,
        dict_config=parse_dict_config(dict_raw) if dict_raw else None,
    )


def _unique_guide_hex(elements: tuple[SL651Element, ...], where: str) -> tuple[SL651Element, ...]:
    seen: set[str] = set()
    for el in elements:
        if el.guide_hex in seen:
            raise ConfigError(f"{where}: duplicate guideHex {el.guide_hex!r}")
        seen.add(el.guide_hex)
    return elements


def parse_func(raw: dict[str, Any]) -> SL651Func:
    """Build an SL651Func; guideHex must be unique among its elements (and among its response elements)."""
    if not isinstance(raw, dict):
        raise ConfigError("function entry must be an object")
    where = f"function {raw.get('funcCode')!r}"
    func_code = str(_require(raw, "funcCode", where))
    return SL651Func(
        id=str(raw.get("id") or func_code),
        func_code=func_code,
        direction=_enum(SL651Direction, raw.get("dir") or "UP", where),
        name=str(raw.get("name") or func_code),
        elements=_unique_guide_hex(tuple(parse_element(e) for e in raw.get("elements") or []), where),
        response_elements=_unique_guide_hex(
            tuple(parse_element(e) for e in raw.get("responseElements") or []), f"{where} response"
        ),
        remark=_optional_str(raw.get("remark")),
    )


def parse_modbus_config(data: dict[str, Any]) -> ModbusConfig:
    read_interval = None if data.get("readInterval") is None else _int(data["readInterval"], "readInterval", "config")
    low, high = READ_INTERVAL_RANGE
    if read_interval is not None and not low <= read_interval <= high:
        raise ConfigError(f"config: readInterval must be {low}-{high} seconds, got {read_interval}")
    return ModbusConfig(
        byte_order=_enum(ByteOrder, data.get("byteOrder") or "BIG_ENDIAN", "config"),
        read_interval=read_interval,
        registers=tuple(parse_register(r) for r in data.get("registers") or []),
    )


def parse_sl651_config(data: dict[str, Any]) -> SL651Config:
    funcs = tuple(parse_func(f) for f in data.get("funcs") or [])
    # funcCode + guideHex is the data key, so both must be unique
    seen: dict[str, SL651Func] = {}
    for func in funcs:
        if func.func_code in seen:
            raise ConfigError(f"function {func.func_code!r}: duplicate funcCode (already used by {seen[func.func_code].name!r})")
        seen[func.func_code] = func
    return SL651Config(
        response_mode=_optional_str(data.get("responseMode")),
        funcs=funcs,
    )


def load_config(protocol: ProtocolType | str, data: dict[str, Any]) -> ProtocolConfig:
    """Validate a configuration document once and return its typed snapshot."""
    if not isinstance(data, dict):
        raise ConfigError("configuration document must be an object")
    proto = to_protocol(protocol)
    if proto == ProtocolType.SL651:
        config: ProtocolConfig = parse_sl651_config(data)
        logger.debug("SL651 config loaded: %d funcs", len(config.funcs))
    else:
        config = parse_modbus_config(data)
        logger.debug("Modbus config loaded: %d registers", len(config.registers))
    return config


def load_config_file(path: str | Path, protocol: ProtocolType | str | None = None) -> tuple[ProtocolType, ProtocolConfig]:
    """
    Load a configuration file.

    The file holds either {"protocol": ..., "config": {...}} or the bare config
    document, in which case protocol must be given or is inferred from the
    presence of "registers" (Modbus) or "funcs" (SL651).
    """
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found: {p}") from None
    except json.JSONDecodeError as e:
        raise ConfigError(f"{p}: invalid JSON: {e}") from None

    if isinstance(data, dict) and isinstance(data.get("config"), dict):
        protocol = protocol or data.get("protocol")
        data = data["config"]
    if protocol is None:
        if isinstance(data, dict) and "registers" in data:
            protocol = ProtocolType.MODBUS
        elif isinstance(data, dict) and "funcs" in data:
            protocol = ProtocolType.SL651
        else:
            raise ConfigError(f"{p}: cannot tell the protocol, pass it explicitly")
    proto = to_protocol(protocol)
    return proto, load_config(proto, data)


def validate_modbus_config(config: ModbusConfig) -> None:
    """Check every register against the ones stored before it (overflow, then overlap)."""
    for i, reg in enumerate(config.registers):
        validate_register(config.registers[:i], reg)


def dump_register(reg: ModbusRegister) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": reg.id,
        "name": reg.name,
        "registerType": reg.register_type.value,
        "address": reg.address,
        "dataType": reg.data_type.value,
        "quantity": reg.quantity,
    }
    if reg.unit is not None:
        out["unit"] = reg.unit
    if reg.decimals is not None:
        out["decimals"] = reg.decimals
    if reg.dict_config is not None:
        out["dictConfig"] = dump_dict_config(reg.dict_config, include_map_type=False)
    if reg.remark is not None:
        out["remark"] = reg.remark
    return out


def dump_element(el: SL651Element) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": el.id,
        "name": el.name,
        "guideHex": el.guide_hex,
        "encode": el.encode.value,
        "length": el.length,
        "digits": el.digits,
    }
    if el.unit is not None:
        out["unit"] = el.unit
    if el.remark is not None:
        out["remark"] = el.remark
    if el.options:
        out["options"] = [{"label": o.label, "value": o.value} for o in el.options]
    if el.dict_config is not None:
        out["dictConfig"] = dump_dict_config(el.dict_config)
    return out


def dump_config(config: ProtocolConfig) -> dict[str, Any]:
    """JSON-shaped document with the configuration store's camelCase field names."""
    if isinstance(config, ModbusConfig):
        out: dict[str, Any] = {"byteOrder": config.byte_order.value}
        if config.read_interval is not None:
            out["readInterval"] = config.read_interval
        out["registers"] = [dump_register(r) for r in config.registers]
        return out
    funcs = []
    for func in config.funcs:
        f: dict[str, Any] = {
            "id": func.id,
            "funcCode": func.func_code,
            "dir": func.direction.value,
            "name": func.name,
            "elements": [dump_element(e) for e in func.elements],
        }
        if func.response_elements:
            f["responseElements"] = [dump_element(e) for e in func.response_elements]
        if func.remark is not None:
            f["remark"] = func.remark
        funcs.append(f)
    out = {"funcs": funcs}
    if config.response_mode is not None:
        out["responseMode"] = config.response_mode
    return out
