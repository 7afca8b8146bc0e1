"""Scalar helpers: register count per data type, raw token to integer, raw value display text."""

import math
import re
from typing import Any

from pymodbus.client.mixin import ModbusClientMixin

from .errors import RawValueParseError, UnknownDataTypeError
from .types import DataType

# A string made only of hex digits is read as hex, so "12" means 18.
_HEX_PATTERN = re.compile(r"^(?:0[xX])?[0-9A-Fa-f]+$")
# Decimal with an optional fraction, which is truncated toward zero
_DECIMAL_PATTERN = re.compile(r"^([+-]?[0-9]+)(?:\.[0-9]+)?$")

_INT32_MIN = -(2**31)
_UINT32_MAX = 2**32 - 1

_MODBUS_DATATYPE: dict[DataType, ModbusClientMixin.DATATYPE] = {
    DataType.INT16: ModbusClientMixin.DATATYPE.INT16,
    DataType.UINT16: ModbusClientMixin.DATATYPE.UINT16,
    DataType.INT32: ModbusClientMixin.DATATYPE.INT32,
    DataType.UINT32: ModbusClientMixin.DATATYPE.UINT32,
    DataType.FLOAT32: ModbusClientMixin.DATATYPE.FLOAT32,
    DataType.INT64: ModbusClientMixin.DATATYPE.INT64,
    DataType.UINT64: ModbusClientMixin.DATATYPE.UINT64,
    DataType.DOUBLE: ModbusClientMixin.DATATYPE.FLOAT64,
}


def to_data_type(data_type: Any) -> DataType:
    """Coerce a data type name or member; raise UnknownDataTypeError otherwise."""
    try:
        return DataType(data_type)
    except ValueError:
        raise UnknownDataTypeError(data_type) from None


def modbus_datatype(data_type: Any) -> ModbusClientMixin.DATATYPE:
    """pymodbus DATATYPE used to convert the words of a register. BOOL reads as UINT16."""
    dt = to_data_type(data_type)
    if dt == DataType.BOOL:
        return ModbusClientMixin.DATATYPE.UINT16
    return _MODBUS_DATATYPE[dt]


def quantity_for_data_type(data_type: Any) -> int:
    """
    Number of 16-bit register units occupied by a value of data_type.

    BOOL/INT16/UINT16 -> 1, INT32/UINT32/FLOAT32 -> 2, INT64/UINT64/DOUBLE -> 4.
    Raises UnknownDataTypeError for anything else.
    """
    dt = to_data_type(data_type)
    if dt == DataType.BOOL:
        return 1
    return _MODBUS_DATATYPE[dt].value[1]


def parse_raw_to_integer(token: Any) -> int:
    """
    Read a raw telemetry value as an integer for bit inspection.

    - int: returned as-is (bool as 0/1); integral part of a finite float.
    - str: "0x" prefix or hex digits only -> base 16; signed decimal -> base 10, a
      fractional part is dropped the same way a float is truncated.

    Raises RawValueParseError for empty or garbled input and for values outside
    [-2**31, 2**32 - 1].
    """
    if isinstance(token, bool):
        return int(token)
    if isinstance(token, int):
        value = token
    elif isinstance(token, float):
        if not math.isfinite(token):
            raise RawValueParseError(token, f"Non-finite raw value: {token!r}")
        value = int(token)
    elif isinstance(token, str):
        s = token.strip()
        if not s:
            raise RawValueParseError(token, "Raw value cannot be empty")
        if _HEX_PATTERN.match(s):
            value = int(s, 16)
        else:
            m = _DECIMAL_PATTERN.match(s)
            if m is None:
                raise RawValueParseError(token)
            value = int(m.group(1), 10)
    else:
        raise RawValueParseError(token, f"Unsupported raw value type: {type(token).__name__}")

    if value < _INT32_MIN or value > _UINT32_MAX:
        raise RawValueParseError(token, f"Raw value exceeds 32 bits: {token!r}")
    return value


def format_raw(value: Any) -> str:
    """Render a raw value as the telemetry feed shows it (1.0 -> "1", True -> "1")."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_with_unit(value: Any, unit: str | None) -> str:
    text = format_raw(value)
    return f"{text} {unit}" if unit else text
