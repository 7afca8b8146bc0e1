"""pyprotoelem: SL651/Modbus element dictionaries, data keys, and register address checks."""

__version__ = "0.1.0"

from .address import check_conflict, check_overflow, validate_register
from .codec import parse_raw_to_integer, quantity_for_data_type
from .config import dump_config, load_config, load_config_file
from .decoder import DictionaryDecoder, decode
from .errors import (
    AddressConflictError,
    AddressOverflowError,
    ConfigError,
    DuplicateDictItemError,
    InvalidDictItemError,
    ModbusIOError,
    ProtoElemError,
    RawValueParseError,
    UnknownDataTypeError,
)
from .keys import element_key, element_options, modbus_key, sl651_key
from .types import (
    BitItem,
    BitsDisplay,
    ConflictResult,
    DataType,
    DictConfig,
    MapType,
    ModbusConfig,
    ModbusRegister,
    ProtocolType,
    RegisterType,
    SL651Config,
    SL651Element,
    SL651Func,
    TextDisplay,
    ValueItem,
)

__all__ = [
    "__version__",
    "check_conflict",
    "check_overflow",
    "validate_register",
    "parse_raw_to_integer",
    "quantity_for_data_type",
    "dump_config",
    "load_config",
    "load_config_file",
    "DictionaryDecoder",
    "decode",
    "AddressConflictError",
    "AddressOverflowError",
    "ConfigError",
    "DuplicateDictItemError",
    "InvalidDictItemError",
    "ModbusIOError",
    "ProtoElemError",
    "RawValueParseError",
    "UnknownDataTypeError",
    "element_key",
    "element_options",
    "modbus_key",
    "sl651_key",
    "BitItem",
    "BitsDisplay",
    "ConflictResult",
    "DataType",
    "DictConfig",
    "MapType",
    "ModbusConfig",
    "ModbusRegister",
    "ProtocolType",
    "RegisterType",
    "SL651Config",
    "SL651Element",
    "SL651Func",
    "TextDisplay",
    "ValueItem",
]
