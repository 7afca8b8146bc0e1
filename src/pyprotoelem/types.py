"""Core data model: protocol enums, dictionary union, SL651/Modbus config snapshots, display results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class ProtocolType(str, Enum):
    """Device-type configuration protocols."""

    SL651 = "SL651"
    MODBUS = "Modbus"


class RegisterType(str, Enum):
    """Modbus register banks; addresses in different banks never collide."""

    COIL = "COIL"
    DISCRETE_INPUT = "DISCRETE_INPUT"
    HOLDING_REGISTER = "HOLDING_REGISTER"
    INPUT_REGISTER = "INPUT_REGISTER"


class DataType(str, Enum):
    """Declared Modbus register data types."""

    BOOL = "BOOL"
    INT16 = "INT16"
    UINT16 = "UINT16"
    INT32 = "INT32"
    UINT32 = "UINT32"
    FLOAT32 = "FLOAT32"
    INT64 = "INT64"
    UINT64 = "UINT64"
    DOUBLE = "DOUBLE"


class ByteOrder(str, Enum):
    """Modbus multi-register byte orders (ABCD, DCBA, BADC, CDAB)."""

    BIG_ENDIAN = "BIG_ENDIAN"
    LITTLE_ENDIAN = "LITTLE_ENDIAN"
    BIG_ENDIAN_BYTE_SWAP = "BIG_ENDIAN_BYTE_SWAP"
    LITTLE_ENDIAN_BYTE_SWAP = "LITTLE_ENDIAN_BYTE_SWAP"


class MapType(str, Enum):
    """Dictionary modes: exact value lookup or per-bit labels."""

    VALUE = "VALUE"
    BIT = "BIT"


class DependencyOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class SL651EncodeType(str, Enum):
    BCD = "BCD"
    TIME_YYMMDDHHMMSS = "TIME_YYMMDDHHMMSS"
    JPEG = "JPEG"
    DICT = "DICT"
    HEX = "HEX"


class SL651Direction(str, Enum):
    UP = "UP"
    DOWN = "DOWN"


@dataclass(frozen=True)
class DependencyCondition:
    """A condition on another bit of the same raw value."""

    bit_index: int
    bit_value: int

    def __post_init__(self) -> None:
        if not 0 <= self.bit_index <= 31:
            raise ValueError(f"bit_index must be in 0..31, got {self.bit_index}")
        if self.bit_value not in (0, 1):
            raise ValueError(f"bit_value must be 0 or 1, got {self.bit_value}")


@dataclass(frozen=True)
class DependsOn:
    operator: DependencyOperator
    conditions: tuple[DependencyCondition, ...] = ()


@dataclass(frozen=True)
class ValueItem:
    """VALUE-mode item: label shown when the raw value equals key."""

    key: str
    label: str


@dataclass(frozen=True)
class BitItem:
    """BIT-mode item: label shown when bit_index has the trigger state and depends_on holds."""

    bit_index: int
    label: str
    trigger: int = 1
    depends_on: DependsOn | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.bit_index <= 31:
            raise ValueError(f"bit_index must be in 0..31, got {self.bit_index}")
        if self.trigger not in (0, 1):
            raise ValueError(f"trigger must be 0 or 1, got {self.trigger}")

    @property
    def key(self) -> str:
        return str(self.bit_index)


DictItem = Union[ValueItem, BitItem]


@dataclass(frozen=True)
class DictConfig:
    """Element dictionary. Items are all ValueItem (VALUE) or all BitItem (BIT)."""

    map_type: MapType
    items: tuple[DictItem, ...] = ()

    def __post_init__(self) -> None:
        expected = ValueItem if self.map_type == MapType.VALUE else BitItem
        for item in self.items:
            if not isinstance(item, expected):
                raise TypeError(f"{self.map_type.value} dictionary cannot hold {type(item).__name__}")


@dataclass(frozen=True)
class ModbusRegister:
    """Modbus register definition; span is [address, address + quantity - 1]."""

    id: str
    name: str
    register_type: RegisterType
    address: int
    data_type: DataType
    quantity: int
    unit: str | None = None
    decimals: int | None = None
    dict_config: DictConfig | None = None
    remark: str | None = None

    def __post_init__(self) -> None:
        if self.address < 0:
            raise ValueError(f"address must be >= 0, got {self.address}")
        if self.quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {self.quantity}")


@dataclass(frozen=True)
class ModbusConfig:
    byte_order: ByteOrder = ByteOrder.BIG_ENDIAN
    read_interval: int | None = None
    registers: tuple[ModbusRegister, ...] = ()


@dataclass(frozen=True)
class SL651ElementOption:
    """Preset value offered for downlink elements."""

    label: str
    value: str


@dataclass(frozen=True)
class SL651Element:
    id: str
    name: str
    guide_hex: str
    encode: SL651EncodeType
    length: int
    digits: int
    unit: str | None = None
    remark: str | None = None
    options: tuple[SL651ElementOption, ...] = ()
    dict_config: DictConfig | None = None


@dataclass(frozen=True)
class SL651Func:
    id: str
    func_code: str
    direction: SL651Direction
    name: str
    elements: tuple[SL651Element, ...] = ()
    response_elements: tuple[SL651Element, ...] = ()
    remark: str | None = None


@dataclass(frozen=True)
class SL651Config:
    response_mode: str | None = None
    funcs: tuple[SL651Func, ...] = ()


ProtocolConfig = Union[SL651Config, ModbusConfig]


@dataclass(frozen=True)
class ConflictResult:
    """Result of an address-range check; conflict_with is the first overlapping register."""

    conflict: bool
    conflict_with: ModbusRegister | None = None


@dataclass(frozen=True)
class TextDisplay:
    text: str


@dataclass(frozen=True)
class BitsDisplay:
    labels: tuple[str, ...]


Display = Union[TextDisplay, BitsDisplay]


@dataclass(frozen=True)
class ElementOption:
    """Bindable alert-condition target: data key, element name, and its dictionary if any."""

    value: str
    label: str
    dict_map_type: MapType | None = None
    dict_items: tuple[DictItem, ...] = field(default=())
