"""RegisterReader: read configured Modbus registers over TCP via pymodbus, keyed by data key."""

import logging
import time
from collections import defaultdict
from dataclasses import replace
from typing import Any, Iterable, Iterator

from pymodbus.client import ModbusTcpClient
from pymodbus.client.mixin import ModbusClientMixin
from pymodbus.exceptions import ModbusException as PymodbusException

from .codec import modbus_datatype
from .errors import ModbusIOError
from .keys import modbus_key
from .types import ByteOrder, DataType, ModbusConfig, ModbusRegister, RegisterType

logger = logging.getLogger(__name__)

_BIT_TYPES = frozenset({RegisterType.COIL, RegisterType.DISCRETE_INPUT})
_FLOAT_TYPES = frozenset({DataType.FLOAT32, DataType.DOUBLE})

# Protocol limits per request
_MAX_BITS = 2000
_MAX_WORDS = 125


def _swap_bytes(word: int) -> int:
    return ((word & 0xFF) << 8) | (word >> 8)


def to_big_endian_words(words: list[int], byte_order: ByteOrder) -> list[int]:
    """Reorder a register's words/bytes into standard big-endian (ABCD) order."""
    if byte_order == ByteOrder.LITTLE_ENDIAN:
        return [_swap_bytes(w) for w in reversed(words)]
    if byte_order == ByteOrder.BIG_ENDIAN_BYTE_SWAP:
        return [_swap_bytes(w) for w in words]
    if byte_order == ByteOrder.LITTLE_ENDIAN_BYTE_SWAP:
        return list(reversed(words))
    return list(words)


def convert_words(register: ModbusRegister, words: list[int], byte_order: ByteOrder) -> int | float:
    """Scalar value of a register from its raw words; floats rounded to decimals when set."""
    ordered = to_big_endian_words(words, byte_order)
    try:
        value = ModbusClientMixin.convert_from_registers(ordered, modbus_datatype(register.data_type))
    except PymodbusException as e:
        raise ModbusIOError(
            str(e),
            key=modbus_key(register.register_type, register.address),
            register_type=register.register_type.value,
            address=register.address,
            cause=e,
        ) from e
    if register.data_type == DataType.BOOL:
        return 1 if value else 0
    if register.data_type in _FLOAT_TYPES:
        value = float(value)  # type: ignore[arg-type]
        if register.decimals is not None and register.decimals >= 0:
            value = round(value, register.decimals)
        return value
    return int(value)  # type: ignore[arg-type]


def _coalesce(registers: list[ModbusRegister], limit: int) -> list[tuple[int, int, list[ModbusRegister]]]:
    """
    Group registers of one bank into contiguous or overlapping ranges. Returns
    list of (start_address, count, [register, ...]) with count <= limit.
    """
    ranges: list[tuple[int, int, list[ModbusRegister]]] = []
    start = end = -1
    group: list[ModbusRegister] = []
    for reg in sorted(registers, key=lambda r: r.address):
        reg_end = reg.address + reg.quantity - 1
        if group and reg.address <= end + 1 and max(end, reg_end) - start + 1 <= limit:
            group.append(reg)
            end = max(end, reg_end)
            continue
        if group:
            ranges.append((start, end - start + 1, group))
        start, end, group = reg.address, reg_end, [reg]
    if group:
        ranges.append((start, end - start + 1, group))
    return ranges


class RegisterReader:
    """
    Reads configured Modbus registers from a device and returns values keyed by data key.
    Wraps a pymodbus TCP client; the configuration's byte order applies to every register.
    """

    def __init__(
        self,
        host: str,
        port: int = 502,
        unit_id: int = 1,
        byte_order: ByteOrder = ByteOrder.BIG_ENDIAN,
        timeout: float = 3.0,
        retries: int = 3,
    ) -> None:
        self._host = host
        self._port = port
        self._unit_id = unit_id
        self._byte_order = byte_order
        self._timeout = timeout
        self._retries = retries
        self._client: ModbusTcpClient | None = None

    @classmethod
    def for_config(cls, config: ModbusConfig, host: str, **kwargs: Any) -> "RegisterReader":
        return cls(host, byte_order=config.byte_order, **kwargs)

    def _get_client(self) -> ModbusTcpClient:
        if self._client is None:
            self._client = ModbusTcpClient(
                host=self._host,
                port=self._port,
                timeout=self._timeout,
                retries=self._retries,
            )
            if not self._client.connect():
                raise ModbusIOError(f"Failed to connect to {self._host}:{self._port}")
        return self._client

    def _read_block(self, register_type: RegisterType, start: int, count: int) -> list[int]:
        client = self._get_client()
        try:
            if register_type == RegisterType.COIL:
                rr = client.read_coils(start, count=count, device_id=self._unit_id)
            elif register_type == RegisterType.DISCRETE_INPUT:
                rr = client.read_discrete_inputs(start, count=count, device_id=self._unit_id)
            elif register_type == RegisterType.INPUT_REGISTER:
                rr = client.read_input_registers(start, count=count, device_id=self._unit_id)
            else:
                rr = client.read_holding_registers(start, count=count, device_id=self._unit_id)
        except PymodbusException as e:
            raise ModbusIOError(
                str(e),
                key=modbus_key(register_type, start),
                register_type=register_type.value,
                address=start,
                cause=e,
            ) from e

        if rr.isError():
            raise ModbusIOError(
                str(rr),
                key=modbus_key(register_type, start),
                register_type=register_type.value,
                address=start,
                cause=getattr(rr, "exception", None),
            )
        attr = "bits" if register_type in _BIT_TYPES else "registers"
        data = getattr(rr, attr, None)
        if not data or len(data) < count:
            raise ModbusIOError(
                f"Short {attr[:-1]} response",
                key=modbus_key(register_type, start),
                register_type=register_type.value,
                address=start,
            )
        return [int(v) for v in data[:count]]

    def connect(self) -> None:
        """Establish TCP connection to the device."""
        self._get_client()

    def close(self) -> None:
        """Close the TCP connection."""
        if self._client is not None:
            try:
                self._client.close()
            except Exception as e:
                logger.warning("Error closing Modbus client: %s", e)
            self._client = None

    def __enter__(self) -> "RegisterReader":
        self.connect()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def read_register(self, register: ModbusRegister) -> int | float:
        """Read one register: 1/0 for coils and discrete inputs, converted scalar otherwise."""
        count = 1 if register.register_type in _BIT_TYPES else register.quantity
        data = self._read_block(register.register_type, register.address, count)
        if register.register_type in _BIT_TYPES:
            return 1 if data[0] else 0
        return convert_words(register, data, self._byte_order)

    def read_snapshot(self, registers: Iterable[ModbusRegister]) -> dict[str, dict[str, Any]]:
        """
        Read many registers with as few requests as possible. Groups by register
        type and coalesces adjacent spans, then returns
        {data_key: {"name", "value", "unit"}}.
        """
        by_type: dict[RegisterType, list[ModbusRegister]] = defaultdict(list)
        for reg in registers:
            by_type[reg.register_type].append(reg)

        out: dict[str, dict[str, Any]] = {}
        for register_type, regs in by_type.items():
            is_bits = register_type in _BIT_TYPES
            limit = _MAX_BITS if is_bits else _MAX_WORDS
            if is_bits:
                # one bit per point regardless of declared quantity
                regs = [r if r.quantity == 1 else replace(r, quantity=1) for r in regs]
            for start, count, group in _coalesce(regs, limit):
                data = self._read_block(register_type, start, count)
                for reg in group:
                    offset = reg.address - start
                    if is_bits:
                        value: int | float = 1 if data[offset] else 0
                    else:
                        value = convert_words(reg, data[offset : offset + reg.quantity], self._byte_order)
                    entry: dict[str, Any] = {"name": reg.name, "value": value}
                    if reg.unit:
                        entry["unit"] = reg.unit
                    out[modbus_key(reg.register_type, reg.address)] = entry
            logger.debug("Read %d %s points", len(regs), register_type.value)
        return out

    def poll_iter(self, registers: list[ModbusRegister], interval_s: float) -> Iterator[dict[str, dict[str, Any]]]:
        """Yield read_snapshot(registers) every interval_s seconds indefinitely."""
        while True:
            yield self.read_snapshot(registers)
            time.sleep(interval_s)
