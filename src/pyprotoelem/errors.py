"""Exceptions for pyprotoelem: configuration authoring errors, raw value parsing, Modbus I/O."""

from typing import Any


class ProtoElemError(Exception):
    """Base exception for pyprotoelem."""

    pass


class RawValueParseError(ProtoElemError, ValueError):
    """Raised when a raw telemetry token cannot be read as a 32-bit integer."""

    def __init__(self, token: Any, message: str | None = None) -> None:
        self.token = token
        self._msg = message or f"Cannot parse raw value: {token!r}"
        super().__init__(self._msg)


class ConfigError(ProtoElemError):
    """Raised when a device-type configuration is malformed and must not be saved."""

    pass


class InvalidDictItemError(ConfigError):
    """Raised when a dictionary item is incomplete or out of range."""

    def __init__(self, index: int, message: str) -> None:
        self.index = index
        super().__init__(f"Dictionary item #{index}: {message}")


class DuplicateDictItemError(ConfigError):
    """Raised when a dictionary declares the same item twice."""

    def __init__(self, index: int, key: str) -> None:
        self.index = index
        self.key = key
        super().__init__(f"Dictionary item #{index}: duplicate key {key!r}")


class UnknownDataTypeError(ConfigError):
    def __init__(self, data_type: Any) -> None:
        self.data_type = data_type
        super().__init__(f"Unknown data type: {data_type!r}")


class AddressOverflowError(ConfigError):
    """Raised when address + quantity - 1 exceeds 65535."""

    def __init__(self, address: int, quantity: int) -> None:
        self.address = address
        self.quantity = quantity
        super().__init__(
            f"Address {address} + quantity {quantity} is out of range (last address must not exceed 65535)"
        )


class AddressConflictError(ConfigError):
    """Raised when a register span overlaps an existing register of the same type."""

    def __init__(self, candidate: Any, conflict_with: Any) -> None:
        self.candidate = candidate
        self.conflict_with = conflict_with
        end = conflict_with.address + conflict_with.quantity - 1
        super().__init__(
            f"Address range conflicts with register {conflict_with.name!r} "
            f"({conflict_with.register_type.value} {conflict_with.address}-{end})"
        )


class ModbusIOError(ProtoElemError):
    """Raised when a live Modbus read fails (wraps pymodbus or connection errors)."""

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        register_type: str | None = None,
        address: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.key = key
        self.register_type = register_type
        self.address = address
        self.cause = cause
        super().__init__(message)
