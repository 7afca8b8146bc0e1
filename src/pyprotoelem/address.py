"""Modbus address-space checks: 16-bit overflow and same-bank range overlap."""

import logging
from typing import Iterable, Protocol

from .errors import AddressConflictError, AddressOverflowError
from .types import ConflictResult, ModbusRegister, RegisterType

logger = logging.getLogger(__name__)

MAX_ADDRESS = 65535


class RegisterSpan(Protocol):
    """Anything with a register type, start address and register count."""

    register_type: RegisterType
    address: int
    quantity: int


def register_span(register: RegisterSpan) -> tuple[int, int]:
    """Closed interval [address, address + quantity - 1]."""
    return register.address, register.address + register.quantity - 1


def check_overflow(address: int, quantity: int) -> bool:
    """True when the span's last address is beyond 65535."""
    return address + quantity - 1 > MAX_ADDRESS


def check_conflict(
    existing: Iterable[ModbusRegister],
    candidate: RegisterSpan,
    exclude_id: str | None = None,
) -> ConflictResult:
    """
    Find the first register of the candidate's type whose span intersects the candidate's.

    Registers are scanned in storage order; the one whose id equals exclude_id
    (the register being edited) is skipped. Other register types never conflict.
    """
    new_start, new_end = register_span(candidate)
    for reg in existing:
        if exclude_id is not None and reg.id == exclude_id:
            continue
        if reg.register_type != candidate.register_type:
            continue
        exist_start, exist_end = register_span(reg)
        if not (new_end < exist_start or new_start > exist_end):
            return ConflictResult(conflict=True, conflict_with=reg)
    return ConflictResult(conflict=False)


def validate_register(
    existing: Iterable[ModbusRegister],
    candidate: RegisterSpan,
    exclude_id: str | None = None,
) -> None:
    """
    Raise AddressOverflowError or AddressConflictError for a register about to be saved.

    The overflow check runs first; conflicts are only searched for spans inside
    the address space.
    """
    if check_overflow(candidate.address, candidate.quantity):
        raise AddressOverflowError(candidate.address, candidate.quantity)
    result = check_conflict(existing, candidate, exclude_id)
    if result.conflict:
        logger.debug(
            "Register %s@%d+%d conflicts with %r",
            candidate.register_type.value,
            candidate.address,
            candidate.quantity,
            result.conflict_with.name if result.conflict_with else None,
        )
        raise AddressConflictError(candidate, result.conflict_with)
