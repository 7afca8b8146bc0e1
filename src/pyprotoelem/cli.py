#!/usr/bin/env python3
"""Command-line interface for pyprotoelem using Typer."""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .address import check_conflict, check_overflow, register_span
from .codec import quantity_for_data_type
from .config import check_register_fields, load_config_file, validate_modbus_config
from .decoder import decode
from .errors import ConfigError, ModbusIOError
from .keys import iter_element_keys, modbus_key
from .reader import RegisterReader
from .types import BitsDisplay, DataType, Display, ModbusConfig, ModbusRegister, ProtocolType, RegisterType

app = typer.Typer(
    name="protoelem",
    help="Inspect SL651/Modbus device-type configurations: data keys, dictionary decoding, address checks.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Shared options and helpers
# ============================================================================

ConfigOption = Annotated[
    Path,
    typer.Option("--config", "-c", help="Device-type configuration JSON file", envvar="PROTOELEM_CONFIG"),
]
ProtocolOption = Annotated[
    Optional[str],
    typer.Option("--protocol", help="SL651 or Modbus (inferred from the file when omitted)", envvar="PROTOELEM_PROTOCOL"),
]
HostOption = Annotated[
    Optional[str],
    typer.Option("--host", "-h", help="Device hostname or IP address", envvar="PROTOELEM_HOST"),
]
PortOption = Annotated[
    int,
    typer.Option("--port", "-p", help="Modbus TCP port", envvar="PROTOELEM_PORT"),
]
UnitIdOption = Annotated[
    int,
    typer.Option("--unit-id", "-u", help="Modbus unit ID", envvar="PROTOELEM_UNIT_ID"),
]
TimeoutOption = Annotated[
    float,
    typer.Option("--timeout", "-t", help="Connection timeout in seconds", envvar="PROTOELEM_TIMEOUT"),
]
RetriesOption = Annotated[
    int,
    typer.Option("--retries", "-r", help="Number of retries on failure", envvar="PROTOELEM_RETRIES"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if not verbose else "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def load_or_exit(path: Path, protocol: Optional[str]) -> tuple[ProtocolType, Any]:
    """Load a configuration file; exit 2 when it is missing or invalid."""
    try:
        return load_config_file(path, protocol)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)
    except ConfigError as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(2)


def parse_raw_argument(value: str, numeric: bool = False) -> Any:
    """
    Raw value from the command line.

    By default the value is telemetry text, so digit-only strings go through
    the hex heuristic ("10" is 0x10). With numeric it is a decimal number.
    Raises ValueError when numeric is set and value is not a number.
    """
    if not numeric:
        return value
    try:
        return int(value)
    except ValueError:
        return float(value)


def display_to_json(display: Display) -> dict[str, Any]:
    if isinstance(display, BitsDisplay):
        return {"type": "bits", "labels": list(display.labels)}
    return {"type": "text", "value": display.text}


def format_display(display: Display) -> str:
    if isinstance(display, BitsDisplay):
        return ", ".join(display.labels)
    return display.text


def _fail_unexpected(e: Exception, verbose: bool) -> None:
    typer.echo(f"Error: Unexpected error: {e}", err=True)
    if verbose:
        import traceback
        traceback.print_exc()
    raise typer.Exit(4)


# ============================================================================
# Commands
# ============================================================================


@app.command()
def info(
    json_output: JsonOption = False,
) -> None:
    """Show package version, supported protocols, and register counts per data type."""
    info_data = {
        "version": __version__,
        "protocols": [p.value for p in ProtocolType],
        "quantities": {dt.value: quantity_for_data_type(dt) for dt in DataType},
    }
    if json_output:
        typer.echo(json.dumps(info_data, indent=2))
        return
    typer.echo(f"pyprotoelem version: {info_data['version']}")
    typer.echo(f"Protocols: {', '.join(info_data['protocols'])}")
    for name, quantity in info_data["quantities"].items():
        typer.echo(f"  {name:<8} {quantity} register(s)")


@app.command()
def keys(
    config: ConfigOption,
    protocol: ProtocolOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """List the data key and name of every configured element."""
    setup_logging(verbose)
    proto, cfg = load_or_exit(config, protocol)
    rows = [{"key": key, "name": el.name} for key, el in iter_element_keys(proto, cfg)]
    if json_output:
        typer.echo(json.dumps(rows, indent=2, ensure_ascii=False))
        return
    for row in rows:
        typer.echo(f"{row['key']}\t{row['name']}")


@app.command(name="decode")
def decode_cmd(
    key: Annotated[str, typer.Argument(help="Data key (e.g. 2F_01, HOLDING_REGISTER_100)")],
    value: Annotated[str, typer.Argument(help="Raw value as telemetry text: 0x prefix or hex digits read as hex, otherwise decimal")],
    config: ConfigOption,
    protocol: ProtocolOption = None,
    numeric: Annotated[bool, typer.Option("--numeric", "-n", help="Treat VALUE as a decimal number reading instead of text")] = False,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """Decode a raw value through the dictionary of the element with the given data key."""
    setup_logging(verbose)
    proto, cfg = load_or_exit(config, protocol)
    element = next((el for k, el in iter_element_keys(proto, cfg) if k == key), None)
    if element is None:
        typer.echo(f"Error: Unknown data key: {key}", err=True)
        raise typer.Exit(2)

    try:
        raw = parse_raw_argument(value, numeric)
    except ValueError:
        typer.echo(f"Error: Not a number: {value}", err=True)
        raise typer.Exit(2)
    display = decode(raw, element.unit, element.dict_config)
    if json_output:
        typer.echo(json.dumps({"key": key, "value": raw, "display": display_to_json(display)}, ensure_ascii=False))
    else:
        typer.echo(format_display(display))


@app.command(name="check-register")
def check_register(
    config: ConfigOption,
    register_type: Annotated[str, typer.Option("--register-type", help="COIL, DISCRETE_INPUT, HOLDING_REGISTER or INPUT_REGISTER")],
    address: Annotated[int, typer.Option("--address", help="Start address (0-65535)", min=0, max=65535)],
    data_type: Annotated[str, typer.Option("--data-type", help="BOOL, INT16, UINT16, INT32, UINT32, FLOAT32, INT64, UINT64 or DOUBLE")],
    exclude_id: Annotated[Optional[str], typer.Option("--exclude-id", help="Id of the register being edited")] = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Check a candidate register against a Modbus configuration.

    Exit 0 when it fits, 1 on address overflow or range conflict, 2 on bad input.
    """
    setup_logging(verbose)
    proto, cfg = load_or_exit(config, ProtocolType.MODBUS.value)
    try:
        rt = RegisterType(register_type)
        quantity = quantity_for_data_type(data_type)
        check_register_fields(rt, address, DataType(data_type), quantity, "candidate")
    except ValueError:
        typer.echo(f"Error: Unknown register type: {register_type}", err=True)
        raise typer.Exit(2)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)

    candidate = ModbusRegister(
        id=exclude_id or "",
        name="candidate",
        register_type=rt,
        address=address,
        data_type=DataType(data_type),
        quantity=quantity,
    )
    result: dict[str, Any] = {
        "key": modbus_key(rt, address),
        "span": list(register_span(candidate)),
        "overflow": check_overflow(address, quantity),
        "conflict": False,
    }
    if not result["overflow"]:
        conflict = check_conflict(cfg.registers, candidate, exclude_id)
        result["conflict"] = conflict.conflict
        if conflict.conflict_with is not None:
            result["conflictWith"] = {
                "id": conflict.conflict_with.id,
                "name": conflict.conflict_with.name,
                "span": list(register_span(conflict.conflict_with)),
            }

    if json_output:
        typer.echo(json.dumps(result, indent=2, ensure_ascii=False))
    elif result["overflow"]:
        typer.echo(f"OVERFLOW: address {address} + quantity {quantity} exceeds 65535")
    elif result["conflict"]:
        other = result["conflictWith"]
        typer.echo(f"CONFLICT: overlaps register {other['name']!r} (address {other['span'][0]}-{other['span'][1]})")
    else:
        typer.echo(f"OK: {result['key']} spans {result['span'][0]}-{result['span'][1]}")
    if result["overflow"] or result["conflict"]:
        raise typer.Exit(1)


@app.command()
def validate(
    config: ConfigOption,
    protocol: ProtocolOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Load a configuration strictly; for Modbus also check every register's address range."""
    setup_logging(verbose)
    proto, cfg = load_or_exit(config, protocol)
    if isinstance(cfg, ModbusConfig):
        try:
            validate_modbus_config(cfg)
        except ConfigError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)
    count = sum(1 for _ in iter_element_keys(proto, cfg))
    typer.echo(f"OK: {proto.value} configuration with {count} element(s)")


@app.command()
def read(
    config: ConfigOption,
    data_keys: Annotated[Optional[list[str]], typer.Argument(help="Data keys to read (default: every register)")] = None,
    host: HostOption = None,
    port: PortOption = 502,
    unit_id: UnitIdOption = 1,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Read configured Modbus registers from a live device and decode them.

    Values are converted with the configuration's byte order and decimals and
    shown through each register's dictionary.
    """
    setup_logging(verbose)
    if not host:
        typer.echo("Error: --host is required for this command", err=True)
        raise typer.Exit(2)
    _, cfg = load_or_exit(config, ProtocolType.MODBUS.value)

    by_key = dict(iter_element_keys(ProtocolType.MODBUS, cfg))
    wanted = data_keys or list(by_key)
    unknown = [k for k in wanted if k not in by_key]
    if unknown:
        typer.echo(f"Error: Unknown data key(s): {', '.join(unknown)}", err=True)
        raise typer.Exit(2)

    try:
        reader = RegisterReader(
            host,
            port=port,
            unit_id=unit_id,
            byte_order=cfg.byte_order,
            timeout=timeout,
            retries=retries,
        )
        with reader:
            snapshot = reader.read_snapshot([by_key[k] for k in wanted])
    except ModbusIOError as e:
        typer.echo(f"Error: Connection/Modbus error: {e}", err=True)
        raise typer.Exit(3)
    except Exception as e:
        _fail_unexpected(e, verbose)

    rows = []
    for k in wanted:
        reg = by_key[k]
        raw = snapshot.get(k, {}).get("value")
        rows.append({"key": k, "name": reg.name, "value": raw, "display": decode(raw, reg.unit, reg.dict_config)})

    if json_output:
        out = [{**row, "display": display_to_json(row["display"])} for row in rows]
        typer.echo(json.dumps(out, indent=2, ensure_ascii=False))
        return
    for row in rows:
        typer.echo(f"{row['key']}\t{row['name']}\t{format_display(row['display'])}")


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"pyprotoelem {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """protoelem - SL651/Modbus element configuration and decoding tools."""
    pass


if __name__ == "__main__":
    app()
