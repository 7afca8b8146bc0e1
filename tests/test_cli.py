"""Tests for CLI module - argument parsing and command structure."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from pyprotoelem.cli import app, display_to_json, format_display, parse_raw_argument
from pyprotoelem.errors import ModbusIOError
from pyprotoelem.types import BitsDisplay, TextDisplay

runner = CliRunner()

MODBUS_DOC = {
    "protocol": "Modbus",
    "config": {
        "byteOrder": "BIG_ENDIAN",
        "registers": [
            {"id": "r1", "name": "flow", "registerType": "HOLDING_REGISTER", "address": 100, "dataType": "FLOAT32", "unit": "m3/h"},
            {
                "id": "r2",
                "name": "pump",
                "registerType": "COIL",
                "address": 0,
                "dataType": "BOOL",
                "dictConfig": {"items": [{"key": "0", "label": "停"}, {"key": "1", "label": "开"}]},
            },
        ],
    },
}

SL651_DOC = {
    "funcs": [
        {
            "funcCode": "2F",
            "elements": [
                {"name": "水位", "guideHex": "01", "encode": "BCD", "length": 4, "unit": "m"},
                {
                    "name": "状态",
                    "guideHex": "F1",
                    "encode": "DICT",
                    "length": 4,
                    "dictConfig": {"mapType": "BIT", "items": [{"key": "0", "label": "A"}, {"key": "2", "label": "C"}]},
                },
            ],
        }
    ]
}


@pytest.fixture
def modbus_file(tmp_path: Path) -> Path:
    path = tmp_path / "modbus.json"
    path.write_text(json.dumps(MODBUS_DOC, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def sl651_file(tmp_path: Path) -> Path:
    path = tmp_path / "sl651.json"
    path.write_text(json.dumps(SL651_DOC, ensure_ascii=False), encoding="utf-8")
    return path


# ============================================================================
# Helper Tests
# ============================================================================


class TestParseRawArgument:
    """Test raw value parsing from the command line."""

    def test_text_by_default(self) -> None:
        """Values stay telemetry text so the hex heuristic applies."""
        assert parse_raw_argument("10") == "10"
        assert parse_raw_argument("0x1F") == "0x1F"
        assert parse_raw_argument("12.5") == "12.5"

    def test_numeric(self) -> None:
        """With numeric, decimal numbers become numbers."""
        assert parse_raw_argument("10", numeric=True) == 10
        assert parse_raw_argument("12.5", numeric=True) == 12.5

    def test_numeric_invalid(self) -> None:
        with pytest.raises(ValueError):
            parse_raw_argument("ff", numeric=True)


class TestDisplayOutput:
    """Test display formatting."""

    def test_text(self) -> None:
        assert format_display(TextDisplay("9 m")) == "9 m"
        assert display_to_json(TextDisplay("9 m")) == {"type": "text", "value": "9 m"}

    def test_bits(self) -> None:
        assert format_display(BitsDisplay(("A", "C"))) == "A, C"
        assert display_to_json(BitsDisplay(("A", "C"))) == {"type": "bits", "labels": ["A", "C"]}


# ============================================================================
# Local Commands
# ============================================================================


def test_info_command() -> None:
    """Test info command text output."""
    result = runner.invoke(app, ["info"])

    assert result.exit_code == 0
    assert "version:" in result.stdout.lower()
    assert "Modbus" in result.stdout


def test_info_command_json() -> None:
    """Test info command with JSON output."""
    result = runner.invoke(app, ["info", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["protocols"] == ["SL651", "Modbus"]
    assert data["quantities"]["DOUBLE"] == 4


def test_version_option() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert "pyprotoelem" in result.stdout


def test_keys_command(sl651_file: Path) -> None:
    """Test keys listing with inferred protocol."""
    result = runner.invoke(app, ["keys", "--config", str(sl651_file)])

    assert result.exit_code == 0
    assert result.stdout.splitlines() == ["2F_01\t水位", "2F_F1\t状态"]


def test_keys_command_json(modbus_file: Path) -> None:
    result = runner.invoke(app, ["keys", "-c", str(modbus_file), "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert [row["key"] for row in data] == ["HOLDING_REGISTER_100", "COIL_0"]


def test_keys_command_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["keys", "--config", str(tmp_path / "nope.json")])

    assert result.exit_code == 2
    assert "not found" in result.output


def test_keys_command_invalid_config(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"registers": [{"name": "x"}]}), encoding="utf-8")
    result = runner.invoke(app, ["keys", "--config", str(path)])

    assert result.exit_code == 2
    assert "Invalid configuration" in result.output


def test_decode_bits(sl651_file: Path) -> None:
    """Test decode through a BIT dictionary."""
    result = runner.invoke(app, ["decode", "2F_F1", "5", "--config", str(sl651_file)])

    assert result.exit_code == 0
    assert result.stdout.strip() == "A, C"


def test_decode_no_dictionary(sl651_file: Path) -> None:
    result = runner.invoke(app, ["decode", "2F_01", "12.5", "--config", str(sl651_file)])

    assert result.exit_code == 0
    assert result.stdout.strip() == "12.5 m"


def test_decode_json(modbus_file: Path) -> None:
    result = runner.invoke(app, ["decode", "COIL_0", "1", "--config", str(modbus_file), "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data == {"key": "COIL_0", "value": "1", "display": {"type": "text", "value": "开"}}


def test_decode_json_numeric(modbus_file: Path) -> None:
    result = runner.invoke(app, ["decode", "COIL_0", "1", "--config", str(modbus_file), "--numeric", "--json"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["value"] == 1


def test_decode_digits_read_as_hex_text(sl651_file: Path) -> None:
    """Digit-only text goes through the hex heuristic; --numeric reads it as decimal."""
    # "12" is 0x12 = 0b10010: neither bit 0 nor bit 2
    text = runner.invoke(app, ["decode", "2F_F1", "12", "--config", str(sl651_file)])
    # 12 = 0b1100: bit 2
    number = runner.invoke(app, ["decode", "2F_F1", "12", "--config", str(sl651_file), "--numeric"])

    assert text.exit_code == 0
    assert text.stdout.strip() == "12"
    assert number.exit_code == 0
    assert number.stdout.strip() == "C"


def test_decode_numeric_not_a_number(sl651_file: Path) -> None:
    result = runner.invoke(app, ["decode", "2F_F1", "ff", "--config", str(sl651_file), "--numeric"])

    assert result.exit_code == 2
    assert "Not a number" in result.output


def test_decode_unknown_key(sl651_file: Path) -> None:
    result = runner.invoke(app, ["decode", "2F_99", "1", "--config", str(sl651_file)])

    assert result.exit_code == 2
    assert "Unknown data key" in result.output


def test_check_register_ok(modbus_file: Path) -> None:
    result = runner.invoke(
        app,
        ["check-register", "-c", str(modbus_file), "--register-type", "HOLDING_REGISTER", "--address", "102", "--data-type", "INT32"],
    )

    assert result.exit_code == 0
    assert "OK: HOLDING_REGISTER_102 spans 102-103" in result.stdout


def test_check_register_conflict(modbus_file: Path) -> None:
    result = runner.invoke(
        app,
        ["check-register", "-c", str(modbus_file), "--register-type", "HOLDING_REGISTER", "--address", "101", "--data-type", "INT16"],
    )

    assert result.exit_code == 1
    assert "CONFLICT" in result.stdout
    assert "flow" in result.stdout


def test_check_register_exclude_self(modbus_file: Path) -> None:
    result = runner.invoke(
        app,
        [
            "check-register",
            "-c",
            str(modbus_file),
            "--register-type",
            "HOLDING_REGISTER",
            "--address",
            "101",
            "--data-type",
            "FLOAT32",
            "--exclude-id",
            "r1",
            "--json",
        ],
    )

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["span"] == [101, 102]
    assert data["conflict"] is False


def test_check_register_overflow(modbus_file: Path) -> None:
    result = runner.invoke(
        app,
        ["check-register", "-c", str(modbus_file), "--register-type", "INPUT_REGISTER", "--address", "65534", "--data-type", "DOUBLE"],
    )

    assert result.exit_code == 1
    assert "OVERFLOW" in result.stdout


def test_check_register_bad_data_type(modbus_file: Path) -> None:
    result = runner.invoke(
        app,
        ["check-register", "-c", str(modbus_file), "--register-type", "COIL", "--address", "1", "--data-type", "FLOAT16"],
    )

    assert result.exit_code == 2


def test_check_register_type_mismatch(modbus_file: Path) -> None:
    result = runner.invoke(
        app,
        ["check-register", "-c", str(modbus_file), "--register-type", "COIL", "--address", "5", "--data-type", "DOUBLE"],
    )

    assert result.exit_code == 2
    assert "only supports BOOL" in result.output


def test_validate_command(modbus_file: Path) -> None:
    result = runner.invoke(app, ["validate", "--config", str(modbus_file)])

    assert result.exit_code == 0
    assert "OK: Modbus configuration with 2 element(s)" in result.stdout


def test_validate_command_conflict(tmp_path: Path) -> None:
    doc = json.loads(json.dumps(MODBUS_DOC))
    doc["config"]["registers"].append(
        {"name": "dup", "registerType": "HOLDING_REGISTER", "address": 101, "dataType": "UINT16"}
    )
    path = tmp_path / "conflict.json"
    path.write_text(json.dumps(doc), encoding="utf-8")
    result = runner.invoke(app, ["validate", "--config", str(path)])

    assert result.exit_code == 1
    assert "conflicts" in result.output


# ============================================================================
# Live Read (with mocked reader)
# ============================================================================


@patch("pyprotoelem.cli.RegisterReader")
def test_read_command(mock_reader_class: MagicMock, modbus_file: Path) -> None:
    """Test read command decodes every register."""
    mock_reader = MagicMock()
    mock_reader_class.return_value = mock_reader
    mock_reader.__enter__.return_value = mock_reader
    mock_reader.read_snapshot.return_value = {
        "HOLDING_REGISTER_100": {"name": "flow", "value": 12.5, "unit": "m3/h"},
        "COIL_0": {"name": "pump", "value": 0},
    }

    result = runner.invoke(app, ["read", "--config", str(modbus_file), "--host", "192.168.1.10"])

    assert result.exit_code == 0
    assert result.stdout.splitlines() == [
        "HOLDING_REGISTER_100\tflow\t12.5 m3/h",
        "COIL_0\tpump\t停",
    ]
    assert mock_reader_class.call_args[0][0] == "192.168.1.10"
    assert mock_reader_class.call_args[1]["port"] == 502


@patch("pyprotoelem.cli.RegisterReader")
def test_read_command_selected_keys_json(mock_reader_class: MagicMock, modbus_file: Path) -> None:
    mock_reader = MagicMock()
    mock_reader_class.return_value = mock_reader
    mock_reader.__enter__.return_value = mock_reader
    mock_reader.read_snapshot.return_value = {"COIL_0": {"name": "pump", "value": 1}}

    result = runner.invoke(app, ["read", "--config", str(modbus_file), "COIL_0", "--host", "192.168.1.10", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data == [{"key": "COIL_0", "name": "pump", "value": 1, "display": {"type": "text", "value": "开"}}]
    registers = mock_reader.read_snapshot.call_args[0][0]
    assert [r.id for r in registers] == ["r2"]


def test_read_command_requires_host(modbus_file: Path) -> None:
    result = runner.invoke(app, ["read", "--config", str(modbus_file)])

    assert result.exit_code == 2
    assert "--host" in result.output


def test_read_command_unknown_key(modbus_file: Path) -> None:
    result = runner.invoke(app, ["read", "--config", str(modbus_file), "COIL_9", "--host", "10.0.0.1"])

    assert result.exit_code == 2
    assert "COIL_9" in result.output


@patch("pyprotoelem.cli.RegisterReader")
def test_read_command_modbus_error(mock_reader_class: MagicMock, modbus_file: Path) -> None:
    mock_reader = MagicMock()
    mock_reader_class.return_value = mock_reader
    mock_reader.__enter__.side_effect = ModbusIOError("Failed to connect to 10.0.0.1:502")

    result = runner.invoke(app, ["read", "--config", str(modbus_file), "--host", "10.0.0.1"])

    assert result.exit_code == 3
    assert "Failed to connect" in result.output
