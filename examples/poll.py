#!/usr/bin/env python3
"""Example: poll every register of a Modbus configuration on its read interval; graceful shutdown on Ctrl+C."""

import sys

from pyprotoelem import ConfigError, ModbusConfig, load_config_file
from pyprotoelem.errors import ModbusIOError
from pyprotoelem.reader import RegisterReader
from pyprotoelem.render import render_elements


def main() -> None:
    path = "modbus.json"  # change to your config file
    host = "192.168.1.10"  # change to your device IP
    port = 502
    unit_id = 1

    try:
        protocol, config = load_config_file(path, "Modbus")
    except (FileNotFoundError, ConfigError) as e:
        print(f"Cannot load {path}: {e}", file=sys.stderr)
        sys.exit(1)
    assert isinstance(config, ModbusConfig)
    interval_s = float(config.read_interval or 1)

    try:
        with RegisterReader.for_config(config, host, port=port, unit_id=unit_id) as reader:
            print(f"Polling {len(config.registers)} registers every {interval_s}s (Ctrl+C to stop)...")
            for snapshot in reader.poll_iter(list(config.registers), interval_s):
                for row in render_elements(protocol, config, snapshot):
                    print(f"{row.key}\t{row.name}\t{row.display}")
    except KeyboardInterrupt:
        print("\nStopped.")
    except ModbusIOError as e:
        print(f"Modbus/connection error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
