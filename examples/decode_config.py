#!/usr/bin/env python3
"""Example: load a device-type configuration, list its data keys, and decode a few telemetry values."""

import sys

from pyprotoelem import ConfigError, decode, element_options, load_config_file
from pyprotoelem.keys import iter_element_keys
from pyprotoelem.render import render_elements


def main() -> None:
    path = sys.argv[1] if len(sys.argv) > 1 else "device.json"  # change to your config file

    try:
        protocol, config = load_config_file(path)
    except (FileNotFoundError, ConfigError) as e:
        print(f"Cannot load {path}: {e}", file=sys.stderr)
        sys.exit(1)

    # Data keys, as the uplink parser / register reader emit them
    for key, element in iter_element_keys(protocol, config):
        print(f"{key}\t{element.name}")

    # Decode one raw value per element
    for key, element in iter_element_keys(protocol, config):
        print(f"{key} = 5 -> {decode(5, element.unit, element.dict_config)}")

    # Alert-condition targets
    for option in element_options(protocol, config):
        print(f"option {option.value}: {option.label} ({option.dict_map_type})")

    # Join a telemetry feed by data key
    values = {key: {"value": "0x1F"} for key, _ in iter_element_keys(protocol, config)}
    for row in render_elements(protocol, config, values):
        print(f"{row.name}: {row.display}")


if __name__ == "__main__":
    main()
