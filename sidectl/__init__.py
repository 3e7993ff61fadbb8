"""Bridge a BLE orientation tracker cube to configurable actions."""

__version__ = "0.1.0"
