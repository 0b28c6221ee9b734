"""Adapter modules for external integrations."""

from .ble import BleakCharacteristic, BleakConnection, BleakStack

__all__ = [
    "BleakCharacteristic",
    "BleakConnection",
    "BleakStack",
]
