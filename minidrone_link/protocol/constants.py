"""Wire constants for the MiniDrone BLE command protocol.

Class and command codes follow the vendor's ``MiniDrone_commands.xml`` /
``common_commands.xml`` definitions. Outbound command frames address the
MiniDrone project implicitly through the device type byte.
"""

from __future__ import annotations

from enum import IntEnum


class DataType(IntEnum):
    """Frame type carried in byte 0 of every frame."""

    ACK = 0x01
    DATA = 0x02
    LOW_LATENCY = 0x03
    DATA_WITH_ACK = 0x04


class Project(IntEnum):
    COMMON = 0x00
    ARDRONE3 = 0x01
    MINIDRONE = 0x02


class CommandClass(IntEnum):
    """Outbound MiniDrone command classes."""

    PILOTING = 0x00
    SPEED_SETTINGS = 0x01
    ANIMATION = 0x04
    MEDIA_RECORD = 0x06
    PILOTING_SETTINGS = 0x08


class PilotingCommand(IntEnum):
    FLAT_TRIM = 0x00
    TAKEOFF = 0x01
    PCMD = 0x02
    LAND = 0x03
    EMERGENCY = 0x04


class AnimationCommand(IntEnum):
    FLIP = 0x00


class MediaRecordCommand(IntEnum):
    PICTURE = 0x01


class PilotingSettingsCommand(IntEnum):
    MAX_ALTITUDE = 0x00
    MAX_TILT = 0x01


class SpeedSettingsCommand(IntEnum):
    MAX_VERTICAL_SPEED = 0x00
    MAX_ROTATION_SPEED = 0x01


class FlipDirection(IntEnum):
    FRONT = 0x00
    BACK = 0x01
    RIGHT = 0x02
    LEFT = 0x03


# Pilot-facing animation names mapped to flip directions
ANIMATIONS = {
    "flipFront": FlipDirection.FRONT,
    "flipBack": FlipDirection.BACK,
    "flipRight": FlipDirection.RIGHT,
    "flipLeft": FlipDirection.LEFT,
}

MD_DEVICE_TYPE = 0x02

# Fixed frame length for flight-parameter and limit-setting frames
FIXED_FRAME_LENGTH = 19

# Inbound frames: data type, step, project, class, command (u8 each), one
# byte ignored by routing, then the payload.
PAYLOAD_OFFSET = 6

# BLE characteristic suffixes
RX_COMMAND_WITH_ACK = "fb0e"  # drone data that expects an ack on fa1e
RX_COMMAND_NO_ACK = "fb0f"  # drone data without ack (battery, flight state, ...)
RX_ACK_COMMAND_SENT = "fb1b"  # acks for the fa0b channel
RX_ACK_HIGH_PRIORITY = "fb1c"  # acks for the fa0c channel

FLIGHT_PARAMS_KEY = "fa0a"  # non-acknowledged piloting commands (PCMD only)
COMMAND_KEY = "fa0b"  # acknowledged commands
EMERGENCY_KEY = "fa0c"  # high priority commands

# Characteristics to subscribe at connect time. Only the two RX data channels are
# decoded; the vendor firmware expects the rest to be subscribed as well.
CHARACTERISTIC_MAP = (
    RX_COMMAND_NO_ACK,
    RX_COMMAND_WITH_ACK,
    RX_ACK_COMMAND_SENT,
    RX_ACK_HIGH_PRIORITY,
    "fd22",
    "fd23",
    "fd24",
    "fd52",
    "fd53",
    "fd54",
)

# Advertised manufacturer data: company id 0x0043 (little-endian) + product id
MANUFACTURER_SERIALS = (
    bytes.fromhex("4300cf1900090100"),
    bytes.fromhex("4300cf1909090100"),
    bytes.fromhex("4300cf1907090100"),
)
DRONE_PREFIXES = ("RS_", "Mars_", "Travis_", "Maclan_", "Mambo_", "Blaze_", "NewZ_")
