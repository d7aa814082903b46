"""CAN frame header packing and 13-byte telecommand frame assembly.

A command frame is a 5-byte header (0x88 info byte plus the 29-bit extended
identifier in big-endian order), the command code byte, and 7 parameter
bytes.  The identifier is packed from seven bit-fields:

    bits 28-26  P   priority
    bit  25     LT  bus flag (0 = A channel, 1 = B channel)
    bits 24-20  DT  data type
    bits 19-15  DA  destination address
    bits 14-10  SA  source address
    bits  9-8   FT  single/multi-frame flag
    bits  7-0   FC  frame count

When a document's CAN ID summary has no row for the command's type and
channel, a fallback identifier is used.  Its priority and address bits come
from one observed protocol family and are not authoritative for others.
"""

import logging
from collections.abc import Sequence

from protocol_parser.telecommand.patterns import (
    CHANNEL_A,
    CHANNEL_B,
    FALLBACK_DEST_ADDR,
    FALLBACK_FRAME_COUNT,
    FALLBACK_FRAME_FLAG,
    FALLBACK_PRIORITY,
    FALLBACK_SRC_ADDR,
    FRAME_INFO_BYTE,
    PARAMETER_BYTE_COUNT,
)
from protocol_parser.telecommand.schema import (
    CanFrameInfo,
    TelecommandEntry,
    TelecommandPreset,
    TelecommandType,
    fixed_length_bytes,
)

logger = logging.getLogger(__name__)

# (name, shift, width) of each identifier bit-field, most significant first
CAN_ID_LAYOUT: tuple[tuple[str, int, int], ...] = (
    ("priority", 26, 3),
    ("bus_flag", 25, 1),
    ("data_type", 20, 5),
    ("dest_addr", 15, 5),
    ("src_addr", 10, 5),
    ("frame_flag", 8, 2),
    ("frame_count", 0, 8),
)

# Frame-type text a CAN ID summary row must contain to serve a command type
FRAME_TYPE_KEYWORDS: dict[TelecommandType, tuple[str, ...]] = {
    TelecommandType.TELEMETRY_REQUEST: ("遥测请求",),
    TelecommandType.RESET: ("复位",),
    TelecommandType.LONG: ("控制长",),
}
DEFAULT_FRAME_TYPE_KEYWORDS = ("控制短", "控制指令", "控制")

FALLBACK_DATA_TYPES: dict[TelecommandType, int] = {
    TelecommandType.TELEMETRY_REQUEST: 0b00000,
    TelecommandType.RESET: 0b00001,
    TelecommandType.LONG: 0b00100,
}
DEFAULT_FALLBACK_DATA_TYPE = 0b00010


def pack_can_id(p: int, lt: int, dt: int, da: int, sa: int, ft: int, fc: int) -> int:
    """Pack the seven bit-fields into a 29-bit identifier, masking each to its width."""
    can_id = 0
    for value, (_, shift, width) in zip((p, lt, dt, da, sa, ft, fc), CAN_ID_LAYOUT):
        can_id |= (value & ((1 << width) - 1)) << shift
    return can_id


def build_frame_header_bytes(p: int, lt: int, dt: int, da: int, sa: int, ft: int, fc: int) -> bytes:
    """Return the 5-byte header: 0x88 (IDE=1, RTR=0, DLC=8) then the identifier as 4 big-endian bytes."""
    return bytes([FRAME_INFO_BYTE]) + pack_can_id(p, lt, dt, da, sa, ft, fc).to_bytes(4, "big")


def decode_frame_header(header: bytes) -> dict[str, int]:
    """Unpack a 5-byte header back into its info byte and seven identifier bit-fields."""
    can_id = int.from_bytes(header[1:5], "big")
    fields = {"info": header[0] if header else 0}
    for name, shift, width in CAN_ID_LAYOUT:
        fields[name] = (can_id >> shift) & ((1 << width) - 1)
    return fields


# ─── Header Resolution ────────────────────────────────────────────────────────


def is_same_channel(left: str, right: str) -> bool:
    """Two channel labels match when both or neither mention B."""
    return ("B" in (left or "")) == ("B" in (right or ""))


def is_frame_type_match(command: TelecommandEntry, frame_type: str) -> bool:
    keywords = FRAME_TYPE_KEYWORDS.get(command.type, DEFAULT_FRAME_TYPE_KEYWORDS)
    return any(keyword in (frame_type or "") for keyword in keywords)


def fallback_header(command: TelecommandEntry, is_b_channel: bool) -> bytes:
    """Deterministic header used when no CAN ID summary row fits the command."""
    data_type = FALLBACK_DATA_TYPES.get(command.type, DEFAULT_FALLBACK_DATA_TYPE)
    return build_frame_header_bytes(
        FALLBACK_PRIORITY,
        1 if is_b_channel else 0,
        data_type,
        FALLBACK_DEST_ADDR,
        FALLBACK_SRC_ADDR,
        FALLBACK_FRAME_FLAG,
        FALLBACK_FRAME_COUNT,
    )


def resolve_header(
    command: TelecommandEntry,
    is_b_channel: bool,
    frame_infos: Sequence[CanFrameInfo] | None,
) -> bytes:
    """Return the header of the first frame-info row matching the channel and command type, else the fallback."""
    channel = CHANNEL_B if is_b_channel else CHANNEL_A
    for info in frame_infos or ():
        if is_same_channel(info.channel, channel) and is_frame_type_match(command, info.frame_type):
            return info.header_bytes

    logger.debug("No CAN ID row for %s on %s, using fallback header", command.code or command.name, channel)
    return fallback_header(command, is_b_channel)


# ─── Frame Assembly ───────────────────────────────────────────────────────────


def assemble_frame(header: bytes, command_code: int, payload: bytes) -> bytes:
    """Header (5) + command code (1) + payload zero-filled to 7 bytes."""
    return header[:5] + bytes([command_code & 0xFF]) + fixed_length_bytes(payload, PARAMETER_BYTE_COUNT)


def build_command_frame(
    command: TelecommandEntry,
    is_b_channel: bool,
    frame_infos: Sequence[CanFrameInfo] | None,
) -> bytes:
    """Return the 13-byte frame for *command* carrying its default parameter bytes."""
    header = resolve_header(command, is_b_channel, frame_infos)
    return assemble_frame(header, command.command_code, command.default_parameter_bytes)


def build_command_frame_with_preset(
    command: TelecommandEntry,
    preset: TelecommandPreset,
    is_b_channel: bool,
    frame_infos: Sequence[CanFrameInfo] | None,
) -> bytes:
    """Return the 13-byte frame for *command* carrying the preset's parameter bytes."""
    header = resolve_header(command, is_b_channel, frame_infos)
    return assemble_frame(header, command.command_code, preset.parameter_bytes)
