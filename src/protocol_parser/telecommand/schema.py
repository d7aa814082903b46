"""Pydantic models for parsed telecommand definitions and CAN frame metadata.

Parameter payloads are ``bytes`` fixed at 7 bytes (W0..W6 of the frame
payload) and CAN headers at 5 bytes; validators pad or truncate to those
sizes, and JSON dumps render them as spaced hex ("88 0C 2B 04 01").
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_serializer, field_validator

from protocol_parser.config import DEFAULT_ENDIANNESS
from protocol_parser.telecommand.patterns import FRAME_HEADER_LENGTH, PARAMETER_BYTE_COUNT


def fixed_length_bytes(value: Any, size: int) -> bytes:
    """Coerce bytes, int lists or hex text to exactly *size* bytes, zero-filling or truncating."""
    if isinstance(value, str):
        data = bytes.fromhex(value)
    else:
        data = bytes(value or b"")
    return data[:size].ljust(size, b"\x00")


def hex_string(data: bytes) -> str:
    """Render bytes as upper-case spaced hex, e.g. "88 0C 2B 04 01"."""
    return data.hex(" ").upper()


class TelecommandType(str, Enum):
    """Command class, used to pick the CAN header."""

    SHORT = "Short"
    LONG = "Long"
    RESET = "Reset"
    TELEMETRY_REQUEST = "TelemetryRequest"
    UNKNOWN = "Unknown"


class TelecommandTableType(str, Enum):
    """Semantic type of a telecommand-related table."""

    UNKNOWN = "Unknown"
    COMMAND_SUMMARY = "CommandSummary"
    PARAMETER_DETAIL = "ParameterDetail"
    CAN_ID_SUMMARY = "CanIdSummary"
    COMMAND_FRAME_FORMAT = "CommandFrameFormat"
    DATA_TYPE_DEFINITION = "DataTypeDefinition"


class DetectedTelecommandTable(BaseModel):
    type: TelecommandTableType = TelecommandTableType.UNKNOWN
    section_heading: str = ""
    table_title: str = ""
    source_table_index: int = 0


class TelecommandParameter(BaseModel):
    """One editable slot of a command payload."""

    parameter_id: str = ""
    name: str = ""
    start_byte: str = ""
    start_bit: str = ""
    length: int = 0
    input_type: str = ""
    data_format: str = ""
    default_value: str = ""
    option_values: str = ""
    value_range: str = ""
    unit: str = ""
    remark: str = ""


class TelecommandPreset(BaseModel):
    """A named, ready-to-send parameter payload."""

    name: str = ""
    remark: str = ""
    parameter_bytes: bytes = bytes(PARAMETER_BYTE_COUNT)

    @field_validator("parameter_bytes", mode="before")
    @classmethod
    def fix_payload_length(cls, value: Any) -> bytes:
        return fixed_length_bytes(value, PARAMETER_BYTE_COUNT)

    @field_serializer("parameter_bytes", when_used="json")
    def dump_payload(self, value: bytes) -> str:
        return hex_string(value)


class TelecommandEntry(BaseModel):
    """A telecommand with its code, default payload, editable parameters and presets."""

    name: str = ""
    code: str = ""
    command_code: int = Field(default=0, ge=0, le=0xFF)
    param_desc: str = ""
    remark: str = ""
    type: TelecommandType = TelecommandType.UNKNOWN
    code_alias: str = ""
    default_parameter_bytes: bytes = bytes(PARAMETER_BYTE_COUNT)
    parameters: list[TelecommandParameter] = []
    presets: list[TelecommandPreset] = []

    @field_validator("default_parameter_bytes", mode="before")
    @classmethod
    def fix_payload_length(cls, value: Any) -> bytes:
        return fixed_length_bytes(value, PARAMETER_BYTE_COUNT)

    @field_serializer("default_parameter_bytes", when_used="json")
    def dump_payload(self, value: bytes) -> str:
        return hex_string(value)


class CanFrameInfo(BaseModel):
    """One decoded CAN ID summary row and its 5-byte frame header."""

    frame_type: str = ""
    channel: str = ""
    priority: int = 0
    bus_flag: int = 0
    data_type: int = 0
    dest_addr: int = 0
    src_addr: int = 0
    frame_flag: int = 0
    frame_count: int = 0
    header_bytes: bytes = bytes(FRAME_HEADER_LENGTH)

    @field_validator("header_bytes", mode="before")
    @classmethod
    def fix_header_length(cls, value: Any) -> bytes:
        return fixed_length_bytes(value, FRAME_HEADER_LENGTH)

    @field_serializer("header_bytes", when_used="json")
    def dump_header(self, value: bytes) -> str:
        return hex_string(value)


class ParameterDetailRow(BaseModel):
    """One parameter-detail table row: the command it belongs to, its preset and editable slots."""

    command_code: str
    preset: TelecommandPreset
    parameters: list[TelecommandParameter] = []


class TelecommandParseResult(BaseModel):
    """Complete telecommand extraction result for one protocol document."""

    system_name: str = ""
    document_title: str = ""
    default_endianness: str = DEFAULT_ENDIANNESS
    commands: list[TelecommandEntry] = []
    frame_infos: list[CanFrameInfo] = []
    detected_tables: list[DetectedTelecommandTable] = []
    warnings: list[str] = []
