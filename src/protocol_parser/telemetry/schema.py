"""Pydantic models for parsed telemetry definitions.

One ProtocolTelemetryField per telemetry table row (after continuation rows
are folded in), grouped into DetectedTelemetryTable objects and assembled
into a ProtocolParseResult by the analyzer.
"""

from enum import Enum

from pydantic import BaseModel, computed_field

from protocol_parser.config import DEFAULT_ENDIANNESS


class TelemetryType(str, Enum):
    """Telemetry table classification."""

    SYNC = "Sync"
    ASYNC = "Async"
    UNKNOWN = "Unknown"


class EnumEntry(BaseModel):
    """One raw-value -> meaning pair of an enumerated telemetry field."""

    value: str
    description: str


class ProtocolTelemetryField(BaseModel):
    """A single telemetry field parsed from a 字序/数据内容/字节长度/备注 row.

    ``bit_offset`` is -1 and ``bit_length`` 0 for whole-byte fields.
    ``enum_mapping`` is the ``|``-joined form of ``enum_entries``.
    """

    byte_sequence: str = ""
    field_name: str = ""
    byte_length: int = 0
    bit_offset: int = -1
    bit_length: int = 0
    remarks: str = ""
    unit: str = ""
    enum_mapping: str = ""
    enum_entries: list[EnumEntry] = []
    data_type_hint: str = ""
    is_header_field: bool = False
    is_checksum: bool = False
    is_reserved: bool = False


class DetectedTelemetryTable(BaseModel):
    """A telemetry table found in the document, with its parsed fields once analyzed."""

    type: TelemetryType = TelemetryType.UNKNOWN
    section_heading: str = ""
    table_title: str = ""
    source_table_index: int = 0
    fields: list[ProtocolTelemetryField] = []


class ChannelInfo(BaseModel):
    """CAN channel (A/B) with the frame ID used as its APID value."""

    channel_label: str = ""
    frame_id_hex: str = ""
    frame_count: int = 0


class DetectionResult(BaseModel):
    """Output of the table classification pass."""

    telemetry_tables: list[DetectedTelemetryTable] = []
    can_id_summary_table_indices: list[int] = []
    # Tables whose Sync/Async type came from the fallback policy, not from keywords
    fallback_table_indices: list[int] = []


class ProtocolParseResult(BaseModel):
    """Complete telemetry extraction result for one protocol document."""

    system_name: str = ""
    document_title: str = ""
    default_endianness: str = DEFAULT_ENDIANNESS
    sync_tables: list[DetectedTelemetryTable] = []
    async_tables: list[DetectedTelemetryTable] = []
    sync_channels: list[ChannelInfo] = []
    async_channels: list[ChannelInfo] = []
    all_detected_tables: list[DetectedTelemetryTable] = []
    warnings: list[str] = []

    @computed_field
    @property
    def sync_field_count(self) -> int:
        return sum(len(table.fields) for table in self.sync_tables)

    @computed_field
    @property
    def async_field_count(self) -> int:
        return sum(len(table.fields) for table in self.async_tables)
