"""Telemetry analysis entry point.

Runs table detection over every RawTable of a document, parses each
telemetry table into fields, files the tables under Sync or Async, derives
per-channel frame IDs from the CAN ID summary tables, and collects warnings
for anything that had to be guessed.
"""

import logging
from collections.abc import Sequence

from protocol_parser.metadata import infer_endianness, infer_system_name
from protocol_parser.tables.schema import RawTable
from protocol_parser.telemetry.detection import detect_telemetry_tables, extract_channel_info
from protocol_parser.telemetry.fields import parse_telemetry_table
from protocol_parser.telemetry.patterns import DEFAULT_CHANNEL_LABELS
from protocol_parser.telemetry.schema import ChannelInfo, DetectedTelemetryTable, ProtocolParseResult, TelemetryType

logger = logging.getLogger(__name__)

NO_TABLES_WARNING = "未检测到遥测定义表格，请检查文档格式是否符合协议规范"


def default_channels() -> list[ChannelInfo]:
    """Placeholder A/B channels with empty frame IDs."""
    return [ChannelInfo(channel_label=label) for label in DEFAULT_CHANNEL_LABELS]


def analyze(
    tables: Sequence[RawTable],
    document_title: str,
    paragraph_texts: Sequence[str] | None = None,
) -> ProtocolParseResult:
    """Analyze a document's tables and produce the complete telemetry extraction result."""
    detection = detect_telemetry_tables(tables)
    fallback = set(detection.fallback_table_indices)

    parsed_tables: list[DetectedTelemetryTable] = []
    sync_tables: list[DetectedTelemetryTable] = []
    async_tables: list[DetectedTelemetryTable] = []
    warnings: list[str] = []

    for detected in detection.telemetry_tables:
        if detected.source_table_index >= len(tables):
            continue
        detected = detected.model_copy(update={"fields": parse_telemetry_table(tables[detected.source_table_index])})
        parsed_tables.append(detected)

        if detected.type == TelemetryType.ASYNC:
            async_tables.append(detected)
            if detected.source_table_index in fallback:
                warnings.append(f"表格 '{detected.table_title}' 类型未确定，按默认规则归类为异步遥测")
        elif detected.type == TelemetryType.SYNC:
            sync_tables.append(detected)
            if detected.source_table_index in fallback:
                warnings.append(f"表格 '{detected.table_title}' 类型未确定，按默认规则归类为同步遥测")
        else:
            sync_tables.append(detected)
            warnings.append(f"表格 '{detected.table_title}' 类型未确定，默认归类为同步遥测")

    summary_indices = detection.can_id_summary_table_indices
    sync_channels = extract_channel_info(tables, summary_indices, TelemetryType.SYNC) or default_channels()
    async_channels = extract_channel_info(tables, summary_indices, TelemetryType.ASYNC) or default_channels()

    if not sync_tables and not async_tables:
        warnings.append(NO_TABLES_WARNING)

    result = ProtocolParseResult(
        system_name=infer_system_name(document_title, paragraph_texts),
        document_title=document_title,
        default_endianness=infer_endianness(paragraph_texts),
        sync_tables=sync_tables,
        async_tables=async_tables,
        sync_channels=sync_channels,
        async_channels=async_channels,
        all_detected_tables=parsed_tables,
        warnings=warnings,
    )
    logger.info(
        "Telemetry analysis of %r: %d sync fields, %d async fields, %d warnings",
        document_title,
        result.sync_field_count,
        result.async_field_count,
        len(warnings),
    )
    return result
