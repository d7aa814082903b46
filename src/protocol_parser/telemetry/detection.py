"""Telemetry table classification and CAN channel extraction.

Scans every RawTable of a document, decides which ones define telemetry
frames (by header keywords, or failing that by W<n>/B<n> content in the
first column), which ones are CAN identifier summary tables, and labels the
telemetry tables Sync or Async from their heading and title text.
"""

import logging
from collections.abc import Sequence

from protocol_parser.tables.schema import RawTable
from protocol_parser.telemetry.patterns import (
    ASYNC_KEYWORDS,
    BYTE_SEQUENCE_MIN_HITS,
    BYTE_SEQUENCE_SAMPLE_ROWS,
    CAN_ID_SUMMARY_HEADERS,
    CAN_ID_SUMMARY_MIN_COLS,
    CAN_ID_SUMMARY_MIN_MATCHES,
    COMMAND_COLUMN_KEYWORD,
    FRAME_ID_MAX_TOKEN_LENGTH,
    FRAME_ID_MIN_BITS,
    HEADER_PATTERNS,
    HEADER_SCAN_ROWS,
    MIN_TABLE_ROWS,
    SPECIAL_BYTE_SEQUENCES,
    SYNC_KEYWORDS,
)
from protocol_parser.telemetry.schema import ChannelInfo, DetectedTelemetryTable, DetectionResult, TelemetryType

logger = logging.getLogger(__name__)


# ─── Cell Helpers ─────────────────────────────────────────────────────────────


def header_values(table: RawTable, max_rows: int) -> list[str]:
    """Return the stripped cell values of the first *max_rows* rows."""
    values: list[str] = []
    for r in range(min(max_rows, table.row_count)):
        values.extend(v.strip() for v in table.get_row_values(r))
    return values


def find_column_index(table: RawTable, header_row: int, keyword: str) -> int:
    """Return the first column whose header cell contains *keyword*, or -1."""
    for c in range(table.col_count):
        if keyword in table.get_value(header_row, c).strip():
            return c
    return -1


# ─── Telemetry Table Classification ───────────────────────────────────────────


def matches_header_pattern(table: RawTable) -> bool:
    """Return True if every keyword of one HEADER_PATTERNS set appears in the header rows."""
    headers = header_values(table, HEADER_SCAN_ROWS)
    return any(all(any(keyword in h for h in headers) for keyword in pattern) for pattern in HEADER_PATTERNS)


def is_byte_sequence_value(value: str) -> bool:
    """Return True for byte-position notation such as "W7", "W7-W8", "B3", "Dh", "SUM"."""
    value = value.strip()
    if not value:
        return False
    if value in SPECIAL_BYTE_SEQUENCES:
        return True
    if value[0] in "Ww" and len(value) > 1:
        rest = value[1:].replace("-", "").replace("W", "").replace("w", "")
        return rest[:1].isdigit()
    if value[0] in "Bb" and len(value) > 1:
        return value[1].isdigit()
    return False


def has_byte_sequence_column(table: RawTable) -> bool:
    """Content fallback: at least 3 of the first 10 data rows start with byte-sequence notation."""
    last_row = min(BYTE_SEQUENCE_SAMPLE_ROWS + 1, table.row_count)
    hits = sum(1 for r in range(1, last_row) if is_byte_sequence_value(table.get_value(r, 0)))
    return hits >= BYTE_SEQUENCE_MIN_HITS


def is_telemetry_definition_table(table: RawTable) -> bool:
    """Return True if the table defines telemetry fields (header keywords or byte-sequence column)."""
    if table.is_empty or table.row_count < MIN_TABLE_ROWS:
        return False
    return matches_header_pattern(table) or has_byte_sequence_column(table)


def is_can_id_summary_table(table: RawTable) -> bool:
    """Return True for a CAN ID summary table (ID28/P/LT/DT/DA/SA/FT/FC headers)."""
    if table.col_count < CAN_ID_SUMMARY_MIN_COLS:
        return False
    headers = header_values(table, 3)
    matched = sum(1 for kw in CAN_ID_SUMMARY_HEADERS if any(h == kw or kw in h for h in headers))
    return matched >= CAN_ID_SUMMARY_MIN_MATCHES


def classify_telemetry_type(table: RawTable) -> TelemetryType:
    """Classify a telemetry table as Sync or Async from its section heading and title."""
    context = f"{table.section_heading or ''} {table.title or ''}"
    if any(kw in context for kw in ASYNC_KEYWORDS):
        return TelemetryType.ASYNC
    if any(kw in context for kw in SYNC_KEYWORDS):
        return TelemetryType.SYNC
    return TelemetryType.UNKNOWN


def resolve_ambiguous_types(
    detected: list[DetectedTelemetryTable],
) -> tuple[list[DetectedTelemetryTable], list[int]]:
    """Assign a type to every Unknown table.

    The first Unknown table fills Sync if no Sync table exists, the next one
    fills Async if no Async table exists; any others default to Sync.
    Returns the updated tables and the source indices that were resolved.
    """
    has_sync = any(t.type == TelemetryType.SYNC for t in detected)
    has_async = any(t.type == TelemetryType.ASYNC for t in detected)

    resolved: list[DetectedTelemetryTable] = []
    fallback_indices: list[int] = []
    for table in detected:
        if table.type != TelemetryType.UNKNOWN:
            resolved.append(table)
            continue
        if not has_sync:
            new_type, has_sync = TelemetryType.SYNC, True
        elif not has_async:
            new_type, has_async = TelemetryType.ASYNC, True
        else:
            new_type = TelemetryType.SYNC
        logger.debug("Table %d has no type keywords; assigned %s", table.source_table_index, new_type.value)
        resolved.append(table.model_copy(update={"type": new_type}))
        fallback_indices.append(table.source_table_index)
    return resolved, fallback_indices


def detect_telemetry_tables(tables: Sequence[RawTable]) -> DetectionResult:
    """Find telemetry definition tables and CAN ID summary tables in a document.

    Returned telemetry tables carry no fields yet; the analyzer parses them.
    """
    detected: list[DetectedTelemetryTable] = []
    summary_indices: list[int] = []

    for i, table in enumerate(tables):
        if table.is_empty or table.row_count < MIN_TABLE_ROWS:
            continue
        if is_telemetry_definition_table(table):
            detected.append(
                DetectedTelemetryTable(
                    type=classify_telemetry_type(table),
                    section_heading=table.section_heading or "",
                    table_title=table.title or "",
                    source_table_index=i,
                )
            )
        elif is_can_id_summary_table(table):
            summary_indices.append(i)

    detected, fallback_indices = resolve_ambiguous_types(detected)
    logger.info("Detected %d telemetry tables, %d CAN ID summary tables", len(detected), len(summary_indices))
    return DetectionResult(
        telemetry_tables=detected,
        can_id_summary_table_indices=summary_indices,
        fallback_table_indices=fallback_indices,
    )


# ─── Channel Info ─────────────────────────────────────────────────────────────


def is_binary_like(value: str) -> bool:
    """Return True if the value consists only of 0, 1 and spaces."""
    return all(ch in "01 " for ch in value)


def build_frame_id(table: RawTable, row: int) -> str:
    """Concatenate the binary bit-field cells of a summary row into a 10-digit hex frame ID.

    Only columns 1..N-2 are considered (the first holds the command label, the
    last the channel).  Returns "" when fewer than 8 bits are found or the
    value does not fit a signed 64-bit integer.
    """
    bits: list[str] = []
    for c in range(1, table.col_count - 1):
        value = table.get_value(row, c).strip()
        if value and len(value) <= FRAME_ID_MAX_TOKEN_LENGTH and is_binary_like(value):
            bits.append(value)

    combined = "".join(bits).replace(" ", "")
    if len(combined) < FRAME_ID_MIN_BITS:
        return ""

    frame_id = int(combined, 2)
    if frame_id.bit_length() > 63:
        return ""
    return f"{frame_id:010X}"


def _is_response_row(command_text: str, target_type: TelemetryType) -> bool:
    if target_type == TelemetryType.ASYNC:
        return "异步" in command_text and "返回" in command_text
    return "遥测" in command_text and "返回" in command_text and "异步" not in command_text


def extract_channel_info(
    tables: Sequence[RawTable],
    summary_indices: Sequence[int],
    target_type: TelemetryType,
) -> list[ChannelInfo]:
    """Extract per-channel frame IDs for Sync or Async telemetry from CAN ID summary tables.

    Each matching "...返回" row contributes one frame to the channel named in
    its last column; the first row's frame ID becomes the channel's APID.
    """
    channels: dict[str, ChannelInfo] = {}

    for idx in summary_indices:
        if idx < 0 or idx >= len(tables):
            continue
        table = tables[idx]
        cmd_col = find_column_index(table, 0, COMMAND_COLUMN_KEYWORD)
        if cmd_col < 0:
            continue
        last_col = table.col_count - 1

        for r in range(1, table.row_count):
            command_text = table.get_value(r, cmd_col).strip()
            if not command_text or not _is_response_row(command_text, target_type):
                continue

            label = table.get_value(r, last_col).strip()
            slash = label.find("/")
            if slash > 0:
                label = label[:slash]
            if not label:
                continue

            frame_id = build_frame_id(table, r)
            if not frame_id:
                logger.debug("Summary table %d row %d: no frame ID bits", idx, r)
                continue

            existing = channels.get(label)
            if existing is None:
                channels[label] = ChannelInfo(channel_label=label, frame_id_hex=frame_id, frame_count=1)
            else:
                channels[label] = existing.model_copy(update={"frame_count": existing.frame_count + 1})

    return list(channels.values())
