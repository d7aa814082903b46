"""Telecommand table classification.

Every table is labelled from the text of its first three rows.  Rules are
tried in a fixed priority order (CAN ID summary, command frame layout,
command summary, parameter detail, data-type definition) and the first one
that matches wins; tables matching none are left out of the result.
"""

import logging
from collections.abc import Sequence

from protocol_parser.tables.schema import RawTable
from protocol_parser.telecommand.patterns import (
    CAN_ID_FIELD_HEADERS,
    CAN_ID_MIN_MATCHES,
    COMMAND_FRAME_HEADERS,
    COMMAND_FRAME_MIN_MATCHES,
    COMMAND_SUMMARY_HEADERS,
    DATA_TYPE_DEFINITION_HEADERS,
    HEADER_CANDIDATE_ROWS,
    MIN_TABLE_ROWS,
    PARAMETER_DETAIL_HEADERS,
    WORD_HEADER_RE,
)
from protocol_parser.telecommand.schema import DetectedTelecommandTable, TelecommandTableType

logger = logging.getLogger(__name__)


def header_candidates(table: RawTable) -> list[str]:
    """Return every non-empty stripped cell value of the first three rows."""
    headers: list[str] = []
    for r in range(min(HEADER_CANDIDATE_ROWS, table.row_count)):
        headers.extend(v.strip() for v in table.get_row_values(r) if v.strip())
    return headers


def contains_any(headers: list[str], *keywords: str) -> bool:
    return any(keyword in h for h in headers for keyword in keywords)


# ─── Classification Rules ─────────────────────────────────────────────────────


def is_can_id_summary(headers: list[str]) -> bool:
    matched = sum(1 for zh, abbrev in CAN_ID_FIELD_HEADERS if contains_any(headers, zh, abbrev))
    return matched >= CAN_ID_MIN_MATCHES


def is_command_frame_format(headers: list[str]) -> bool:
    matched = sum(1 for keyword in COMMAND_FRAME_HEADERS if contains_any(headers, keyword))
    return matched >= COMMAND_FRAME_MIN_MATCHES


def is_command_summary(headers: list[str]) -> bool:
    return all(contains_any(headers, keyword) for keyword in COMMAND_SUMMARY_HEADERS)


def is_parameter_detail(headers: list[str]) -> bool:
    """编号 + 指令名称 + 指令码, plus at least one W<n> column."""
    if not all(contains_any(headers, keyword) for keyword in PARAMETER_DETAIL_HEADERS):
        return False
    return any(WORD_HEADER_RE.match(h) for h in headers)


def is_data_type_definition(headers: list[str]) -> bool:
    return all(contains_any(headers, keyword) for keyword in DATA_TYPE_DEFINITION_HEADERS)


# Priority order; the first rule that matches decides the type
CLASSIFICATION_RULES = (
    (is_can_id_summary, TelecommandTableType.CAN_ID_SUMMARY),
    (is_command_frame_format, TelecommandTableType.COMMAND_FRAME_FORMAT),
    (is_command_summary, TelecommandTableType.COMMAND_SUMMARY),
    (is_parameter_detail, TelecommandTableType.PARAMETER_DETAIL),
    (is_data_type_definition, TelecommandTableType.DATA_TYPE_DEFINITION),
)


def classify_table(table: RawTable) -> TelecommandTableType:
    """Return the telecommand table type of *table*, or UNKNOWN."""
    headers = header_candidates(table)
    for rule, table_type in CLASSIFICATION_RULES:
        if rule(headers):
            return table_type
    return TelecommandTableType.UNKNOWN


def detect_telecommand_tables(tables: Sequence[RawTable]) -> list[DetectedTelecommandTable]:
    """Classify every table of a document and return the telecommand-related ones in source order."""
    detected: list[DetectedTelecommandTable] = []
    for i, table in enumerate(tables):
        if table.is_empty or table.row_count < MIN_TABLE_ROWS:
            continue

        table_type = classify_table(table)
        if table_type == TelecommandTableType.UNKNOWN:
            continue

        logger.debug("Table %d ('%s') classified as %s", i, table.title or "", table_type.value)
        detected.append(
            DetectedTelecommandTable(
                type=table_type,
                section_heading=table.section_heading or "",
                table_title=table.title or "",
                source_table_index=i,
            )
        )

    logger.info("Detected %d telecommand tables", len(detected))
    return detected
