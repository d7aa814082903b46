"""Telecommand analysis entry point.

Classifies a document's tables, parses each one with the routine for its
type, and folds the partial command records from the different tables into
one entry per command code.  Merging never overwrites a populated field, so
feeding the same tables twice gives the same result as feeding them once.
"""

import logging
from collections.abc import Iterable, Sequence

from protocol_parser.metadata import infer_endianness, infer_system_name
from protocol_parser.tables.schema import RawTable
from protocol_parser.telecommand.detection import detect_telecommand_tables
from protocol_parser.telecommand.fields import (
    build_alias,
    normalize_hex_code,
    parse_can_id_summary_table,
    parse_command_frame_table,
    parse_command_summary_table,
    parse_hex_byte,
    parse_parameter_detail_table,
)
from protocol_parser.telecommand.schema import (
    CanFrameInfo,
    ParameterDetailRow,
    TelecommandEntry,
    TelecommandParseResult,
    TelecommandTableType,
    TelecommandType,
)

logger = logging.getLogger(__name__)

NO_COMMANDS_WARNING = "未检测到遥控指令表，请检查文档格式或章节内容。"
NO_FRAME_INFO_WARNING = "未检测到 CAN ID 汇总表，导出时将使用默认帧头规则。"


# ─── Merging ──────────────────────────────────────────────────────────────────


def entry_key(entry: TelecommandEntry) -> str:
    """Case-insensitive map key: the entry's code, or its numeric code as 0xNN."""
    return (entry.code or f"0x{entry.command_code:02X}").casefold()


def merge_entry(existing: TelecommandEntry, incoming: TelecommandEntry) -> TelecommandEntry:
    """Return *existing* with only its empty fields filled from *incoming*."""
    update = {}
    for name in ("name", "param_desc", "remark", "code_alias"):
        if not getattr(existing, name) and getattr(incoming, name):
            update[name] = getattr(incoming, name)

    if not any(existing.default_parameter_bytes) and any(incoming.default_parameter_bytes):
        update["default_parameter_bytes"] = incoming.default_parameter_bytes

    if existing.type == TelecommandType.UNKNOWN and incoming.type != TelecommandType.UNKNOWN:
        update["type"] = incoming.type

    return existing.model_copy(update=update) if update else existing


def merge_entries(
    command_map: dict[str, TelecommandEntry], incoming: Iterable[TelecommandEntry]
) -> dict[str, TelecommandEntry]:
    """Return a new map with *incoming* folded in; the first entry seen for a code wins."""
    merged = dict(command_map)
    for entry in incoming:
        key = entry_key(entry)
        merged[key] = merge_entry(merged[key], entry) if key in merged else entry
    return merged


def find_by_code(command_map: dict[str, TelecommandEntry], code: str) -> str | None:
    """Return the map key for *code*, trying its normalized form then a lenient byte parse."""
    if not (code or "").strip():
        return None

    key = normalize_hex_code(code).casefold()
    if key in command_map:
        return key

    value = parse_hex_byte(code, lenient=True)
    if value is None:
        return None
    key = f"0x{value:02X}".casefold()
    return key if key in command_map else None


def attach_parameter_detail(entry: TelecommandEntry, detail: ParameterDetailRow) -> TelecommandEntry:
    """Add a detail row's preset, and any parameter not already covering the same start byte and length."""
    parameters = list(entry.parameters)
    for param in detail.parameters:
        duplicate = any(
            p.start_byte.casefold() == param.start_byte.casefold() and p.length == param.length for p in parameters
        )
        if not duplicate:
            parameters.append(param)

    return entry.model_copy(update={"presets": [*entry.presets, detail.preset], "parameters": parameters})


# ─── Analysis ─────────────────────────────────────────────────────────────────


def finalize_commands(command_map: dict[str, TelecommandEntry]) -> list[TelecommandEntry]:
    """Sort by code then name, and make sure every command has an alias."""
    commands = sorted(command_map.values(), key=lambda c: (c.command_code, c.name))
    return [c if c.code_alias else c.model_copy(update={"code_alias": build_alias(c.name)}) for c in commands]


def analyze(
    tables: Sequence[RawTable],
    document_title: str,
    paragraph_texts: Sequence[str] | None = None,
) -> TelecommandParseResult:
    """Analyze a document's tables and produce the complete telecommand extraction result."""
    detected_tables = detect_telecommand_tables(tables)

    command_map: dict[str, TelecommandEntry] = {}
    frame_infos: list[CanFrameInfo] = []

    for detected in detected_tables:
        if not 0 <= detected.source_table_index < len(tables):
            continue
        table = tables[detected.source_table_index]

        if detected.type == TelecommandTableType.COMMAND_SUMMARY:
            command_map = merge_entries(command_map, parse_command_summary_table(table))
        elif detected.type == TelecommandTableType.COMMAND_FRAME_FORMAT:
            command_map = merge_entries(command_map, parse_command_frame_table(table))
        elif detected.type == TelecommandTableType.PARAMETER_DETAIL:
            for detail in parse_parameter_detail_table(table):
                key = find_by_code(command_map, detail.command_code)
                if key is None:
                    logger.debug("No command for parameter row '%s' (%s)", detail.preset.name, detail.command_code)
                    continue
                command_map[key] = attach_parameter_detail(command_map[key], detail)
        elif detected.type == TelecommandTableType.CAN_ID_SUMMARY:
            frame_infos.extend(parse_can_id_summary_table(table))

    commands = finalize_commands(command_map)

    warnings: list[str] = []
    if not commands:
        warnings.append(NO_COMMANDS_WARNING)
    if not frame_infos:
        warnings.append(NO_FRAME_INFO_WARNING)

    result = TelecommandParseResult(
        system_name=infer_system_name(document_title, paragraph_texts),
        document_title=document_title,
        default_endianness=infer_endianness(paragraph_texts),
        commands=commands,
        frame_infos=frame_infos,
        detected_tables=detected_tables,
        warnings=warnings,
    )
    logger.info(
        "Telecommand analysis of '%s': system=%s, %d commands, %d frame infos, %d warnings",
        document_title,
        result.system_name,
        len(commands),
        len(frame_infos),
        len(warnings),
    )
    return result
