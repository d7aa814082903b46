"""Row parsers for the four telecommand table types.

Each ``parse_*`` routine locates its columns by header keyword, walks the
data rows below the detected header row, and skips any row whose code or
bit-field cells do not parse.  A routine whose required columns are missing
returns an empty list.
"""

import logging

from protocol_parser.tables.schema import RawTable
from protocol_parser.telecommand.frames import build_frame_header_bytes
from protocol_parser.telecommand.patterns import (
    ALIAS_TABLE,
    BARE_HEX_BYTE_RE,
    BINARY_RUN_RE,
    CAN_ID_FIELD_HEADERS,
    CHANNEL_A,
    CHANNEL_B,
    DEFAULT_ALIAS,
    EDITABLE_LITERAL,
    EDITABLE_MARKER,
    FRAME_BYTE_HEADER_RE,
    FRAME_WORD_OFFSET,
    HEADER_SCAN_ROWS,
    HEX_BYTE_RE,
    HEX_BYTE_SEARCH_RE,
    LONG_COMMAND_MIN_WORD_REFS,
    PARAMETER_BYTE_COUNT,
    RANGE_RE,
    RESET_KEYWORD,
    TELEMETRY_REQUEST_KEYWORD,
    UNIT_RE,
    WORD_HEADER_RE,
    WORD_REF_RE,
)
from protocol_parser.telecommand.schema import (
    CanFrameInfo,
    ParameterDetailRow,
    TelecommandEntry,
    TelecommandParameter,
    TelecommandPreset,
    TelecommandType,
)

logger = logging.getLogger(__name__)


# ─── Header & Column Helpers ──────────────────────────────────────────────────


def row_contains_keyword(table: RawTable, row: int, keyword: str) -> bool:
    return any(keyword in value.strip() for value in table.get_row_values(row))


def detect_header_row(table: RawTable, *keywords: str) -> int:
    """Return the first of the top 4 rows holding all but at most one of *keywords* (default 0)."""
    for r in range(min(HEADER_SCAN_ROWS, table.row_count)):
        matched = sum(1 for keyword in keywords if row_contains_keyword(table, r, keyword))
        if matched >= len(keywords) - 1:
            return r
    return 0


def find_column(table: RawTable, header_row: int, *keywords: str) -> int:
    """Return the first column whose header cell contains any of *keywords*, or -1."""
    for c in range(table.col_count):
        value = table.get_value(header_row, c).strip()
        if any(keyword in value for keyword in keywords):
            return c
    return -1


def find_exact_column(table: RawTable, header_row: int, header: str) -> int:
    """Return the column whose header cell is exactly *header* (case-insensitive), or -1."""
    for c in range(table.col_count):
        if table.get_value(header_row, c).strip().upper() == header.upper():
            return c
    return -1


def cell(table: RawTable, row: int, col: int) -> str:
    """Stripped cell value, or "" for a missing (-1) column."""
    return table.get_value(row, col).strip() if col >= 0 else ""


# ─── Token Parsing ────────────────────────────────────────────────────────────


def parse_hex_byte(token: str, lenient: bool = False) -> int | None:
    """Parse "0x1A", "1Ah" or "1A" into a byte value; None when the token is not one byte of hex.

    With *lenient*, a 0x code embedded in surrounding text ("0x1A（复位）")
    is accepted too.
    """
    token = (token or "").strip()
    if not token:
        return None

    m = (HEX_BYTE_SEARCH_RE.search if lenient else HEX_BYTE_RE.match)(token)
    if m:
        return int(m.group(1), 16)

    m = BARE_HEX_BYTE_RE.match(token)
    if m:
        return int(m.group(1), 16)
    return None


def normalize_hex_code(code: str, lenient: bool = False) -> str:
    """Canonical "0xNN" form of a hex code; unparsable text is returned stripped."""
    value = parse_hex_byte(code, lenient=lenient)
    if value is None:
        return (code or "").strip()
    return f"0x{value:02X}"


def parse_binary_field(token: str) -> int | None:
    """Parse the first run of 0/1 characters as base 2 ("011" -> 3); None when the token has none."""
    m = BINARY_RUN_RE.search(token or "")
    if not m:
        return None
    return int(m.group(0), 2)


def guess_type(name: str, param_desc: str) -> TelecommandType:
    """Infer the command class from its name and parameter description."""
    if TELEMETRY_REQUEST_KEYWORD in name:
        return TelecommandType.TELEMETRY_REQUEST
    if RESET_KEYWORD in name:
        return TelecommandType.RESET
    if len(WORD_REF_RE.findall(param_desc or "")) >= LONG_COMMAND_MIN_WORD_REFS:
        return TelecommandType.LONG
    return TelecommandType.SHORT


def build_alias(name: str) -> str:
    """Return the short alias of the first ALIAS_TABLE entry whose keywords all appear in *name*."""
    for keywords, alias in ALIAS_TABLE:
        if all(keyword in name for keyword in keywords):
            return alias
    return DEFAULT_ALIAS


def extract_range(remark: str) -> str:
    """Pull "0-100" out of "范围：0~100"; "" when absent."""
    m = RANGE_RE.search(remark or "")
    if not m:
        return ""
    return m.group(1).replace("～", "-").replace("~", "-")


def extract_unit(remark: str) -> str:
    m = UNIT_RE.search(remark or "")
    return m.group(1).strip() if m else ""


def extract_channel(channel_text: str, bus_flag: int) -> str:
    """Channel from a row's channel cell; falls back to the bus flag when the text names neither or both."""
    has_a = "A" in channel_text
    has_b = "B" in channel_text
    if has_a and not has_b:
        return CHANNEL_A
    if has_b and not has_a:
        return CHANNEL_B
    return CHANNEL_A if bus_flag == 0 else CHANNEL_B


def is_editable_token(token: str) -> bool:
    token = (token or "").strip()
    return token == EDITABLE_LITERAL or EDITABLE_MARKER in token


# ─── Command Summary ──────────────────────────────────────────────────────────


def parse_command_summary_table(table: RawTable) -> list[TelecommandEntry]:
    """Parse a 指令名称 / 指令码 / 指令参数 table into one entry per command row."""
    header_row = detect_header_row(table, "指令名称", "指令码")
    name_col = find_column(table, header_row, "指令名称")
    code_col = find_column(table, header_row, "指令码")
    param_col = find_column(table, header_row, "指令参数")
    remark_col = find_column(table, header_row, "备注")
    if name_col < 0 or code_col < 0:
        logger.debug("Command summary table '%s' lacks name/code columns", table.title or "")
        return []

    entries: list[TelecommandEntry] = []
    for r in range(header_row + 1, table.row_count):
        name = cell(table, r, name_col)
        code = cell(table, r, code_col)
        if not name or not code:
            continue

        code_byte = parse_hex_byte(code)
        if code_byte is None:
            logger.debug("Skipping command row %d: unparsable code '%s'", r, code)
            continue

        param_desc = cell(table, r, param_col)
        entries.append(
            TelecommandEntry(
                name=name,
                code=normalize_hex_code(code),
                command_code=code_byte,
                param_desc=param_desc,
                remark=cell(table, r, remark_col),
                type=guess_type(name, param_desc),
                code_alias=build_alias(name),
            )
        )
    return entries


# ─── Command Frame Format ─────────────────────────────────────────────────────


def parse_command_frame_table(table: RawTable) -> list[TelecommandEntry]:
    """Parse a 命令 / B0..B7 layout table: B0 is the command code, B1..B7 the default payload."""
    header_row = detect_header_row(table, "命令", "B0")
    cmd_col = find_column(table, header_row, "命令")
    b0_col = find_column(table, header_row, "B0")
    if cmd_col < 0 or b0_col < 0:
        return []

    byte_cols = [
        c for c in range(table.col_count) if FRAME_BYTE_HEADER_RE.match(table.get_value(header_row, c).strip())
    ]

    entries: list[TelecommandEntry] = []
    for r in range(header_row + 1, table.row_count):
        name = cell(table, r, cmd_col)
        code = cell(table, r, b0_col)
        if not name or not code:
            continue

        code_byte = parse_hex_byte(code)
        if code_byte is None:
            logger.debug("Skipping frame row %d: unparsable code '%s'", r, code)
            continue

        payload = [parse_hex_byte(cell(table, r, c)) or 0 for c in byte_cols[:PARAMETER_BYTE_COUNT]]
        entries.append(
            TelecommandEntry(
                name=name,
                code=normalize_hex_code(code),
                command_code=code_byte,
                type=guess_type(name, ""),
                code_alias=build_alias(name),
                default_parameter_bytes=payload,
            )
        )
    return entries


# ─── Parameter Detail ─────────────────────────────────────────────────────────


def word_columns(table: RawTable, header_row: int) -> list[tuple[int, int]]:
    """Return (word index, column) for every W<n> header, sorted by word index."""
    columns = []
    for c in range(table.col_count):
        m = WORD_HEADER_RE.match(table.get_value(header_row, c).strip())
        if m:
            columns.append((int(m.group(1)), c))
    return sorted(columns)


def build_editable_parameters(
    word_cols: list[tuple[int, int]], table: RawTable, row: int, remark: str
) -> list[TelecommandParameter]:
    """Editable payload slots of one row.

    A single editable word becomes a one-byte hex TextBox parameter.  Several
    editable words collapse into one decimal parameter spanning W<min>-W<max>.
    """
    value_range = extract_range(remark)
    unit = extract_unit(remark)
    editable = [w for w, c in word_cols if w < PARAMETER_BYTE_COUNT and is_editable_token(cell(table, row, c))]
    if not editable:
        return []

    if len(editable) == 1:
        word = editable[0]
        name, length, data_format, default = f"W{word}", 1, "Hex", "00"
    else:
        word, last = min(editable), max(editable)
        name, length, data_format, default = f"W{word}-W{last}", last - word + 1, "Decimal", "0"

    return [
        TelecommandParameter(
            name=name,
            start_byte=f"W{FRAME_WORD_OFFSET + word}",
            length=length,
            input_type="TextBox",
            data_format=data_format,
            default_value=default,
            value_range=value_range,
            unit=unit,
            remark=remark,
        )
    ]


def parse_parameter_detail_table(table: RawTable) -> list[ParameterDetailRow]:
    """Parse a 编号 / 指令名称 / 指令码 / W0..Wn table into presets and editable parameters.

    Payload word W<n> (n <= 6) fills parameter byte n, which is frame byte
    W<n+6>.  Words past W6 are ignored.
    """
    header_row = detect_header_row(table, "编号", "指令名称", "指令码")
    name_col = find_column(table, header_row, "指令名称")
    code_col = find_column(table, header_row, "指令码")
    remark_col = find_column(table, header_row, "备注")
    if name_col < 0 or code_col < 0:
        return []

    word_cols = word_columns(table, header_row)
    if not word_cols:
        return []

    rows: list[ParameterDetailRow] = []
    for r in range(header_row + 1, table.row_count):
        name = cell(table, r, name_col)
        code = cell(table, r, code_col)
        if not name or not code:
            continue

        remark = cell(table, r, remark_col)
        payload = bytearray(PARAMETER_BYTE_COUNT)
        for word, c in word_cols:
            value = parse_hex_byte(cell(table, r, c))
            if word < PARAMETER_BYTE_COUNT and value is not None:
                payload[word] = value

        rows.append(
            ParameterDetailRow(
                command_code=normalize_hex_code(code),
                preset=TelecommandPreset(name=name, remark=remark, parameter_bytes=bytes(payload)),
                parameters=build_editable_parameters(word_cols, table, r, remark),
            )
        )
    return rows


# ─── CAN ID Summary ───────────────────────────────────────────────────────────


def find_can_id_columns(table: RawTable, header_row: int) -> list[int]:
    """Column of each identifier bit-field, by Chinese header or else exact abbreviation."""
    columns = []
    for zh, abbrev in CAN_ID_FIELD_HEADERS:
        col = find_column(table, header_row, zh)
        if col < 0:
            col = find_exact_column(table, header_row, abbrev)
        columns.append(col)
    return columns


def parse_can_id_summary_table(table: RawTable) -> list[CanFrameInfo]:
    """Parse CAN ID summary rows into frame infos with their 5-byte headers."""
    header_row = detect_header_row(table, "优先级", "总线标志")
    frame_col = find_column(table, header_row, "命令")
    field_cols = find_can_id_columns(table, header_row)
    if any(col < 0 for col in field_cols):
        logger.debug("CAN ID table '%s' lacks one of the seven bit-field columns", table.title or "")
        return []

    channel_col = table.col_count - 1
    infos: list[CanFrameInfo] = []
    for r in range(header_row + 1, table.row_count):
        frame_type = cell(table, r, frame_col)
        if not frame_type:
            continue

        values = [parse_binary_field(cell(table, r, c)) for c in field_cols]
        if any(v is None for v in values):
            logger.debug("Skipping CAN ID row %d: non-binary bit-field", r)
            continue

        p, lt, dt, da, sa, ft, fc = values
        infos.append(
            CanFrameInfo(
                frame_type=frame_type,
                channel=extract_channel(cell(table, r, channel_col), lt),
                priority=p,
                bus_flag=lt,
                data_type=dt,
                dest_addr=da,
                src_addr=sa,
                frame_flag=ft,
                frame_count=fc,
                header_bytes=build_frame_header_bytes(p, lt, dt, da, sa, ft, fc),
            )
        )
    return infos
