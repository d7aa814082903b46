"""Row-level parsing of telemetry definition tables into ProtocolTelemetryField objects.

Parsing runs in two passes over a table already known to define telemetry:

  1. parse_rows          -- one ParsedRow per data row: byte sequence, length,
                            bit-field name, unit, enum mapping, type hint, flags
  2. merge_continuations -- rows with neither a name nor a bit field are folded
                            into the field above them (multi-line cells, byte
                            ranges split over several rows)

Everything here is best effort: unparsable cells leave the corresponding
attribute at its default and never abort the table.
"""

import logging

from pydantic import BaseModel

from protocol_parser.tables.schema import RawTable
from protocol_parser.telemetry.patterns import (
    BIT_FIELD_RE,
    BIT_PREFIX_RE,
    BIT_PREFIXED_NAME_RE,
    BYTE_SEQ_BARE_RANGE_RE,
    BYTE_SEQ_COLUMN_KEYWORDS,
    BYTE_SEQ_PREFIX_RE,
    CHECKSUM_SEQUENCES,
    DATA_TYPE_RE,
    DIGITS_RE,
    ENUM_DECIMAL_RE,
    ENUM_HEX_ONLY_RE,
    ENUM_HEX_RE,
    ENUM_MIN_ENTRIES,
    ENUM_NUMBER_ONLY_RE,
    ENUM_NUMERIC_RUN_RE,
    ENUM_REJECT_KEYWORDS,
    FIRST_NUMBER_RE,
    HEADER_FIELD_SEQUENCES,
    HEADER_ROW_MARKERS,
    HEADER_SCAN_ROWS,
    HEX_DASH_RE,
    HEX_VALUE_LIST_RE,
    HEX_VALUE_RE,
    INLINE_UNIT_RE,
    LAST_NUMBER_RE,
    LENGTH_COLUMN_KEYWORDS,
    LENGTH_NUMBER_RE,
    NAME_COLUMN_KEYWORDS,
    PACKED_NIBBLE_MARKERS,
    REMARK_COLUMN_KEYWORDS,
    RESERVED_KEYWORDS,
    RESOLUTION_UNIT_RE,
    SINGLE_BIT_RE,
    START_BIT_COLUMN_KEYWORDS,
    UNIT_LEADING_NUMBER_RE,
    UNIT_MAX_LENGTH,
    UNIT_RE,
    UNIT_TRAILING_PUNCTUATION,
)
from protocol_parser.telemetry.schema import EnumEntry, ProtocolTelemetryField

logger = logging.getLogger(__name__)


class ParsedRow(BaseModel):
    """First-pass result for one data row, before continuation merging."""

    field: ProtocolTelemetryField
    explicit_byte_sequence: bool


# ─── Column Layout ────────────────────────────────────────────────────────────


def find_column(table: RawTable, keywords: tuple[str, ...]) -> int:
    """Return the first header column (left to right, first two rows) containing any keyword, or -1."""
    for r in range(min(HEADER_SCAN_ROWS, table.row_count)):
        for c in range(table.col_count):
            value = table.get_value(r, c).strip()
            if any(kw in value for kw in keywords):
                return c
    return -1


def locate_columns(table: RawTable) -> dict[str, int]:
    """Map each logical column (byte_seq, name, length, start_bit, remark) to a column index.

    Columns not found by header keyword fall back to positions 0/1/2/3; the
    remark fallback is dropped when position 3 is already claimed.
    start_bit has no positional fallback (-1 when absent).
    """
    last = max(table.col_count - 1, 0)
    columns = {
        "byte_seq": find_column(table, BYTE_SEQ_COLUMN_KEYWORDS),
        "name": find_column(table, NAME_COLUMN_KEYWORDS),
        "length": find_column(table, LENGTH_COLUMN_KEYWORDS),
        "start_bit": find_column(table, START_BIT_COLUMN_KEYWORDS),
        "remark": find_column(table, REMARK_COLUMN_KEYWORDS),
    }
    if columns["byte_seq"] < 0:
        columns["byte_seq"] = 0
    if columns["name"] < 0:
        columns["name"] = min(1, last)
    if columns["length"] < 0:
        columns["length"] = min(2, last)
    if columns["remark"] < 0 and table.col_count > 3:
        claimed = {columns["byte_seq"], columns["name"], columns["length"], columns["start_bit"]}
        if 3 not in claimed:
            columns["remark"] = 3
    return columns


def detect_header_rows(table: RawTable) -> int:
    """Return the number of header rows: one past the first row whose first cell is a header marker."""
    for r in range(min(3, table.row_count)):
        if table.get_value(r, 0).strip() in HEADER_ROW_MARKERS:
            return r + 1
    return 1


# ─── Cell Parsers ─────────────────────────────────────────────────────────────


def normalize_byte_sequence(raw: str) -> str:
    """Canonicalize byte-sequence notation, e.g. " w7 – 8 " -> "W7-W8".

    Removes whitespace, upper-cases w/b, unifies range dashes, and expands a
    bare numeric range end to carry the prefix.  Idempotent.
    """
    if not raw:
        return ""
    value = "".join(raw.split())
    value = value.replace("w", "W").replace("b", "B")
    value = value.replace("–", "-").replace("~", "-")

    if "-" in value and not value.startswith(("W", "B")):
        return value

    match = BYTE_SEQ_BARE_RANGE_RE.match(value)
    if match:
        prefix, start, end = match.groups()
        return f"{prefix}{start}-{prefix}{end}"
    return value


def parse_byte_length(text: str) -> int:
    """Parse a byte count, taking the first digit run of non-numeric text; 0 if none."""
    text = text.strip()
    if not text:
        return 0
    match = LENGTH_NUMBER_RE.search(text)
    return int(match.group()) if match else 0


def parse_field_name(name: str) -> tuple[str, int, int]:
    """Split bit-field notation out of a field name.

    Returns (field_name, bit_offset, bit_length).  "b7-b4:阀门状态" gives
    ("b7-b4:阀门状态", 4, 4); "b3:使能" gives ("b3:使能", 3, 1); plain names
    come back unchanged with (-1, 0).
    """
    if not name:
        return name, -1, 0

    match = BIT_FIELD_RE.search(name)
    if match:
        a, b = int(match.group(1)), int(match.group(2))
        high, low = max(a, b), min(a, b)
        desc = match.group(3).strip().lstrip("：:").strip() or name.strip()
        return f"b{high}-b{low}:{desc}", low, high - low + 1

    match = SINGLE_BIT_RE.search(name)
    if match:
        bit = int(match.group(1))
        desc = match.group(2).strip().lstrip("：:").strip() or name.strip()
        return f"b{bit}:{desc}", bit, 1

    if BIT_PREFIX_RE.match(name):
        colon = min((i for i in (name.find("："), name.find(":")) if i >= 0), default=-1)
        if colon > 0:
            prefix, desc = name[:colon], name[colon + 1 :].strip()
            numbers = DIGITS_RE.findall(prefix)
            if len(numbers) >= 2:
                a, b = int(numbers[0]), int(numbers[1])
                high, low = max(a, b), min(a, b)
                return f"b{high}-b{low}:{desc}", low, high - low + 1
            return desc, -1, 0

    return name, -1, 0


def clean_unit(unit: str) -> str:
    """Strip trailing punctuation and any leading numeric prefix; cap at 10 characters."""
    unit = unit.rstrip(UNIT_TRAILING_PUNCTUATION)
    unit = UNIT_LEADING_NUMBER_RE.sub("", unit)
    return unit[:UNIT_MAX_LENGTH]


def extract_unit(remarks: str, name: str = "") -> str:
    """Extract a physical unit, trying remarks first and then the raw name text."""
    for text in (remarks, name):
        if not text:
            continue
        for pattern in (UNIT_RE, RESOLUTION_UNIT_RE, INLINE_UNIT_RE):
            match = pattern.search(text)
            if match:
                unit = clean_unit(match.group(1))
                if unit:
                    return unit
    return ""


def is_valid_enum_description(desc: str) -> bool:
    """Reject descriptions that are numbers, hex codes, numeric runs, or range/radix notes."""
    if not desc:
        return False
    if ENUM_HEX_ONLY_RE.match(desc) or ENUM_NUMBER_ONLY_RE.match(desc) or ENUM_NUMERIC_RUN_RE.match(desc):
        return False
    return not any(kw in desc for kw in ENUM_REJECT_KEYWORDS)


def _enum_search_start(remarks: str) -> int:
    """Index where the enum run begins: the first hex code, else the first digit with a later '|'."""
    hex_start = HEX_VALUE_RE.search(remarks)
    if hex_start:
        return hex_start.start()
    for i, ch in enumerate(remarks):
        if ch.isdigit() and remarks.find("|", i) > i:
            return i
    return 0


def _collect_entries(matches) -> list[EnumEntry]:
    entries: list[EnumEntry] = []
    for match in matches:
        desc = match.group(2).strip()
        if is_valid_enum_description(desc):
            entries.append(EnumEntry(value=match.group(1), description=desc))
    return entries


def extract_enum_entries(remarks: str) -> list[EnumEntry]:
    """Extract value/description pairs such as "0x55-未成功|0xAA-成功" from remarks.

    Hex-coded runs are tried first, decimal runs only when the remarks use
    '|' separators.  Fewer than two valid entries means no mapping.
    """
    if not remarks:
        return []
    if "|" not in remarks and "；" not in remarks and not HEX_DASH_RE.search(remarks):
        return []

    enum_text = remarks[_enum_search_start(remarks) :] if "|" in remarks else remarks

    entries = _collect_entries(ENUM_HEX_RE.finditer(enum_text))
    if len(entries) >= ENUM_MIN_ENTRIES:
        return entries

    if "|" in remarks:
        decimal_matches = list(ENUM_DECIMAL_RE.finditer(enum_text))
        if len(decimal_matches) >= ENUM_MIN_ENTRIES:
            entries = _collect_entries(decimal_matches)
            if len(entries) >= ENUM_MIN_ENTRIES:
                return entries
    return []


def extract_hex_value_list(name: str) -> list[EnumEntry]:
    """Enum entries from a bare value list in a name, e.g. "状态 0x01/0x02/0x03"."""
    match = HEX_VALUE_LIST_RE.search(name or "")
    if not match:
        return []
    return [EnumEntry(value=v, description=v) for v in HEX_VALUE_RE.findall(match.group())]


def format_enum_mapping(entries: list[EnumEntry]) -> str:
    """Join enum entries as "value-description|value-description"."""
    return "|".join(f"{e.value}-{e.description}" for e in entries)


def extract_enum_mapping(remarks: str) -> str:
    """Return the '|'-joined enum mapping found in remarks, or ""."""
    return format_enum_mapping(extract_enum_entries(remarks))


def extract_data_type(remarks: str) -> str:
    """Return the first data-type token (UINT16, INT8, FLOAT, ...) in remarks, upper-cased."""
    match = DATA_TYPE_RE.search(remarks or "")
    return match.group(1).upper() if match else ""


def classify_special_field(raw_byte_seq: str, name: str) -> dict[str, bool]:
    """Return the header/checksum/reserved flags implied by the raw byte sequence and name."""
    seq = (raw_byte_seq or "").strip().upper()
    if seq in HEADER_FIELD_SEQUENCES:
        return {"is_header_field": True}
    if seq in CHECKSUM_SEQUENCES:
        return {"is_checksum": True}
    lowered = (name or "").lower()
    if any(kw in lowered for kw in RESERVED_KEYWORDS):
        return {"is_reserved": True}
    return {}


# ─── Byte Index Helpers ───────────────────────────────────────────────────────


def byte_index(byte_seq: str) -> int | None:
    """First byte number in a sequence ("W7-W8" -> 7), or None."""
    match = FIRST_NUMBER_RE.search(byte_seq or "")
    return int(match.group(1)) if match else None


def last_byte_index(byte_seq: str) -> int | None:
    """Trailing byte number in a sequence ("W7-W8" -> 8), or None."""
    match = LAST_NUMBER_RE.search(byte_seq or "")
    return int(match.group(1)) if match else None


def _field_end(field: ProtocolTelemetryField) -> int | None:
    """Last byte covered by a field, from its range notation or declared length."""
    start = byte_index(field.byte_sequence)
    if start is None:
        return None
    end = last_byte_index(field.byte_sequence)
    return max(end if end is not None else start, start + max(field.byte_length, 1) - 1)


# ─── Special Layouts ──────────────────────────────────────────────────────────


def apply_start_bit_column(field: ProtocolTelemetryField, start_bit_text: str) -> ProtocolTelemetryField:
    """For WD<n> rows with a start-bit column, reinterpret the length column as a bit length."""
    if not start_bit_text or not field.byte_sequence.upper().startswith("WD"):
        return field
    if field.bit_length > 0:
        return field.model_copy(update={"byte_length": 0})
    if not start_bit_text.isdecimal() or field.byte_length <= 0:
        return field

    start_bit, bit_length = int(start_bit_text), field.byte_length
    name = field.field_name
    if not BIT_PREFIXED_NAME_RE.match(name.lstrip()):
        high = start_bit + bit_length - 1
        name = f"b{start_bit}:{name}" if bit_length == 1 else f"b{high}-b{start_bit}:{name}"
    return field.model_copy(
        update={"bit_offset": start_bit, "bit_length": bit_length, "byte_length": 0, "field_name": name}
    )


def split_packed_nibbles(
    field: ProtocolTelemetryField,
    raw_name: str,
    start_bit_text: str,
) -> list[ProtocolTelemetryField] | None:
    """Split "高四位/低四位" style rows into two 4-bit fields, or return None.

    Applies to a name of the form "<high>/<low>" when the remarks describe a
    high/low nibble split, or when the start-bit and length columns read 4/4.
    """
    if field.bit_length > 0:
        return None
    parts = [p.strip() for p in raw_name.replace("／", "/").split("/")]
    if len(parts) != 2 or not all(parts):
        return None

    described = any(hi in field.remarks and lo in field.remarks for hi, lo in PACKED_NIBBLE_MARKERS)
    by_columns = start_bit_text == "4" and field.byte_length == 4
    if not (described and field.byte_length <= 1) and not by_columns:
        return None

    index = byte_index(field.byte_sequence)
    if index is None:
        return None

    common = {"byte_sequence": f"WD{index}", "byte_length": 0, "bit_length": 4}
    high, low = parts
    return [
        field.model_copy(update={**common, "bit_offset": 4, "field_name": f"b7-b4:{high}"}),
        field.model_copy(update={**common, "bit_offset": 0, "field_name": f"b3-b0:{low}"}),
    ]


# ─── Pass 1: Rows ─────────────────────────────────────────────────────────────


def parse_rows(table: RawTable) -> list[ParsedRow]:
    """Parse every data row into a field, inheriting byte sequences for rows that omit one."""
    columns = locate_columns(table)
    rows: list[ParsedRow] = []
    last_byte_seq = ""

    def cell(r: int, key: str) -> str:
        col = columns[key]
        return table.get_value(r, col).strip() if col >= 0 else ""

    for r in range(detect_header_rows(table), table.row_count):
        raw_seq = cell(r, "byte_seq")
        raw_name = cell(r, "name")
        length_text = cell(r, "length")
        start_bit_text = cell(r, "start_bit")
        remarks = cell(r, "remark")

        if not (raw_seq or raw_name or length_text or remarks):
            continue

        byte_seq = normalize_byte_sequence(raw_seq)
        explicit = bool(byte_seq)
        if explicit:
            last_byte_seq = byte_seq
        else:
            byte_seq = last_byte_seq

        field_name, bit_offset, bit_length = parse_field_name(raw_name)
        entries = extract_enum_entries(remarks) or extract_hex_value_list(raw_name)
        field = ProtocolTelemetryField(
            byte_sequence=byte_seq,
            field_name=field_name,
            byte_length=parse_byte_length(length_text),
            bit_offset=bit_offset,
            bit_length=bit_length,
            remarks=remarks,
            unit=extract_unit(remarks, raw_name),
            enum_entries=entries,
            enum_mapping=format_enum_mapping(entries),
            data_type_hint=extract_data_type(remarks),
            **classify_special_field(raw_seq, raw_name),
        )

        nibbles = split_packed_nibbles(field, raw_name, start_bit_text)
        if nibbles:
            rows.extend(ParsedRow(field=f, explicit_byte_sequence=explicit) for f in nibbles)
            continue

        field = apply_start_bit_column(field, start_bit_text)
        rows.append(ParsedRow(field=field, explicit_byte_sequence=explicit))

    return rows


# ─── Pass 2: Continuations ────────────────────────────────────────────────────


def is_continuation(field: ProtocolTelemetryField) -> bool:
    """A row with neither a name nor a bit field continues the field above it."""
    return not field.field_name and field.bit_length == 0


def merge_into_previous(
    previous: ProtocolTelemetryField,
    continuation: ProtocolTelemetryField,
    explicit_byte_sequence: bool,
) -> ProtocolTelemetryField:
    """Fold a continuation row into the previous field and return the updated copy.

    An explicit byte number past the previous field's end extends its range
    (W7 + W8 -> W7-W8); an inherited one adds its byte length.  Empty remarks,
    unit, enum mapping and type hint are backfilled from the continuation.
    """
    updates: dict = {}

    if explicit_byte_sequence:
        start = byte_index(previous.byte_sequence)
        end = _field_end(previous)
        cont_end = last_byte_index(continuation.byte_sequence)
        prefix = BYTE_SEQ_PREFIX_RE.match(previous.byte_sequence)
        if start is not None and end is not None and cont_end is not None and prefix and cont_end > end:
            letters = prefix.group(1)
            updates["byte_sequence"] = f"{letters}{start}-{letters}{cont_end}"
            updates["byte_length"] = max(previous.byte_length, cont_end - start + 1)
    elif continuation.byte_length > 0:
        updates["byte_length"] = previous.byte_length + continuation.byte_length

    if continuation.remarks and not previous.remarks:
        updates["remarks"] = continuation.remarks
    if continuation.unit and not previous.unit:
        updates["unit"] = continuation.unit
    if continuation.enum_entries and not previous.enum_entries:
        updates["enum_entries"] = continuation.enum_entries
        updates["enum_mapping"] = continuation.enum_mapping
    if continuation.data_type_hint and not previous.data_type_hint:
        updates["data_type_hint"] = continuation.data_type_hint

    return previous.model_copy(update=updates) if updates else previous


def merge_continuations(rows: list[ParsedRow]) -> list[ProtocolTelemetryField]:
    """Second pass: fold continuation rows into their predecessors, returning the final fields."""
    fields: list[ProtocolTelemetryField] = []
    for row in rows:
        field = row.field
        previous = fields[-1] if fields else None
        frame_marker = previous is not None and (previous.is_header_field or previous.is_checksum)
        if previous is not None and is_continuation(field) and not (frame_marker and row.explicit_byte_sequence):
            fields[-1] = merge_into_previous(previous, field, row.explicit_byte_sequence)
        else:
            fields.append(field)
    return fields


def parse_telemetry_table(table: RawTable) -> list[ProtocolTelemetryField]:
    """Parse a telemetry definition table into its list of fields."""
    rows = parse_rows(table)
    fields = merge_continuations(rows)
    logger.debug("Parsed %d rows into %d telemetry fields", len(rows), len(fields))
    return fields
