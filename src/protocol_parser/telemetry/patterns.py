"""Keyword sets and compiled regex patterns for telemetry table parsing.

Protocol documents describe telemetry frames in tables headed by some
variant of 字序 / 数据内容 / 字节长度 / 备注, with byte positions written as
W<n>, B<n>, Dh/Dl (length header) or SUM (checksum) and sub-byte fields
written as b<hi>-b<lo>.  Used by detection.py and fields.py.
"""

import re

# ─── Table Classification ─────────────────────────────────────────────────────

# A table is a telemetry definition table if every keyword of any one set
# appears in its first two rows
HEADER_PATTERNS: tuple[tuple[str, ...], ...] = (
    ("字序", "数据内容", "字节长度"),
    ("字序", "数据内容", "长度"),
    ("字段", "名称", "字节长度"),
    ("偏移", "名称", "长度"),
    ("序号", "参数名称", "字节数"),
    ("字节", "内容", "长度"),
)

# Checked before SYNC_KEYWORDS: "异步遥测请求命令应答" also contains "遥测"
ASYNC_KEYWORDS = ("异步遥测", "异步数据返回", "异步遥测请求命令应答")

SYNC_KEYWORDS = ("遥测数据返回", "遥测应答", "同步遥测", "遥测数据详细", "遥测包")

# Bit-field column headers of a CAN identifier summary table
CAN_ID_SUMMARY_HEADERS = ("ID28", "P", "LT", "DT", "DA", "SA", "FT", "FC")
CAN_ID_SUMMARY_MIN_MATCHES = 5
CAN_ID_SUMMARY_MIN_COLS = 6

MIN_TABLE_ROWS = 3
HEADER_SCAN_ROWS = 2
BYTE_SEQUENCE_SAMPLE_ROWS = 10
BYTE_SEQUENCE_MIN_HITS = 3

# Literal first-column values that mark a frame position without a W/B prefix
SPECIAL_BYTE_SEQUENCES = ("Dh", "Dl", "SUM", "Sum")


# ─── Column Lookup ────────────────────────────────────────────────────────────

BYTE_SEQ_COLUMN_KEYWORDS = ("字序", "字节", "偏移")
NAME_COLUMN_KEYWORDS = ("数据内容", "名称", "参数名")
LENGTH_COLUMN_KEYWORDS = ("字节长度", "长度", "字节数")
START_BIT_COLUMN_KEYWORDS = ("起始位", "起始BIT", "起始bit", "位偏移", "bit偏移")
REMARK_COLUMN_KEYWORDS = ("备注", "说明", "描述")

# Exact first-column header markers; the data starts on the following row
HEADER_ROW_MARKERS = ("字序", "字段", "偏移", "序号")


# ─── Byte Sequence Notation ───────────────────────────────────────────────────

# Bare numeric range after a prefix, e.g. "W7-8" -> "W7-W8"
BYTE_SEQ_BARE_RANGE_RE = re.compile(r"^([WB])(\d+)-(\d+)$")

# First / last number in a byte sequence, e.g. "W7-W8" -> 7 / 8
FIRST_NUMBER_RE = re.compile(r"(\d+)")
LAST_NUMBER_RE = re.compile(r"(\d+)$")

# Leading letter prefix of a byte sequence, e.g. "W", "WD", "B"
BYTE_SEQ_PREFIX_RE = re.compile(r"^([A-Za-z]+)")

LENGTH_NUMBER_RE = re.compile(r"\d+")


# ─── Bit-Field Names ──────────────────────────────────────────────────────────

# "b7-b4:阀门状态", "bit0~bit1：电磁阀 A"
BIT_FIELD_RE = re.compile(
    r"(?:[bB]|bit)\s*(\d+)\s*[-–~]\s*(?:[bB]|bit)\s*(\d+)\s*(?:[：:]\s*)?(.+)",
    re.IGNORECASE,
)

# "b3:加热使能"; the colon is required so names like "备份B1电流" stay whole
SINGLE_BIT_RE = re.compile(r"(?:[bB]|bit)\s*(\d+)\s*[：:]\s*(.+)", re.IGNORECASE)

# Range prefix terminated by a colon, e.g. "b7-b4："
BIT_PREFIX_RE = re.compile(r"^(?:[bB]|bit)\s*\d+\s*[-–~]\s*(?:[bB]|bit)\s*\d+\s*[：:]", re.IGNORECASE)

# Name already carries a bit prefix
BIT_PREFIXED_NAME_RE = re.compile(r"^(?:b|bit)\s*\d+", re.IGNORECASE)

DIGITS_RE = re.compile(r"\d+")

# Remarks describing one byte split into high and low nibbles
PACKED_NIBBLE_MARKERS = (("高四位", "低四位"), ("高4位", "低4位"))


# ─── Units ────────────────────────────────────────────────────────────────────

# "单位：V"
UNIT_RE = re.compile(r"单位[：:\s]*([^\s,，;；、\n\r]+)")

# "分辨率：1；范围0~100，单位：mA"
RESOLUTION_UNIT_RE = re.compile(r"分辨率[：:\s]*\d+[；;]?\s*(?:范围)?[^单]*?单位[：:\s]*([\w°℃%]+)")

# "当量，V" / "分辨率：1；mA"
INLINE_UNIT_RE = re.compile(r"(?:当量，|分辨率[：:\s]*\d+[；;]\s*)(?:单位)?[：:\s]*([\w°℃%]+)")

UNIT_TRAILING_PUNCTUATION = "，,；;。.、"
UNIT_LEADING_NUMBER_RE = re.compile(r"^[\d.]+")
UNIT_MAX_LENGTH = 10


# ─── Enum Mappings ────────────────────────────────────────────────────────────

# "0x55-点火未成功", "0xAA：点火成功"
ENUM_HEX_RE = re.compile(r"(0[xX][\dA-Fa-f]+)\s*[-–:：]\s*([^|\n\r]+)")

# "0-关|1-开"
ENUM_DECIMAL_RE = re.compile(r"(\d+)\s*[-–:：]\s*([^|\n\r;；]+)")

HEX_VALUE_RE = re.compile(r"0[xX][\dA-Fa-f]+")
HEX_DASH_RE = re.compile(r"0[xX][\dA-Fa-f]+\s*[-–:：]")

# Slash-separated value list inside a field name, e.g. "0x01/0x02/0x03"
HEX_VALUE_LIST_RE = re.compile(r"0[xX][\dA-Fa-f]+(?:\s*[/、]\s*0[xX][\dA-Fa-f]+)+")

ENUM_MIN_ENTRIES = 2

# Descriptions that are really numbers, ranges, or radix notes rather than labels
ENUM_HEX_ONLY_RE = re.compile(r"^0[xX][\dA-Fa-f]+$")
ENUM_NUMBER_ONLY_RE = re.compile(r"^[\d.]+$")
ENUM_NUMERIC_RUN_RE = re.compile(r"^[\d\s,，.xXA-Fa-f\-–~]+$")
ENUM_REJECT_KEYWORDS = ("取值", "范围", "进制")


# ─── Data Types & Special Fields ──────────────────────────────────────────────

DATA_TYPE_RE = re.compile(r"(UINT\d+|INT\d+|FLOAT\d*|DOUBLE|U?INT_?\d+)", re.IGNORECASE)

HEADER_FIELD_SEQUENCES = ("DH", "DL")
CHECKSUM_SEQUENCES = ("SUM", "校验和")
RESERVED_KEYWORDS = ("预留", "保留", "备用", "reserved")


# ─── Channel Info ─────────────────────────────────────────────────────────────

COMMAND_COLUMN_KEYWORD = "命令"
FRAME_ID_MAX_TOKEN_LENGTH = 10
FRAME_ID_MIN_BITS = 8
DEFAULT_CHANNEL_LABELS = ("A通道", "B通道")
