"""Keyword sets, alias table and compiled regex patterns for telecommand tables.

Telecommand documents spread one command over several tables: a command
summary (指令名称/指令码/指令参数), a frame layout (命令/B0..B7), a per-word
parameter table (编号/指令名称/指令码/W0..Wn), and a CAN ID summary with the
seven identifier bit-fields.  Used by detection.py, fields.py and frames.py.
"""

import re

# ─── Table Classification ─────────────────────────────────────────────────────

MIN_TABLE_ROWS = 2
HEADER_CANDIDATE_ROWS = 3

# (Chinese header, abbreviation) for each CAN identifier bit-field
CAN_ID_FIELD_HEADERS: tuple[tuple[str, str], ...] = (
    ("优先级", "P"),
    ("总线标志", "LT"),
    ("数据类型", "DT"),
    ("目的地址", "DA"),
    ("源地址", "SA"),
    ("单/复帧标识", "FT"),
    ("帧计数", "FC"),
)
CAN_ID_MIN_MATCHES = 5

COMMAND_FRAME_HEADERS = ("命令", "B0", "B1", "B7")
COMMAND_FRAME_MIN_MATCHES = 4

COMMAND_SUMMARY_HEADERS = ("指令名称", "指令码", "指令参数")
PARAMETER_DETAIL_HEADERS = ("编号", "指令名称", "指令码")
DATA_TYPE_DEFINITION_HEADERS = ("数据类型", "数据含义", "DT值")

WORD_HEADER_RE = re.compile(r"^W(\d+)$", re.IGNORECASE)


# ─── Cell Parsing ─────────────────────────────────────────────────────────────

HEADER_SCAN_ROWS = 4

# "0x1A" / "0X1"
HEX_BYTE_RE = re.compile(r"^0[xX]([0-9A-Fa-f]{1,2})$")
# Lenient form for lookups: a 0x code anywhere in the text, e.g. "0x1A（复位）"
HEX_BYTE_SEARCH_RE = re.compile(r"0[xX]([0-9A-Fa-f]{1,2})")
# "1A" / "1Ah"
BARE_HEX_BYTE_RE = re.compile(r"^([0-9A-Fa-f]{2})[hH]?$")

BINARY_RUN_RE = re.compile(r"[01]+")

FRAME_BYTE_HEADER_RE = re.compile(r"^B[1-7]$", re.IGNORECASE)

TELEMETRY_REQUEST_KEYWORD = "遥测请求"
RESET_KEYWORD = "复位"
WORD_REF_RE = re.compile(r"W\d+", re.IGNORECASE)
LONG_COMMAND_MIN_WORD_REFS = 8

# "范围：0~100", "取值范围【1-10】"
RANGE_RE = re.compile(r"范围[：:\s【\[]*([0-9\-~～]+)")
UNIT_RE = re.compile(r"单位[：:\s]*([^\s，,；;。]+)")

# A W<n> cell holding "值" (or literally "value") is a user-editable slot
EDITABLE_MARKER = "值"
EDITABLE_LITERAL = "value"

# Payload words W0..W6 sit at frame bytes W6..W12
PARAMETER_BYTE_COUNT = 7
FRAME_WORD_OFFSET = 6


# ─── Aliases ──────────────────────────────────────────────────────────────────

# (required keywords, alias); checked in order, so longer keywords come first
ALIAS_TABLE: tuple[tuple[tuple[str, ...], str], ...] = (
    (("同步遥测请求",), "YCQQ-TB"),
    (("异步遥测请求",), "YCQQ-YB"),
    (("复位AB",), "FWAB"),
    (("复位A",), "FWA"),
    (("复位B",), "FWB"),
    (("开机",), "KJ"),
    (("关机",), "GJ"),
    (("阴极激活",), "YJJH"),
    (("除气",), "CQ"),
    (("二次点火",), "ECDH"),
    (("自检",), "ZJ"),
    (("单步使能",), "DBSN"),
    (("单步",), "DB"),
    (("参数配置",), "CSPZ"),
    (("KB", "配置"), "KBPZ"),
    (("清零",), "QL"),
)
DEFAULT_ALIAS = "CMD"


# ─── Frame Header ─────────────────────────────────────────────────────────────

# IDE=1, RTR=0, DLC=8
FRAME_INFO_BYTE = 0x88
FRAME_HEADER_LENGTH = 5
COMMAND_FRAME_LENGTH = 13

# Fallback identifier bits used when no CAN ID summary row matches
FALLBACK_PRIORITY = 0b011
FALLBACK_DEST_ADDR = 0b01011
FALLBACK_SRC_ADDR = 0
FALLBACK_FRAME_FLAG = 0b00
FALLBACK_FRAME_COUNT = 0x01

CHANNEL_A = "A通道"
CHANNEL_B = "B通道"
