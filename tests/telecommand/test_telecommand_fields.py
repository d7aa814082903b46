"""Unit tests for telecommand row parsers and their token helpers."""

# pylint: disable=missing-class-docstring,missing-function-docstring

from protocol_parser.tables.schema import RawTable
from protocol_parser.telecommand.fields import (
    build_alias,
    detect_header_row,
    extract_channel,
    extract_range,
    extract_unit,
    find_column,
    guess_type,
    is_editable_token,
    normalize_hex_code,
    parse_binary_field,
    parse_can_id_summary_table,
    parse_command_frame_table,
    parse_command_summary_table,
    parse_hex_byte,
    parse_parameter_detail_table,
)
from protocol_parser.telecommand.schema import TelecommandType

CAN_HEADER = ["命令", "优先级", "总线标志", "数据类型", "目的地址", "源地址", "单/复帧标识", "帧计数", "通道"]


def make_table(*rows: list) -> RawTable:
    return RawTable.from_rows(list(rows))


# ===========================================================================
# Token helpers
# ===========================================================================


class TestParseHexByte:

    def test_prefixed(self):
        assert parse_hex_byte("0x1A") == 0x1A

    def test_h_suffix(self):
        assert parse_hex_byte("1Ah") == 0x1A

    def test_bare(self):
        assert parse_hex_byte("1A") == 0x1A

    def test_single_digit_prefixed(self):
        assert parse_hex_byte("0X1") == 0x01

    def test_whitespace(self):
        assert parse_hex_byte("  0xff ") == 0xFF

    def test_invalid(self):
        assert parse_hex_byte("GG") is None
        assert parse_hex_byte("1A2") is None
        assert parse_hex_byte("0x123") is None
        assert parse_hex_byte("") is None

    def test_embedded_code_needs_lenient(self):
        assert parse_hex_byte("0x1A（复位）") is None
        assert parse_hex_byte("0x1A（复位）", lenient=True) == 0x1A


class TestNormalizeHexCode:

    def test_forms_agree(self):
        assert {normalize_hex_code(t) for t in ("0x1A", "1Ah", "1A", "0x1a")} == {"0x1A"}

    def test_zero_padded(self):
        assert normalize_hex_code("0x5") == "0x05"

    def test_idempotent(self):
        assert normalize_hex_code(normalize_hex_code("1ah")) == "0x1A"

    def test_unparsable_returned_stripped(self):
        assert normalize_hex_code(" 待定 ") == "待定"


class TestParseBinaryField:

    def test_bits(self):
        assert parse_binary_field("011") == 3

    def test_eight_bits(self):
        assert parse_binary_field("00000001") == 1

    def test_first_run_used(self):
        assert parse_binary_field("01011（B机）") == 0b01011

    def test_no_bits(self):
        assert parse_binary_field("xx") is None
        assert parse_binary_field("") is None


class TestGuessType:

    def test_telemetry_request(self):
        assert guess_type("同步遥测请求", "") == TelecommandType.TELEMETRY_REQUEST

    def test_reset(self):
        assert guess_type("复位A", "W0") == TelecommandType.RESET

    def test_long(self):
        assert guess_type("参数配置", "W0 W1 W2 W3 W4 W5 W6 W7") == TelecommandType.LONG

    def test_seven_word_refs_is_short(self):
        assert guess_type("参数配置", "W0 W1 W2 W3 W4 W5 W6") == TelecommandType.SHORT

    def test_default_short(self):
        assert guess_type("开机", "") == TelecommandType.SHORT


class TestBuildAlias:

    def test_telemetry_requests(self):
        assert build_alias("同步遥测请求") == "YCQQ-TB"
        assert build_alias("异步遥测请求") == "YCQQ-YB"

    def test_reset_ab_before_reset_a(self):
        assert build_alias("复位AB") == "FWAB"
        assert build_alias("复位A") == "FWA"
        assert build_alias("复位B") == "FWB"

    def test_single_step_enable_before_single_step(self):
        assert build_alias("单步使能") == "DBSN"
        assert build_alias("单步运行") == "DB"

    def test_two_keyword_rule(self):
        assert build_alias("KB值配置") == "KBPZ"

    def test_default(self):
        assert build_alias("未知指令") == "CMD"


class TestRemarkHelpers:

    def test_range(self):
        assert extract_range("范围：0~100，单位：mA") == "0-100"

    def test_range_bracketed(self):
        assert extract_range("取值范围【1～10】") == "1-10"

    def test_unit(self):
        assert extract_unit("范围：0~100，单位：mA") == "mA"

    def test_missing(self):
        assert extract_range("") == ""
        assert extract_unit("无") == ""

    def test_editable_token(self):
        assert is_editable_token("值") is True
        assert is_editable_token("参数值") is True
        assert is_editable_token("value") is True
        assert is_editable_token("0x05") is False
        assert is_editable_token("") is False


class TestExtractChannel:

    def test_a(self):
        assert extract_channel("A通道", 1) == "A通道"

    def test_b(self):
        assert extract_channel("B通道", 0) == "B通道"

    def test_ambiguous_uses_bus_flag(self):
        assert extract_channel("A/B", 1) == "B通道"
        assert extract_channel("", 0) == "A通道"


class TestHeaderHelpers:

    def test_header_below_title(self):
        table = make_table(["遥控指令表", "", ""], ["指令名称", "指令码", "备注"], ["开机", "0x01", ""])
        assert detect_header_row(table, "指令名称", "指令码") == 1

    def test_one_keyword_missing_still_matches(self):
        table = make_table(["编号", "指令名称", "代码"], ["1", "开机", "0x01"])
        assert detect_header_row(table, "编号", "指令名称", "指令码") == 0

    def test_default_zero(self):
        assert detect_header_row(make_table(["a"], ["b"]), "指令名称", "指令码") == 0

    def test_find_column(self):
        table = make_table(["序号", "指令名称", "指令码"])
        assert find_column(table, 0, "指令码") == 2
        assert find_column(table, 0, "备注") == -1


# ===========================================================================
# Command summary
# ===========================================================================


class TestParseCommandSummaryTable:

    def test_rows(self):
        table = make_table(
            ["序号", "指令名称", "指令码", "指令参数", "备注"],
            ["1", "开机", "0x01", "无", "上电后发送"],
            ["2", "复位A", "02h", "", ""],
            ["3", "坏行", "ZZ", "", ""],
            ["4", "", "0x04", "", ""],
            ["5", "参数配置", "10", "W0 W1 W2 W3 W4 W5 W6 W7", ""],
        )
        entries = parse_command_summary_table(table)
        assert [(e.name, e.code, e.command_code) for e in entries] == [
            ("开机", "0x01", 0x01),
            ("复位A", "0x02", 0x02),
            ("参数配置", "0x10", 0x10),
        ]
        assert [e.type for e in entries] == [TelecommandType.SHORT, TelecommandType.RESET, TelecommandType.LONG]
        assert [e.code_alias for e in entries] == ["KJ", "FWA", "CSPZ"]
        assert entries[0].remark == "上电后发送"
        assert entries[0].param_desc == "无"
        assert entries[0].default_parameter_bytes == bytes(7)

    def test_missing_code_column(self):
        assert parse_command_summary_table(make_table(["指令名称", "说明"], ["开机", "x"])) == []


# ===========================================================================
# Command frame format
# ===========================================================================


class TestParseCommandFrameTable:

    def test_payload_from_b1_to_b7(self):
        table = make_table(
            ["命令", "B0", "B1", "B2", "B3", "B4", "B5", "B6", "B7"],
            ["开机", "0x01", "0xAA", "55", "xx", "", "", "", "07h"],
        )
        entries = parse_command_frame_table(table)
        assert len(entries) == 1
        assert entries[0].code == "0x01"
        assert entries[0].default_parameter_bytes == bytes([0xAA, 0x55, 0, 0, 0, 0, 0x07])

    def test_short_payload_zero_filled(self):
        table = make_table(["命令", "B0", "B1", "B2"], ["关机", "0x02", "0x11", "0x22"])
        entries = parse_command_frame_table(table)
        assert entries[0].default_parameter_bytes == bytes([0x11, 0x22, 0, 0, 0, 0, 0])

    def test_unparsable_code_skipped(self):
        table = make_table(["命令", "B0", "B1"], ["开机", "待定", "00"])
        assert parse_command_frame_table(table) == []

    def test_missing_b0(self):
        assert parse_command_frame_table(make_table(["命令", "B1"], ["开机", "00"])) == []


# ===========================================================================
# Parameter detail
# ===========================================================================


class TestParseParameterDetailTable:

    HEADER = ["编号", "指令名称", "指令码", "W0", "W1", "W2", "W7", "备注"]

    def test_preset_bytes(self):
        table = make_table(self.HEADER, ["2", "参数配置B", "10h", "0x01", "0x02", "", "0x09", ""])
        rows = parse_parameter_detail_table(table)
        assert len(rows) == 1
        assert rows[0].command_code == "0x10"
        assert rows[0].preset.name == "参数配置B"
        assert rows[0].preset.parameter_bytes == bytes([0x01, 0x02, 0, 0, 0, 0, 0])
        assert rows[0].parameters == []

    def test_adjacent_editable_words_merged(self):
        table = make_table(self.HEADER, ["1", "参数配置A", "0x10", "0x05", "值", "值", "", "范围：0~100，单位：mA"])
        row = parse_parameter_detail_table(table)[0]
        assert row.preset.parameter_bytes == bytes([0x05, 0, 0, 0, 0, 0, 0])
        assert len(row.parameters) == 1
        param = row.parameters[0]
        assert (param.name, param.start_byte, param.length) == ("W1-W2", "W7", 2)
        assert (param.data_format, param.default_value, param.input_type) == ("Decimal", "0", "TextBox")
        assert (param.value_range, param.unit) == ("0-100", "mA")
        assert param.remark == "范围：0~100，单位：mA"

    def test_single_editable_word(self):
        table = make_table(self.HEADER, ["3", "参数配置C", "0x11", "值", "", "", "", ""])
        params = parse_parameter_detail_table(table)[0].parameters
        assert len(params) == 1
        assert (params[0].name, params[0].start_byte, params[0].length) == ("W0", "W6", 1)
        assert (params[0].data_format, params[0].default_value) == ("Hex", "00")

    def test_words_past_w6_ignored(self):
        table = make_table(self.HEADER, ["4", "参数配置D", "0x12", "", "", "", "值", ""])
        row = parse_parameter_detail_table(table)[0]
        assert row.parameters == []
        assert row.preset.parameter_bytes == bytes(7)

    def test_no_word_columns(self):
        table = make_table(["编号", "指令名称", "指令码", "备注"], ["1", "开机", "0x01", ""])
        assert parse_parameter_detail_table(table) == []


# ===========================================================================
# CAN ID summary
# ===========================================================================


class TestParseCanIdSummaryTable:

    def test_rows(self):
        table = make_table(
            CAN_HEADER,
            ["遥控控制短指令", "011", "0", "00010", "01011", "00000", "00", "00000001", "A通道"],
            ["遥控控制短指令", "011", "1", "00010", "01011", "00000", "00", "00000001", "B通道"],
            ["遥测请求", "011", "1", "00000", "01011", "00000", "00", "00000001", "A/B"],
            ["复位", "xx", "0", "00001", "01011", "00000", "00", "00000001", "A通道"],
            ["", "011", "0", "00001", "01011", "00000", "00", "00000001", "A通道"],
        )
        infos = parse_can_id_summary_table(table)
        assert len(infos) == 3
        assert infos[0].header_bytes == bytes([0x88, 0x0C, 0x25, 0x80, 0x01])
        assert infos[1].header_bytes == bytes([0x88, 0x0E, 0x25, 0x80, 0x01])
        assert [i.channel for i in infos] == ["A通道", "B通道", "B通道"]
        assert (infos[0].priority, infos[0].data_type, infos[0].dest_addr, infos[0].frame_count) == (3, 2, 11, 1)
        assert infos[2].frame_type == "遥测请求"

    def test_abbreviation_headers(self):
        table = make_table(
            ["命令", "P", "LT", "DT", "DA", "SA", "FT", "FC", "通道"],
            ["复位", "011", "0", "00001", "01011", "00000", "00", "00000001", "A通道"],
        )
        infos = parse_can_id_summary_table(table)
        assert len(infos) == 1
        assert infos[0].data_type == 1

    def test_missing_bit_field_column(self):
        table = make_table(["命令", "优先级", "总线标志", "通道"], ["复位", "011", "0", "A通道"])
        assert parse_can_id_summary_table(table) == []
