"""Unit tests for telemetry table classification and channel extraction."""

# pylint: disable=missing-class-docstring,missing-function-docstring

from protocol_parser.tables.schema import RawTable
from protocol_parser.telemetry.detection import (
    build_frame_id,
    classify_telemetry_type,
    detect_telemetry_tables,
    extract_channel_info,
    is_byte_sequence_value,
    is_can_id_summary_table,
    is_telemetry_definition_table,
    resolve_ambiguous_types,
)
from protocol_parser.telemetry.schema import DetectedTelemetryTable, TelemetryType

CAN_HEADER = ["命令", "P", "LT", "DT", "DA", "SA", "FT", "FC", "通道"]
SYNC_ROW_A = ["遥测数据返回", "011", "0", "00010", "01011", "00000", "00", "00000001", "A通道/主份"]
SYNC_ROW_B = ["遥测数据返回", "011", "1", "00010", "01011", "00000", "00", "00000001", "B通道"]
ASYNC_ROW_A = ["异步遥测数据返回", "011", "0", "00100", "01011", "00000", "00", "00000001", "A通道"]


def make_telemetry_table(title: str = "", section_heading: str = "", rows: int = 3) -> RawTable:
    data = [["字序", "数据内容", "字节长度", "备注"]] + [[f"W{i}", f"参数{i}", "1", ""] for i in range(rows - 1)]
    return RawTable.from_rows(data, title=title, section_heading=section_heading)


def make_can_table(*rows: list[str]) -> RawTable:
    return RawTable.from_rows([CAN_HEADER, *rows], title="CAN ID 分配表")


# ===========================================================================
# Table classification
# ===========================================================================


class TestIsTelemetryDefinitionTable:

    def test_header_pattern(self):
        assert is_telemetry_definition_table(make_telemetry_table()) is True

    def test_header_pattern_with_extra_columns(self):
        table = RawTable.from_rows(
            [["序", "字序", "数据内容", "字节长度", "类型", "备注"], ["1", "W0", "a", "1", "", ""], ["2", "W1", "b", "1", "", ""]]
        )
        assert is_telemetry_definition_table(table) is True

    def test_fewer_than_three_rows(self):
        assert is_telemetry_definition_table(make_telemetry_table(rows=2)) is False

    def test_empty(self):
        assert is_telemetry_definition_table(RawTable.from_rows([])) is False

    def test_byte_sequence_content_fallback(self):
        table = RawTable.from_rows([["a", "b", "c"], ["W0", "x", "1"], ["W1-W2", "y", "2"], ["SUM", "z", "1"]])
        assert is_telemetry_definition_table(table) is True

    def test_unrelated_table(self):
        table = RawTable.from_rows([["名称", "型号"], ["电源", "A1"], ["姿控", "B2"]])
        assert is_telemetry_definition_table(table) is False


class TestIsByteSequenceValue:

    def test_word(self):
        assert is_byte_sequence_value("W12") is True

    def test_word_range(self):
        assert is_byte_sequence_value("W7-W8") is True

    def test_byte(self):
        assert is_byte_sequence_value("B3") is True

    def test_specials(self):
        assert is_byte_sequence_value("Dh") is True
        assert is_byte_sequence_value("SUM") is True

    def test_plain_word(self):
        assert is_byte_sequence_value("Warning") is False
        assert is_byte_sequence_value("") is False


class TestIsCanIdSummaryTable:

    def test_summary(self):
        assert is_can_id_summary_table(make_can_table(SYNC_ROW_A, SYNC_ROW_B)) is True

    def test_too_few_columns(self):
        table = RawTable.from_rows([["P", "LT", "DT", "DA", "SA"], ["0", "0", "0", "0", "0"]])
        assert is_can_id_summary_table(table) is False


class TestClassifyTelemetryType:

    def test_sync(self):
        assert classify_telemetry_type(make_telemetry_table(title="同步遥测数据格式")) == TelemetryType.SYNC

    def test_async_checked_first(self):
        table = make_telemetry_table(section_heading="异步遥测请求命令应答")
        assert classify_telemetry_type(table) == TelemetryType.ASYNC

    def test_unknown(self):
        assert classify_telemetry_type(make_telemetry_table(title="表3")) == TelemetryType.UNKNOWN


class TestResolveAmbiguousTypes:

    def test_unknowns_fill_missing_types(self):
        detected = [DetectedTelemetryTable(source_table_index=i) for i in range(3)]
        resolved, fallback = resolve_ambiguous_types(detected)
        assert [t.type for t in resolved] == [TelemetryType.SYNC, TelemetryType.ASYNC, TelemetryType.SYNC]
        assert fallback == [0, 1, 2]

    def test_unknown_fills_async_when_sync_present(self):
        detected = [
            DetectedTelemetryTable(type=TelemetryType.SYNC, source_table_index=0),
            DetectedTelemetryTable(source_table_index=1),
        ]
        resolved, fallback = resolve_ambiguous_types(detected)
        assert resolved[1].type == TelemetryType.ASYNC
        assert fallback == [1]

    def test_input_not_modified(self):
        detected = [DetectedTelemetryTable(source_table_index=0)]
        resolve_ambiguous_types(detected)
        assert detected[0].type == TelemetryType.UNKNOWN


class TestDetectTelemetryTables:

    def test_mixed_document(self):
        tables = [
            make_telemetry_table(title="同步遥测数据"),
            make_can_table(SYNC_ROW_A, SYNC_ROW_B),
            make_telemetry_table(title="异步遥测数据"),
            make_telemetry_table(rows=2),
        ]
        result = detect_telemetry_tables(tables)
        assert [t.source_table_index for t in result.telemetry_tables] == [0, 2]
        assert [t.type for t in result.telemetry_tables] == [TelemetryType.SYNC, TelemetryType.ASYNC]
        assert result.can_id_summary_table_indices == [1]
        assert result.fallback_table_indices == []
        assert result.telemetry_tables[0].fields == []

    def test_unknown_recorded_as_fallback(self):
        result = detect_telemetry_tables([make_telemetry_table(title="表1")])
        assert result.telemetry_tables[0].type == TelemetryType.SYNC
        assert result.fallback_table_indices == [0]


# ===========================================================================
# Channel info
# ===========================================================================


class TestBuildFrameId:

    def test_concatenated_bits(self):
        table = make_can_table(SYNC_ROW_A, SYNC_ROW_B)
        assert build_frame_id(table, 1) == "000C258001"

    def test_too_few_bits(self):
        table = make_can_table(["遥测数据返回", "0", "1", "", "", "", "", "", "A通道"], SYNC_ROW_B)
        assert build_frame_id(table, 1) == ""


class TestExtractChannelInfo:

    def test_sync_channels(self):
        tables = [make_can_table(SYNC_ROW_A, SYNC_ROW_B, ASYNC_ROW_A)]
        channels = extract_channel_info(tables, [0], TelemetryType.SYNC)
        assert [c.channel_label for c in channels] == ["A通道", "B通道"]
        assert channels[0].frame_id_hex == "000C258001"
        assert channels[1].frame_id_hex == "000E258001"

    def test_async_channels(self):
        tables = [make_can_table(SYNC_ROW_A, SYNC_ROW_B, ASYNC_ROW_A)]
        channels = extract_channel_info(tables, [0], TelemetryType.ASYNC)
        assert [c.channel_label for c in channels] == ["A通道"]
        assert channels[0].frame_id_hex == "000C458001"

    def test_rows_for_same_channel_counted(self):
        tables = [make_can_table(SYNC_ROW_A, SYNC_ROW_A, SYNC_ROW_B)]
        channels = extract_channel_info(tables, [0], TelemetryType.SYNC)
        assert [(c.channel_label, c.frame_count) for c in channels] == [("A通道", 2), ("B通道", 1)]

    def test_invalid_index_ignored(self):
        assert extract_channel_info([], [3], TelemetryType.SYNC) == []
