"""Tests for the document runner: loading a JSON dump, running both analyzers, writing output."""

# pylint: disable=missing-class-docstring,missing-function-docstring

import json
import sys

from protocol_parser.pipeline import ProtocolDocument, load_document, main, run

DOCUMENT = {
    "title": "霍尔电推 PPU 通信协议",
    "paragraphs": ["多字节数据高字节在前"],
    "tables": [
        {
            "title": "同步遥测数据",
            "rows": [
                ["字序", "数据内容", "字节长度", "备注"],
                ["W0", "同步码", "1", ""],
                ["W1", "工作模式", "1", "0x01-待机|0x02-工作"],
                ["", "", "", ""],
            ],
            "merges": [[1, 0, 2, 1]],
        },
        {
            "title": "遥控指令汇总",
            "rows": [
                ["序号", "指令名称", "指令码", "指令参数", "备注"],
                ["1", "开机", "0x01", "无", ""],
                ["2", "关机", "0x02", "无", ""],
            ],
        },
    ],
}


def write_document(tmp_path, data=None):
    path = tmp_path / "doc.json"
    path.write_text(json.dumps(data or DOCUMENT, ensure_ascii=False), encoding="utf-8")
    return path


# ===========================================================================
# load_document
# ===========================================================================


class TestLoadDocument:

    def test_tables_built_from_rows(self, tmp_path):
        document = load_document(write_document(tmp_path))
        assert document.title == "霍尔电推 PPU 通信协议"
        assert len(document.tables) == 2
        assert document.tables[0].title == "同步遥测数据"
        assert document.tables[0].get_value(1, 1) == "同步码"

    def test_merges_applied(self, tmp_path):
        document = load_document(write_document(tmp_path))
        assert document.tables[0].get_value(2, 0) == "W0"

    def test_missing_keys_default_empty(self, tmp_path):
        document = load_document(write_document(tmp_path, {"title": "空文档"}))
        assert document.paragraphs == []
        assert document.tables == []

    def test_validate_from_dict(self):
        document = ProtocolDocument.model_validate({"tables": [{"rows": [["a", "b"]]}]})
        assert document.tables[0].col_count == 2


# ===========================================================================
# run
# ===========================================================================


class TestRun:

    def test_result_sections(self):
        result = run(ProtocolDocument.model_validate(DOCUMENT))
        assert set(result) == {"telemetry", "telecommand", "frames"}
        assert result["telemetry"]["system_name"] == "PPU"
        assert result["telecommand"]["default_endianness"] == "大端"
        assert [c["code"] for c in result["telecommand"]["commands"]] == ["0x01", "0x02"]

    def test_payload_dumped_as_hex(self):
        result = run(ProtocolDocument.model_validate(DOCUMENT))
        assert result["telecommand"]["commands"][0]["default_parameter_bytes"] == "00 00 00 00 00 00 00"

    def test_frames_use_fallback_header(self):
        frames = run(ProtocolDocument.model_validate(DOCUMENT))["frames"]
        assert [f["name"] for f in frames] == ["开机", "关机"]
        assert frames[0]["a_channel"] == "88 0C 25 80 01 01 00 00 00 00 00 00 00"
        assert frames[0]["b_channel"] == "88 0E 25 80 01 01 00 00 00 00 00 00 00"
        assert all(len(f["a_channel"].split()) == 13 for f in frames)
        assert frames[0]["presets"] == {}

    def test_output_is_json_serializable(self):
        result = run(ProtocolDocument.model_validate(DOCUMENT))
        assert json.loads(json.dumps(result, ensure_ascii=False)) == result

    def test_empty_document(self):
        result = run(ProtocolDocument())
        assert result["frames"] == []
        assert result["telecommand"]["warnings"]


# ===========================================================================
# main
# ===========================================================================


class TestMain:

    def test_writes_output_file(self, tmp_path, monkeypatch):
        out_file = tmp_path / "out" / "result.json"
        monkeypatch.setattr(sys, "argv", ["protocol-parser", str(write_document(tmp_path)), "-o", str(out_file)])
        main()
        written = json.loads(out_file.read_text(encoding="utf-8"))
        assert written["telecommand"]["system_name"] == "PPU"
        assert len(written["frames"]) == 2
