"""Developer runner: parse one extracted protocol document end to end.

Reads a JSON dump produced by the document-to-table extraction step,
runs the telemetry and telecommand analyzers over it, and writes both
results plus the A/B channel frames of every command as JSON.

Input format::

    {
      "title": "XX 霍尔电推 PPU 通信协议",
      "paragraphs": ["...", "..."],
      "tables": [{"rows": [["字序", "数据内容", ...], ...], "title": "...",
                  "section_heading": "...", "merges": [[0, 0, 2, 1]]}]
    }
"""

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, field_validator

from protocol_parser.config import LOG_LEVEL, output_path
from protocol_parser.tables.schema import RawTable
from protocol_parser.telecommand import analyzer as telecommand_analyzer
from protocol_parser.telecommand.frames import build_command_frame, build_command_frame_with_preset
from protocol_parser.telecommand.schema import TelecommandParseResult, hex_string
from protocol_parser.telemetry import analyzer as telemetry_analyzer

logger = logging.getLogger(__name__)


class ProtocolDocument(BaseModel):
    """Title, paragraphs and tables of one extracted document."""

    title: str = ""
    paragraphs: list[str] = []
    tables: list[RawTable] = []

    @field_validator("tables", mode="before")
    @classmethod
    def build_tables(cls, value: Any) -> Any:
        """Accept tables in their JSON ``rows`` / ``merges`` form."""
        return [RawTable.from_dict(t) if isinstance(t, dict) and "rows" in t else t for t in value or []]


def load_document(path: Path) -> ProtocolDocument:
    """Load a document JSON dump from disk."""
    with open(path, "r", encoding="utf-8") as fopen:
        data = json.load(fopen)
    document = ProtocolDocument.model_validate(data)
    logger.info("Loaded '%s': %d paragraphs, %d tables", document.title, len(document.paragraphs), len(document.tables))
    return document


def command_frames(result: TelecommandParseResult) -> list[dict[str, Any]]:
    """A/B channel frames (default payload and every preset) of each command as hex strings."""
    frames = []
    for command in result.commands:
        frames.append(
            {
                "code": command.code,
                "name": command.name,
                "a_channel": hex_string(build_command_frame(command, False, result.frame_infos)),
                "b_channel": hex_string(build_command_frame(command, True, result.frame_infos)),
                "presets": {
                    preset.name: hex_string(build_command_frame_with_preset(command, preset, False, result.frame_infos))
                    for preset in command.presets
                },
            }
        )
    return frames


def run(document: ProtocolDocument) -> dict[str, Any]:
    """Run both analyzers over a document and return a JSON-ready dict."""
    telemetry = telemetry_analyzer.analyze(document.tables, document.title, document.paragraphs)
    telecommand = telecommand_analyzer.analyze(document.tables, document.title, document.paragraphs)

    for warning in telemetry.warnings + telecommand.warnings:
        logger.warning(warning)

    return {
        "telemetry": telemetry.model_dump(mode="json"),
        "telecommand": telecommand.model_dump(mode="json"),
        "frames": command_frames(telecommand),
    }


def main():
    """Parse a document JSON dump and write the analysis next to the other parsed outputs."""
    parser = argparse.ArgumentParser(description="Parse telemetry/telecommand tables from an extracted protocol document")
    parser.add_argument("input", type=Path, help="Document JSON (title, paragraphs, tables)")
    parser.add_argument("-o", "--output", type=Path, default=None, help="Output JSON (default: data/parsed/<SYSTEM>_protocol.json)")
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(message)s")

    document = load_document(args.input)
    result = run(document)

    out_file = args.output or output_path(result["telemetry"]["system_name"])
    out_file.parent.mkdir(parents=True, exist_ok=True)
    with open(out_file, "w", encoding="utf-8") as fopen:
        json.dump(result, fopen, ensure_ascii=False, indent=2)

    logger.info(
        "Done: %d sync fields, %d async fields, %d commands -> %s",
        result["telemetry"]["sync_field_count"],
        result["telemetry"]["async_field_count"],
        len(result["telecommand"]["commands"]),
        out_file,
    )


if __name__ == "__main__":
    main()
