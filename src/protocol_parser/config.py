"""Shared configuration for the protocol parsing engine."""

import os
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent.parent.parent.resolve()
load_dotenv(ROOT / ".env")

DATA_DIR = ROOT / "data"

LOG_LEVEL = os.getenv("PROTOCOL_PARSER_LOG_LEVEL", "INFO").upper()

# How many leading paragraphs are searched for a subsystem name
PARAGRAPH_SCAN_LIMIT = int(os.getenv("PROTOCOL_PARSER_PARAGRAPH_SCAN_LIMIT", "30"))

# Byte order assumed when the document does not state one
DEFAULT_ENDIANNESS = "大端"


def output_path(system_name: str) -> Path:
    """Return the default JSON output file for a parsed document."""
    return DATA_DIR / "parsed" / f"{system_name}_protocol.json"
