"""Document-level metadata inference shared by the telemetry and telecommand analyzers.

Both analyzers need the subsystem abbreviation (used as a prefix for
generated telemetry codes) and the declared byte order.  Neither is stored
in the tables themselves, so both are guessed from the document title and
its leading paragraphs.
"""

import logging
import re
from collections.abc import Sequence

from protocol_parser.config import DEFAULT_ENDIANNESS, PARAGRAPH_SCAN_LIMIT

logger = logging.getLogger(__name__)

# (substring, abbreviation) pairs; the first substring found wins, so order matters
KNOWN_SYSTEMS: tuple[tuple[str, str], ...] = (
    ("霍尔电推", "PPU"),
    ("PPU", "PPU"),
    ("星务", "OBC"),
    ("电源", "EPS"),
    ("姿控", "ADCS"),
    ("测控", "TTC"),
    ("数传", "DTS"),
    ("载荷", "PL"),
    ("热控", "TCS"),
    ("推进", "PROP"),
    ("飞轮", "RW"),
    ("磁力矩", "MTQ"),
    ("太阳敏感器", "SS"),
    ("星敏", "STR"),
    ("GNSS", "GNSS"),
    ("GPS", "GPS"),
)

DEFAULT_SYSTEM_NAME = "SYS"

# Upper-case abbreviation followed by a product/version marker, e.g. "GMS GEN1", "PPU组件"
SYSTEM_ABBREV_RE = re.compile(r"([A-Z]{2,6})\s*(GEN|V|v|组件|单机|系统)")

BIG_ENDIAN_MARKERS = ("高字节在前", "大端", "big-endian")
LITTLE_ENDIAN_MARKERS = ("低字节在前", "小端", "little-endian")


def infer_system_name(title: str | None, paragraphs: Sequence[str] | None = None) -> str:
    """Guess the subsystem abbreviation from the title and leading paragraphs.

    Searches the title plus the first PARAGRAPH_SCAN_LIMIT paragraphs for a
    known subsystem keyword, then falls back to an abbreviation pattern in
    the title alone, then to "SYS".
    """
    search_text = title or ""
    if paragraphs:
        search_text += " " + " ".join(paragraphs[:PARAGRAPH_SCAN_LIMIT])

    for keyword, abbreviation in KNOWN_SYSTEMS:
        if keyword in search_text:
            logger.debug("System name %s inferred from keyword %r", abbreviation, keyword)
            return abbreviation

    match = SYSTEM_ABBREV_RE.search(title or "")
    if match:
        return match.group(1)
    return DEFAULT_SYSTEM_NAME


def infer_endianness(paragraphs: Sequence[str] | None) -> str:
    """Return "大端" or "小端" from the first paragraph that declares a byte order."""
    if not paragraphs:
        return DEFAULT_ENDIANNESS

    for paragraph in paragraphs:
        if any(marker in paragraph for marker in BIG_ENDIAN_MARKERS):
            return "大端"
        if any(marker in paragraph for marker in LITTLE_ENDIAN_MARKERS):
            return "小端"
    return DEFAULT_ENDIANNESS
