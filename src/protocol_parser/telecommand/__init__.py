"""Telecommand table detection, command parsing, CAN frame encoding, and analysis.

Submodules:
  patterns   -- header keywords, alias table, compiled regexes
  schema     -- TelecommandEntry, CanFrameInfo and result Pydantic models
  detection  -- classification of command / parameter / CAN ID tables
  fields     -- per-table-type row parsers and shared cell helpers
  frames     -- 29-bit CAN header packing and 13-byte command frame assembly
  analyzer   -- analyze() entry point and command merging
"""
