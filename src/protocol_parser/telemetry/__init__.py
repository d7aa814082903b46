"""Telemetry table detection, field parsing, and document analysis.

Submodules:
  patterns   -- header keyword sets, Sync/Async keywords, compiled regexes
  schema     -- ProtocolTelemetryField and result Pydantic models
  detection  -- telemetry / CAN-ID summary table classification, channel info
  fields     -- row-level field parsing (byte sequences, bit fields, units, enums)
  analyzer   -- analyze() entry point producing a ProtocolParseResult
"""
