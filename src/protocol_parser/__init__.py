"""Protocol document parsing engine for satellite telemetry/telecommand tables.

Submodules:
  config       -- project root, .env loading, env-driven defaults
  tables       -- RawTable / TableCell input model
  metadata     -- system-name and byte-order inference from document text
  telemetry    -- telemetry table detection, field parsing, analysis
  telecommand  -- telecommand table detection, command parsing, CAN frames
  pipeline     -- JSON runner that applies both analyzers to one document
"""
