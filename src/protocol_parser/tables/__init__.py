"""Already-resolved tabular input consumed by the protocol parsers.

Submodules:
  schema  -- TableCell / RawTable Pydantic models with merged-cell lookup
"""
