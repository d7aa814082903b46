"""Pydantic models for tables extracted from protocol documents.

A RawTable is the hand-off point from the Word/Excel extraction step: a
rectangular grid of cells where merged regions are recorded as one master
cell plus shadow cells pointing back at it.  Every parser in this package
reads cells exclusively through ``RawTable.get_value``.
"""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

logger = logging.getLogger(__name__)

# Shadow cells can point at other shadow cells; stop following after this many hops
_MAX_MASTER_HOPS = 8


class TableCell(BaseModel):
    """One grid cell, keeping its merge span and master-cell reference."""

    model_config = ConfigDict(frozen=True)

    value: str = ""
    row_index: int = 0
    col_index: int = 0
    row_span: int = 1
    col_span: int = 1
    is_master_cell: bool = True
    master_row: int = 0
    master_col: int = 0


class RawTable(BaseModel):
    """Immutable table grid with merged-cell value resolution.

    ``cells`` is indexed ``[row][col]``.  Ragged input rows are padded with
    empty cells by the validator so ``col_count`` holds for every row.
    """

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    section_heading: str | None = None
    sheet_name: str | None = None
    source_file: str = ""
    table_index: int = 0
    cells: list[list[TableCell]] = []

    @model_validator(mode="before")
    @classmethod
    def pad_ragged_rows(cls, data: Any) -> Any:
        """Pad every row to the widest row's length with empty master cells."""
        if not isinstance(data, dict) or not data.get("cells"):
            return data
        rows = [list(row) for row in data["cells"]]
        width = max(len(row) for row in rows)
        for r, row in enumerate(rows):
            for c in range(len(row), width):
                row.append(TableCell(row_index=r, col_index=c, master_row=r, master_col=c))
        return {**data, "cells": rows}

    @property
    def row_count(self) -> int:
        return len(self.cells)

    @property
    def col_count(self) -> int:
        return len(self.cells[0]) if self.cells else 0

    @property
    def is_empty(self) -> bool:
        """True when the table has no rows or no columns."""
        return self.row_count == 0 or self.col_count == 0

    def get_value(self, row: int, col: int) -> str:
        """Return the logical value at (row, col), following merges to the master cell.

        Out-of-range coordinates and dangling master references yield "".
        """
        for _ in range(_MAX_MASTER_HOPS):
            if row < 0 or row >= self.row_count or col < 0 or col >= self.col_count:
                return ""
            cell = self.cells[row][col]
            if cell.is_master_cell:
                return cell.value
            if (cell.master_row, cell.master_col) == (row, col):
                return cell.value
            row, col = cell.master_row, cell.master_col
        return ""

    def get_row_values(self, row: int) -> list[str]:
        """Return every logical value in a row, left to right."""
        return [self.get_value(row, col) for col in range(self.col_count)]

    @classmethod
    def from_rows(cls, rows: list[list[Any]], **kwargs: Any) -> "RawTable":
        """Build an unmerged table from plain row values (None becomes "")."""
        cells = [
            [
                TableCell(
                    value="" if value is None else str(value),
                    row_index=r,
                    col_index=c,
                    master_row=r,
                    master_col=c,
                )
                for c, value in enumerate(row)
            ]
            for r, row in enumerate(rows)
        ]
        return cls(cells=cells, **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawTable":
        """Build a table from its JSON form.

        Expected keys: ``rows`` (list of row value lists) plus optional
        ``title``, ``section_heading``, ``sheet_name``, ``source_file``,
        ``table_index`` and ``merges``, a list of ``[row, col, row_span,
        col_span]`` regions whose top-left cell holds the value.
        """
        base = cls.from_rows(data.get("rows") or [])
        grid = [list(row) for row in base.cells]

        for merge in data.get("merges") or []:
            if len(merge) != 4:
                logger.debug("Skipping merge %r: expected [row, col, row_span, col_span]", merge)
                continue
            top, left, row_span, col_span = (int(v) for v in merge)
            if top < 0 or left < 0 or top >= len(grid) or left >= len(grid[top]):
                continue
            master = grid[top][left]
            grid[top][left] = master.model_copy(update={"row_span": row_span, "col_span": col_span})
            for r in range(top, min(top + row_span, len(grid))):
                for c in range(left, min(left + col_span, len(grid[r]))):
                    if (r, c) == (top, left):
                        continue
                    grid[r][c] = TableCell(
                        row_index=r,
                        col_index=c,
                        is_master_cell=False,
                        master_row=top,
                        master_col=left,
                    )

        meta_keys = ("title", "section_heading", "sheet_name", "source_file", "table_index")
        meta = {key: data[key] for key in meta_keys if data.get(key) is not None}
        return cls(cells=grid, **meta)
