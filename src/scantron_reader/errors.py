# scantron_reader/errors.py
from __future__ import annotations
from typing import Optional


class CardFormatError(ValueError):
    """
    Raised when a raw card stream does not match the scanner contract.

    `row` is the grid row (after the skipped header rows) that failed, if any.
    `field` names what was being read: "compression", "rows", "wid",
    "version", "sheet", "permission" or "responses".
    """

    def __init__(self, message: str, row: Optional[int] = None, field: Optional[str] = None):
        self.row = row
        self.field = field
        where = []
        if field:
            where.append(field)
        if row is not None:
            where.append(f"row {row}")
        super().__init__(f"{message} ({', '.join(where)})" if where else message)
