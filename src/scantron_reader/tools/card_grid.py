# src/scantron_reader/tools/card_grid.py
from __future__ import annotations
import logging
from typing import List, Sequence, Tuple

import numpy as np

from ..config_io import CardLayout
from ..errors import CardFormatError
from ..scoring_defaults import DEFAULTS, DecoderDefaults

logger = logging.getLogger(__name__)


class DarknessGrid:
    """
    Cropped card rows as integer darkness values (character code points).

    Rows may differ in width (the header block is narrower than the answer
    blocks), so each row is its own 1-D array.
    """

    def __init__(self, rows: Sequence[np.ndarray]):
        self._rows: Tuple[np.ndarray, ...] = tuple(rows)

    @classmethod
    def from_strings(cls, lines: Sequence[str]) -> "DarknessGrid":
        return cls([np.fromiter((ord(ch) for ch in line), dtype=np.int32, count=len(line))
                    for line in lines])

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def widths(self) -> List[int]:
        return [int(r.size) for r in self._rows]

    def row(self, r: int) -> np.ndarray:
        return self._rows[r]

    def cell(self, r: int, c: int) -> int:
        return int(self._rows[r][c])

    def cells(self, coords: Sequence[Tuple[int, int]]) -> List[int]:
        return [self.cell(r, c) for (r, c) in coords]

    def column(self, first_row: int, col: int, height: int) -> List[int]:
        """Values of one column over `height` consecutive rows."""
        return [self.cell(first_row + k, col) for k in range(height)]


def split_rows(data: str, layout: CardLayout, defaults: DecoderDefaults = DEFAULTS) -> List[str]:
    """
    Split the decompressed stream on the front marker (dropping empty pieces)
    and discard the rows scanned above the bubble area.
    """
    lines = [ln for ln in data.split(defaults.front_symbol) if ln]
    return lines[layout.skip_rows:]


def format_grid(data: str, layout: CardLayout, defaults: DecoderDefaults = DEFAULTS) -> DarknessGrid:
    """
    Crop each bubble row to the width its block occupies on the card.

    Rows past `layout.row_count` are not part of the configured card and are
    ignored. Too few rows, or a row shorter than its width, is a format error.
    """
    lines = split_rows(data, layout, defaults)
    needed = layout.row_count
    if len(lines) < needed:
        raise CardFormatError(
            f"card has {len(lines)} bubble rows, layout needs {needed}",
            row=len(lines), field="rows",
        )
    if len(lines) > needed:
        logger.debug("Ignoring %d row(s) past the configured layout", len(lines) - needed)

    cropped: List[str] = []
    for i, width in enumerate(layout.row_widths()):
        line = lines[i]
        if len(line) < width:
            raise CardFormatError(
                f"row has {len(line)} cells, expected at least {width}",
                row=i, field="rows",
            )
        cropped.append(line[:width])
    return DarknessGrid.from_strings(cropped)
