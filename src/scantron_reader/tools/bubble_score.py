"""
bubble_score.py
---------------
Darkness-based decoding of a cropped scan card (WID + header marks + answers).

Two selection strategies with different tie handling:
- darkest_bubble: header marks (version, sheet). No mark -> 1, a shared
  maximum -> 0 ("no unique selection").
- darkest_choice: per question. Strictly-greater fold seeded with choice 1,
  so the lowest-numbered choice wins a tie.
"""

from __future__ import annotations
from dataclasses import dataclass
from functools import reduce
from typing import List, Sequence, Tuple

import numpy as np

from ..config_io import CardLayout
from ..errors import CardFormatError
from .card_grid import DarknessGrid

# ------------------------------------------------------------------------------
# Records
# ------------------------------------------------------------------------------

@dataclass(frozen=True)
class QuestionResponse:
    marks: str              # position k holds str(k+1) when filled, else " "
    darkest_choice: str     # "1".."5"

    @property
    def selected(self) -> str:
        return self.marks.replace(" ", "")

    @property
    def single_answer(self) -> str:
        """One character: the only mark, "-" when blank, darkest_choice when ambiguous."""
        picked = self.selected
        if len(picked) == 1:
            return picked
        if not picked:
            return "-"
        return self.darkest_choice

# ------------------------------------------------------------------------------
# Scoring primitives
# ------------------------------------------------------------------------------

def darkest_bubble(values: Sequence[int], threshold: int) -> int:
    """
    Return the 1-based index of the darkest of several header bubbles.
    Returns 1 when none is filled (an empty group defaults to option 1)
    and 0 when the darkest value is shared.
    """
    arr = np.asarray(values, dtype=np.int64)
    top = arr.max()
    if top <= threshold:
        return 1
    winners = np.flatnonzero(arr == top)
    if winners.size != 1:
        return 0
    return int(winners[0]) + 1


def darkest_choice(values: Sequence[int], floor: int) -> Tuple[int, int]:
    """Fold (choice, darkness) over the column; only a strictly darker cell replaces the best."""
    return reduce(
        lambda best, cand: cand if cand[1] > best[1] else best,
        enumerate((int(v) for v in values), start=1),
        (1, floor),
    )


def marks_string(values: Sequence[int], threshold: int) -> str:
    return "".join(str(k) if v > threshold else " " for k, v in enumerate(values, start=1))


def _read_cells(grid: DarknessGrid, coords: Sequence[Tuple[int, int]], field: str) -> List[int]:
    try:
        return grid.cells(coords)
    except IndexError:
        bad = next(rc for rc in coords if rc[0] >= len(grid) or rc[1] >= grid.row(rc[0]).size)
        raise CardFormatError(f"cell {bad} is outside the card", row=bad[0], field=field) from None

# ------------------------------------------------------------------------------
# Zone decoders
# ------------------------------------------------------------------------------

def decode_wid(grid: DarknessGrid, layout: CardLayout, threshold: int) -> str:
    """
    One row per digit. Bubbles run 9..0 left to right, so the row is reversed
    and the first darkest column is the digit; an unfilled row gives "-".
    """
    digits: List[str] = []
    for r in range(layout.wid_digits):
        if r >= len(grid):
            raise CardFormatError("missing WID row", row=r, field="wid")
        line = grid.row(r)[::-1]
        if line.size == 0:
            raise CardFormatError("empty WID row", row=r, field="wid")
        idx = int(np.argmax(line))
        digits.append(str(idx) if line[idx] > threshold else "-")
    return "".join(digits)


def decode_version(grid: DarknessGrid, layout: CardLayout, threshold: int) -> int:
    """Raw version mark: 1..3, or 0 when two bubbles tie for darkest."""
    return darkest_bubble(_read_cells(grid, layout.version_cells, "version"), threshold)


def decode_sheet_number(grid: DarknessGrid, layout: CardLayout, threshold: int) -> int:
    """Raw sheet mark: 1..5, or 0 on a tie."""
    return darkest_bubble(_read_cells(grid, layout.sheet_cells, "sheet"), threshold)


def decode_permission(grid: DarknessGrid, layout: CardLayout, threshold: int) -> bool:
    (value,) = _read_cells(grid, [layout.permission_cell], "permission")
    return value > threshold


def decode_responses(grid: DarknessGrid, layout: CardLayout,
                     threshold: int, floor: int) -> List[QuestionResponse]:
    """
    Walk the question groups top to bottom and each group's columns right to
    left, which is ascending question order on the card. Stops after
    layout.question_count questions.
    """
    out: List[QuestionResponse] = []
    for first_row, width in layout.groups():
        rows = [(first_row + k) for k in range(layout.choices)]
        for col in range(width - 1, -1, -1):
            if len(out) == layout.question_count:
                return out
            values = _read_cells(grid, [(r, col) for r in rows], "responses")
            choice, _ = darkest_choice(values, floor)
            out.append(QuestionResponse(marks=marks_string(values, threshold),
                                        darkest_choice=str(choice)))
    return out
