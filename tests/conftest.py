import pytest

from scantron_reader.config_io import CardLayout

BLANK = "0"   # lightest darkness level
FILLED = "F"  # darkest darkness level
PAD = "F"     # paper-free area to the right of the bubbles reads as black


class CardSketch:
    """
    Builds a raw scanner stream from a grid of darkness characters.

    Coordinates follow the cropped grid (two header rows already skipped).
    """

    def __init__(self, layout: CardLayout = CardLayout()):
        self.layout = layout
        self.rows = [[BLANK] * layout.row_width(r) for r in range(layout.row_count)]

    def set(self, row: int, col: int, level: str = FILLED) -> "CardSketch":
        self.rows[row][col] = level
        return self

    def mark_wid(self, wid: str, level: str = FILLED) -> "CardSketch":
        width = self.layout.wid_width
        for row, digit in enumerate(wid):
            if digit != "-":
                self.set(row, width - 1 - int(digit), level)
        return self

    def answer_cell(self, question: int, choice: int):
        lay = self.layout
        first = lay.first_group_width
        if question <= first:
            return lay.header_start + choice - 1, first - question
        rest = question - first - 1
        group = rest // lay.block_width + 1
        col = lay.block_width - 1 - rest % lay.block_width
        return lay.header_start + group * lay.choices + choice - 1, col

    def mark_answer(self, question: int, *choices: int, level: str = FILLED) -> "CardSketch":
        for choice in choices:
            self.set(*self.answer_cell(question, choice), level)
        return self

    def lines(self, pad: int = 3):
        return ["".join(r) + PAD * pad for r in self.rows]

    def to_stream(self, back: bool = True, compress: bool = False) -> str:
        body = [PAD * 20, PAD * 20] + self.lines()
        parts = []
        for line in body:
            parts.append("a" + (rle(line) if compress else line))
            if back:
                parts.append("b" + "0123" * 3)
        return "".join(parts)


def rle(line: str) -> str:
    """Scanner-style compression: runs of 4..26 equal characters become #<count><char>."""
    out = []
    i = 0
    while i < len(line):
        j = i
        while j < len(line) and line[j] == line[i] and j - i < 26:
            j += 1
        run = j - i
        out.append(f"#{chr(64 + run)}{line[i]}" if run >= 4 else line[i] * run)
        i = j
    return "".join(out)


@pytest.fixture
def sketch():
    """A blank default (50-question) card."""
    return CardSketch()


@pytest.fixture
def make_sketch():
    return CardSketch


@pytest.fixture
def full_sketch():
    """WID 123456789, version 2, sheet 3, one answer per question cycling 1..5."""
    s = CardSketch()
    s.mark_wid("123456789")
    s.set(11, 10)           # version bubble 2
    s.set(11, 7)            # sheet bubble 3
    for q in range(1, 51):
        s.mark_answer(q, (q - 1) % 5 + 1)
    return s
