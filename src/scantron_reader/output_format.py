# src/scantron_reader/output_format.py
"""
Fixed-column text layouts read by the downstream grading software.

Single answer (one line per card):
    123456789, 111--,   '1234512345...'
Multiple answer (five lines per card, choice 5 first):
    123456789, 111--,5, '    5     ...'
             ,      ,4, '   4      ...'
    ...
Lines end with CRLF and are meant to be concatenated across a batch.
"""

from __future__ import annotations
from typing import Iterable

from .card import ScanCard

LINE_END = "\r\n"
# Continuation lines of the multiple-answer layout blank out "WID" and ", VSP--".
_WID_PAD = " " * 9
_INFO_PAD = " " * 6


def _mark_or_dash(mark: int) -> str:
    return str(mark) if mark else "-"


def card_info(card: ScanCard) -> str:
    """'<wid>, <version><sheet><permission>--' using raw marks ('-' for a tie)."""
    permission = "1" if card.permission_granted else "-"
    return f"{card.wid}, {_mark_or_dash(card.version_mark)}{_mark_or_dash(card.sheet_mark)}{permission}--"


def to_single_answer_string(card: ScanCard) -> str:
    return f"{card_info(card)},   '{card.single_answers}'{LINE_END}"


def to_multiple_answer_string(card: ScanCard) -> str:
    choices = len(card.responses[0].marks) if card.responses else 5
    lines = []
    for n in range(choices, 0, -1):
        column = "".join(q.marks[n - 1] for q in card.responses)
        lead = card_info(card) if n == choices else f"{_WID_PAD},{_INFO_PAD}"
        lines.append(f"{lead},{n}, '{column}'{LINE_END}")
    return "".join(lines)


def format_cards(cards: Iterable[ScanCard], multiple: bool = False) -> str:
    fmt = to_multiple_answer_string if multiple else to_single_answer_string
    return "".join(fmt(c) for c in cards)
