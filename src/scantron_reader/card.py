# src/scantron_reader/card.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .config_io import DecoderConfig
from .tools.bubble_score import (
    QuestionResponse,
    decode_permission,
    decode_responses,
    decode_sheet_number,
    decode_version,
    decode_wid,
)
from .tools.card_grid import format_grid
from .tools.stream_codec import strip_back_side, uncompress

logger = logging.getLogger(__name__)

__all__ = ["ScanCard", "QuestionResponse", "decode_card"]


@dataclass(frozen=True)
class ScanCard:
    """
    One decoded scan card.

    `version_mark` and `sheet_mark` keep the raw darkest-bubble result, where 0
    means two bubbles tied; `version` and `sheet_number` report 1 in that case.
    """
    wid: str
    permission_granted: bool
    version_mark: int
    sheet_mark: int
    responses: Tuple[QuestionResponse, ...]

    @property
    def version(self) -> int:
        return self.version_mark or 1

    @property
    def sheet_number(self) -> int:
        return self.sheet_mark or 1

    @property
    def single_answers(self) -> str:
        return "".join(q.single_answer for q in self.responses)


def decode_card(raw: str, config: Optional[DecoderConfig] = None) -> ScanCard:
    """
    Decode one raw scanner stream into a ScanCard.

    Raises CardFormatError if the stream does not fit the configured layout.
    """
    cfg = config or DecoderConfig()
    d, layout = cfg.defaults, cfg.layout

    front = strip_back_side(raw, d)
    data = uncompress(front, d)
    grid = format_grid(data, layout, d)
    logger.debug("Card grid: %d rows, widths %s", len(grid), grid.widths)

    return ScanCard(
        wid=decode_wid(grid, layout, d.fill_threshold),
        permission_granted=decode_permission(grid, layout, d.permission_threshold),
        version_mark=decode_version(grid, layout, d.fill_threshold),
        sheet_mark=decode_sheet_number(grid, layout, d.fill_threshold),
        responses=tuple(decode_responses(grid, layout, d.fill_threshold, d.darkness_floor)),
    )
