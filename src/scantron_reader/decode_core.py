# src/scantron_reader/decode_core.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import csv
import logging
import os

from .card import ScanCard, decode_card
from .config_io import DecoderConfig, GradingConfig
from .errors import CardFormatError
from .output_format import format_cards

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    # (1-based card index in the input, decoded card)
    cards: List[Tuple[int, ScanCard]] = field(default_factory=list)
    # (1-based card index in the input, error message)
    failures: List[Tuple[int, str]] = field(default_factory=list)

    @property
    def decoded(self) -> List[ScanCard]:
        return [c for _, c in self.cards]


def _ensure_dir(path: str) -> None:
    if path and not os.path.isdir(path):
        os.makedirs(path, exist_ok=True)


def read_card_streams(path: str | Path) -> List[str]:
    """One raw card stream per line; blank lines are skipped."""
    text = Path(path).read_text(encoding="utf-8")
    return [ln for ln in text.splitlines() if ln.strip()]


def decode_batch(streams: Iterable[str], config: Optional[DecoderConfig] = None) -> BatchResult:
    """
    Decode every stream independently. A card that fails to decode is logged
    and recorded in `failures`; the remaining cards are still decoded.
    """
    result = BatchResult()
    for idx, raw in enumerate(streams, start=1):
        try:
            card = decode_card(raw, config)
        except CardFormatError as e:
            logger.warning("Card %d could not be decoded: %s", idx, e)
            result.failures.append((idx, str(e)))
            continue
        result.cards.append((idx, card))
    logger.info("Decoded %d card(s), %d failure(s)", len(result.cards), len(result.failures))
    return result


def write_answers(cards: Iterable[ScanCard], out_path: str, multiple: bool = False) -> str:
    """Write the single- or multiple-answer text for all cards into one file."""
    _ensure_dir(os.path.dirname(out_path) or ".")
    # newline="" keeps the CRLF line endings exactly as formatted
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        f.write(format_cards(cards, multiple=multiple))
    return out_path

# ------------------------------------------------------------------------------
# Key handling & scoring
# ------------------------------------------------------------------------------

def build_answer_keys(key_cards: Iterable[ScanCard]) -> Dict[int, str]:
    """Map test version -> single answers of that version's key card."""
    keys: Dict[int, str] = {}
    for card in key_cards:
        if card.version in keys:
            logger.warning("Several key cards for version %d; using the last one", card.version)
        keys[card.version] = card.single_answers
    return keys


def score_against_key(answers: str, key: str,
                      weights: Optional[Sequence[float]] = None) -> Tuple[float, float]:
    """
    Sum the points of matching answers. `weights[i]` is the value of question
    i+1 (1 each when omitted); key positions left blank ("-") are not graded.
    """
    correct = 0
    total = 0
    for i, (got, want) in enumerate(zip(answers, key)):
        if want == "-":
            continue
        pts = weights[i] if weights is not None else 1
        total += pts
        if got != "-" and got == want:
            correct += pts
    return correct, total


def _fmt_points(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def grade_cards(
    cards: Iterable[Tuple[int, ScanCard]],
    keys: Dict[int, str],
    out_csv: str,
    grading: Optional[GradingConfig] = None,
) -> str:
    """
    Write one CSV row per card with its answers and, when a key exists for the
    card's version, the weighted score against it.
    """
    grading = grading or GradingConfig()
    cards = list(cards)
    q_out = max((len(c.responses) for _, c in cards), default=0)
    weights = grading.weights(q_out)
    header = ["card_index", "StudentID", "Version", "Sheet"] \
             + [f"Q{i+1}" for i in range(q_out)] + ["score", "total"]

    _ensure_dir(os.path.dirname(out_csv) or ".")
    with open(out_csv, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for idx, card in cards:
            answers = card.single_answers
            row = [str(idx), card.wid, str(card.version), str(card.sheet_number)] + list(answers)
            key = keys.get(card.version)
            if key is None:
                logger.warning("No answer key for version %d (card %d)", card.version, idx)
                row += ["", ""]
            else:
                got, tot = score_against_key(answers, key, weights)
                row += [_fmt_points(got), _fmt_points(tot)]
            writer.writerow(row)
    return out_csv
