# src/scantron_reader/config_io.py
from __future__ import annotations
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Tuple
import json
import math

import yaml

from .scoring_defaults import DEFAULTS, DecoderDefaults, require_int

Cell = Tuple[int, int]


def _require_cell(name: str, cell: Any) -> None:
    if not isinstance(cell, tuple) or len(cell) != 2:
        raise ValueError(f"{name} entries must be [row, column] pairs, got {cell!r}")
    for v in cell:
        require_int(name, v)


@dataclass(frozen=True)
class CardLayout:
    """
    Physical geometry of a scan card, expressed as grid coordinates.

    Grid rows are counted after the `skip_rows` rows scanned above the bubbles.
    Rows 0..wid_digits-1 hold the WID digits; the next `choices` rows form the
    header block, which carries the version/sheet/permission bubbles and the
    first (narrow) question group. Every later group of `choices` rows is a
    full-width question block.
    """
    question_count: int = 50
    choices: int = 5
    skip_rows: int = 2
    wid_digits: int = 9
    wid_width: int = 10
    header_widths: Tuple[int, ...] = (11, 8, 14, 8, 11)
    block_width: int = 15
    first_group_width: int = 5
    version_cells: Tuple[Cell, ...] = ((9, 10), (11, 10), (13, 10))
    sheet_cells: Tuple[Cell, ...] = ((9, 7), (10, 7), (11, 7), (12, 7), (13, 7))
    permission_cell: Cell = (11, 13)

    def __post_init__(self):
        for name in ("question_count", "choices", "skip_rows", "wid_digits", "wid_width",
                     "block_width", "first_group_width"):
            require_int(name, getattr(self, name))
        if not isinstance(self.header_widths, tuple):
            raise ValueError(f"header_widths must be a list of integers, got {self.header_widths!r}")
        for w in self.header_widths:
            require_int("header_widths", w)
        for name in ("version_cells", "sheet_cells"):
            cells = getattr(self, name)
            if not isinstance(cells, tuple):
                raise ValueError(f"{name} must be a list of [row, column] pairs, got {cells!r}")
            for cell in cells:
                _require_cell(name, cell)
        _require_cell("permission_cell", self.permission_cell)

        if self.question_count < 1:
            raise ValueError("question_count must be at least 1")
        if not 1 <= self.choices <= 9:
            raise ValueError("choices must be between 1 and 9")
        if not 1 <= self.wid_width <= 10:
            raise ValueError("wid_width must be between 1 and 10")
        if len(self.header_widths) != self.choices:
            raise ValueError(f"header_widths needs {self.choices} entries, got {len(self.header_widths)}")
        if self.first_group_width > min(self.header_widths):
            raise ValueError("first_group_width does not fit inside the header rows")
        if self.block_width < 1 or self.first_group_width < 1:
            raise ValueError("question group widths must be positive")
        header_rows = range(self.header_start, self.header_start + self.choices)
        for name in ("version_cells", "sheet_cells"):
            if not getattr(self, name):
                raise ValueError(f"{name} must list at least one cell")
            for cell in getattr(self, name):
                self._check_header_cell(name, cell, header_rows)
        self._check_header_cell("permission_cell", self.permission_cell, header_rows)

    def _check_header_cell(self, name: str, cell: Cell, header_rows: range) -> None:
        r, c = cell
        if r not in header_rows:
            raise ValueError(f"{name} {cell} is not in a header row")
        if not 0 <= c < self.row_width(r):
            raise ValueError(f"{name} {cell} is outside row {r} (width {self.row_width(r)})")

    @property
    def header_start(self) -> int:
        return self.wid_digits

    @property
    def group_count(self) -> int:
        rest = max(0, self.question_count - self.first_group_width)
        return 1 + math.ceil(rest / self.block_width)

    @property
    def row_count(self) -> int:
        """Number of grid rows this layout reads."""
        return self.header_start + self.choices * self.group_count

    def row_width(self, row: int) -> int:
        if row < self.wid_digits:
            return self.wid_width
        if row < self.header_start + self.choices:
            return self.header_widths[row - self.header_start]
        return self.block_width

    def row_widths(self) -> List[int]:
        return [self.row_width(i) for i in range(self.row_count)]

    def groups(self) -> List[Tuple[int, int]]:
        """(first row, column count) for each question group, top to bottom."""
        out = [(self.header_start, self.first_group_width)]
        for g in range(1, self.group_count):
            out.append((self.header_start + g * self.choices, self.block_width))
        return out


# Layout descriptors keyed by question count. Other counts reuse the
# 50-question card and read only as many groups as they need.
LAYOUTS: Dict[int, CardLayout] = {
    50: CardLayout(),
}


def layout_for_questions(question_count: int) -> CardLayout:
    require_int("question_count", question_count)
    if question_count in LAYOUTS:
        return LAYOUTS[question_count]
    return replace(LAYOUTS[50], question_count=question_count)


def _require_points(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value!r}")


@dataclass(frozen=True)
class GradingConfig:
    """
    Point values used when grading against a key.

    `points` applies to every question; `question_points` holds
    (question number, points) overrides.
    """
    points: float = 1
    question_points: Tuple[Tuple[int, float], ...] = ()

    def __post_init__(self):
        _require_points("points", self.points)
        if not isinstance(self.question_points, tuple):
            raise ValueError(f"question_points must be a mapping of question -> points, got {self.question_points!r}")
        for entry in self.question_points:
            if not isinstance(entry, tuple) or len(entry) != 2:
                raise ValueError(f"question_points entries must be (question, points) pairs, got {entry!r}")
            question, pts = entry
            require_int("question_points question", question)
            if question < 1:
                raise ValueError(f"question numbers start at 1, got {question}")
            _require_points(f"points for question {question}", pts)

    def weights(self, question_count: int) -> List[float]:
        overrides = dict(self.question_points)
        return [overrides.get(q, self.points) for q in range(1, question_count + 1)]


@dataclass(frozen=True)
class DecoderConfig:
    defaults: DecoderDefaults = DEFAULTS
    layout: CardLayout = field(default_factory=CardLayout)
    grading: GradingConfig = field(default_factory=GradingConfig)


def load_config_any(path: str | Path) -> Dict[str, Any]:
    """
    Prefer YAML, but transparently accept JSON.
    - If extension is .yml/.yaml -> use YAML
    - If extension is .json -> use JSON
    - Otherwise: try YAML first, then JSON
    """
    p = Path(path)
    data = p.read_text(encoding="utf-8")
    ext = p.suffix.lower()

    if ext in {".yml", ".yaml"}:
        cfg = yaml.safe_load(data)
    elif ext == ".json":
        cfg = json.loads(data)
    else:
        # No/unknown extension: prefer YAML, then fallback to JSON
        try:
            cfg = yaml.safe_load(data)
        except yaml.YAMLError:
            cfg = json.loads(data)

    if not isinstance(cfg, dict):
        raise ValueError("Config root must be a mapping/object.")

    return cfg


def _as_tuples(value: Any) -> Any:
    # YAML/JSON give lists; the frozen records want hashable tuples
    if isinstance(value, list):
        return tuple(_as_tuples(v) for v in value)
    return value


def _checked_kwargs(section: Dict[str, Any], cls: type, name: str) -> Dict[str, Any]:
    if not isinstance(section, dict):
        raise ValueError(f"'{name}' must be a mapping/object.")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown key(s) in '{name}': {', '.join(unknown)}")
    return {k: _as_tuples(v) for k, v in section.items()}


def question_points_from(value: Any) -> Tuple[Tuple[int, float], ...]:
    """
    Normalize per-question points to sorted (question, points) pairs.
    Accepts a mapping (JSON keys arrive as strings) or a list of pairs.
    """
    if isinstance(value, dict):
        items = list(value.items())
    elif isinstance(value, (list, tuple)):
        items = [tuple(v) if isinstance(v, (list, tuple)) else v for v in value]
    else:
        raise ValueError(f"question_points must be a mapping of question -> points, got {value!r}")

    pairs = []
    for item in items:
        if not isinstance(item, tuple) or len(item) != 2:
            raise ValueError(f"question_points entries must be (question, points) pairs, got {item!r}")
        question, pts = item
        if isinstance(question, str) and question.strip().isdigit():
            question = int(question)
        pairs.append((question, pts))
    return tuple(sorted(pairs, key=lambda p: p[0] if isinstance(p[0], int) else -1))


def config_from_mapping(cfg: Dict[str, Any]) -> DecoderConfig:
    """
    Build a DecoderConfig from a mapping with optional sections:

        decoder:  fields of DecoderDefaults (fill_threshold, count_offset, ...)
        layout:   fields of CardLayout (question_count, header_widths, ...)
        grading:  points (every question) and question_points {question: points}

    A layout section without explicit geometry starts from the registered
    layout for its question_count.
    """
    unknown = sorted(set(cfg) - {"decoder", "layout", "grading"})
    if unknown:
        raise ValueError(f"Unknown config section(s): {', '.join(unknown)}")

    decoder_kwargs = _checked_kwargs(cfg.get("decoder") or {}, DecoderDefaults, "decoder")
    layout_kwargs = _checked_kwargs(cfg.get("layout") or {}, CardLayout, "layout")
    grading_kwargs = _checked_kwargs(cfg.get("grading") or {}, GradingConfig, "grading")
    if "question_points" in grading_kwargs:
        grading_kwargs["question_points"] = question_points_from(grading_kwargs["question_points"])

    defaults = replace(DEFAULTS, **decoder_kwargs)
    base = layout_for_questions(layout_kwargs.pop("question_count", 50))
    layout = replace(base, **layout_kwargs)
    return DecoderConfig(defaults=defaults, layout=layout, grading=GradingConfig(**grading_kwargs))


def load_config(path: str | Path) -> DecoderConfig:
    return config_from_mapping(load_config_any(path))
