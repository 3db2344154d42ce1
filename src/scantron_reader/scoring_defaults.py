# scantron_reader/scoring_defaults.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any


def require_int(name: str, value: Any) -> int:
    # bool is an int subclass but never a valid threshold or width
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return value


@dataclass(frozen=True)
class DecoderDefaults:
    # Single source of truth for darkness thresholds and stream symbols.
    # Darkness arrives as characters '0'..'9','A'..'F'; thresholds compare code points.
    fill_threshold: int = 54            # > '6' counts as a filled bubble
    permission_threshold: int = 6       # literal value used for the grant-permission bubble
    darkness_floor: int = ord("0")      # seed for the per-question darkest-choice fold
    count_offset: int = 64              # compression count char: 'A' -> 1, 'B' -> 2, ...
    front_symbol: str = "a"
    back_symbol: str = "b"
    compression_symbol: str = "#"

    def __post_init__(self):
        for name in ("fill_threshold", "permission_threshold", "darkness_floor", "count_offset"):
            require_int(name, getattr(self, name))
        for name in ("front_symbol", "back_symbol", "compression_symbol"):
            value = getattr(self, name)
            if not isinstance(value, str) or len(value) != 1:
                raise ValueError(f"{name} must be a single character")
        if len({self.front_symbol, self.back_symbol, self.compression_symbol}) != 3:
            raise ValueError("front, back and compression symbols must differ")


DEFAULTS = DecoderDefaults()


def apply_overrides(
    fill_threshold: int | None = None,
    permission_threshold: int | None = None,
    darkness_floor: int | None = None,
    count_offset: int | None = None,
    base: DecoderDefaults | None = None,
) -> DecoderDefaults:
    # produce an overridden immutable config without mutating DEFAULTS
    base = DEFAULTS if base is None else base
    return DecoderDefaults(
        fill_threshold = base.fill_threshold if fill_threshold is None else fill_threshold,
        permission_threshold = base.permission_threshold if permission_threshold is None else permission_threshold,
        darkness_floor = base.darkness_floor if darkness_floor is None else darkness_floor,
        count_offset = base.count_offset if count_offset is None else count_offset,
        front_symbol = base.front_symbol,
        back_symbol = base.back_symbol,
        compression_symbol = base.compression_symbol,
    )
