# src/scantron_reader/tools/stream_codec.py
"""
stream_codec.py
---------------
Text-level clean-up of the raw scanner stream, applied before any geometry:

  strip_back_side: drop back-of-card segments ("b" ... up to the next "a").
  uncompress:      expand run-length tokens "#<count><symbol>".

Both take and return plain strings; the stream is never mutated in place.
"""

from __future__ import annotations

from ..errors import CardFormatError
from ..scoring_defaults import DEFAULTS, DecoderDefaults


def strip_back_side(raw: str, defaults: DecoderDefaults = DEFAULTS) -> str:
    """
    Remove every back-channel segment, keeping front-channel text in order.

    A segment runs from a back marker up to (not including) the next front
    marker; with no front marker after it, it runs to end of stream. Front
    markers stay in the result since they separate the card rows.
    """
    front, back = defaults.front_symbol, defaults.back_symbol
    data = raw
    start = data.find(back)
    while start != -1:
        end = data.find(front, start)
        if end == -1:
            end = len(data)
        data = data[:start] + data[end:]
        # everything before `start` is already free of back markers
        start = data.find(back, start)
    return data


def uncompress(data: str, defaults: DecoderDefaults = DEFAULTS) -> str:
    """
    Expand each "#<count><symbol>" token into `symbol` repeated
    ord(count) - count_offset times, leftmost token first. Expanded text is
    rescanned, so a token that expands into another "#" keeps expanding.
    """
    marker = defaults.compression_symbol
    pos = data.find(marker)
    while pos != -1:
        if pos + 2 >= len(data):
            raise CardFormatError(
                f"truncated compression token at offset {pos}: {data[pos:]!r}",
                field="compression",
            )
        count_char, symbol = data[pos + 1], data[pos + 2]
        amount = ord(count_char) - defaults.count_offset
        if amount <= 0:
            raise CardFormatError(
                f"compression count {count_char!r} at offset {pos} decodes to {amount}",
                field="compression",
            )
        data = data[:pos] + symbol * amount + data[pos + 3:]
        pos = data.find(marker, pos)
    return data
