"""
Layout sanitization.

Fills in missing coordinates and timing with deterministic defaults. Only
absent fields are written, so running the pass twice is a no-op.
"""
import logging
from dataclasses import replace
from typing import List, Optional

from lesson_pipeline.config import config
from lesson_pipeline.types import (
    Directive,
    DrawFractionBar,
    Erase,
    PracticeItem,
    Script,
    WriteText,
)

logger = logging.getLogger(__name__)


class _LineCursor:
    """Hands out vertical slots below a base offset"""

    def __init__(self, base_y: float):
        self.base_y = base_y
        self.index = 0

    def next_line(self) -> float:
        y = self.base_y + self.index * config.line_height
        self.index += 1
        return y

    def next_fraction_bar(self) -> float:
        # just below the most recently placed line; the bar takes the slot
        y = self.base_y + self.index * config.line_height + config.fraction_bar_offset
        self.index += 1
        return y


def sanitize_directive(directive: Directive, cursor: _LineCursor) -> Directive:
    if isinstance(directive, WriteText):
        return replace(
            directive,
            x=config.base_x if directive.x is None else directive.x,
            y=cursor.next_line() if directive.y is None else directive.y,
            speed=directive.speed or config.default_speed,
            delay_per_unit=(
                config.default_delay_per_unit
                if directive.delay_per_unit is None else directive.delay_per_unit
            ),
        )

    if isinstance(directive, DrawFractionBar):
        denominator = directive.denominator
        if denominator <= 0:
            logger.warning(f"Fraction bar denominator {denominator} is not positive, using 1")
            denominator = 1
        return replace(
            directive,
            denominator=denominator,
            x=config.base_x if directive.x is None else directive.x,
            y=cursor.next_fraction_bar() if directive.y is None else directive.y,
        )

    if isinstance(directive, Erase):
        # either fully bounded or full-canvas already
        return directive

    raise TypeError(f"Not a directive: {directive!r}")


def sanitize_directives(directives: List[Directive], base_y: float) -> List[Directive]:
    cursor = _LineCursor(base_y)
    return [sanitize_directive(d, cursor) for d in directives]


def chunk_base_y(chunk_index: int) -> float:
    return config.base_y + chunk_index * config.row_height


def practice_base_y(chunk_total: int) -> float:
    return config.base_y + chunk_total * config.row_height + config.practice_gap


def _sanitize_practice_item(item: PracticeItem, base_y: float) -> PracticeItem:
    directives: Optional[List[Directive]] = item.directives
    if directives is None:
        return item
    return replace(item, directives=sanitize_directives(directives, base_y))


def sanitize_script(script: Script) -> Script:
    """Return a copy of the script with every directive positioned and timed."""
    chunks = [
        replace(chunk, directives=sanitize_directives(chunk.directives, chunk_base_y(index)))
        for index, chunk in enumerate(script.chunks)
    ]
    practice_y = practice_base_y(len(script.chunks))
    practice_items = [
        _sanitize_practice_item(item, practice_y) for item in script.practice_items
    ]
    return replace(script, chunks=chunks, practice_items=practice_items)
