"""
Narration enrichment.

Brings thin generated chunks up to the minimum content bar: narration is
expanded to the configured word floor and chunks with fewer than three
WRITE_TEXT directives get a synthesized board (title, wrapped narration
lines, an example line and, for fractions, a fraction bar). Every failure
here is best-effort and falls back to the original content.
"""
import logging
import re
from dataclasses import replace
from typing import List, Optional

from lesson_pipeline.config import config
from lesson_pipeline.errors import EnrichmentDegraded
from lesson_pipeline.types import (
    Chunk,
    Directive,
    DrawFractionBar,
    Script,
    WriteText,
    count_write_text,
)

logger = logging.getLogger(__name__)

FRACTION_PATTERN = re.compile(r'(\d+)\s*/\s*(\d+)')
_LINE_BREAK_TOKEN = re.compile(r'[.!?)]$')

DEFAULT_EXAMPLE_LINE = "Example: 3/4 + 1/4 = 1 (four quarters make a whole)."
MIN_WRITE_TEXT = 3


def word_count(text: str) -> int:
    return len((text or "").split())


def wrap_narration(narration: str, max_words: int = 14) -> List[str]:
    """
    Split narration into board lines.

    A line ends after `max_words` words or after a token ending a sentence.
    """
    lines: List[str] = []
    current: List[str] = []
    for token in (narration or "").split():
        current.append(token)
        if len(current) >= max_words or _LINE_BREAK_TOKEN.search(token):
            lines.append(" ".join(current))
            current = []
    if current:
        lines.append(" ".join(current))
    return lines


def find_fraction(text: str) -> Optional[tuple]:
    match = FRACTION_PATTERN.search(text or "")
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def derive_example_line(narration: str) -> str:
    fraction = find_fraction(narration)
    if fraction and fraction[1]:
        numerator, denominator = fraction
        return f"Example: {numerator}/{denominator} means {numerator} parts out of {denominator} equal parts."
    return DEFAULT_EXAMPLE_LINE


def narration_lines(narration: str, title: str, max_words: int = 14) -> List[str]:
    """
    Board lines derived from the narration, never fewer than two.

    A single short sentence is split in half; a one-word or empty narration
    is topped up with a line restating the chunk title.
    """
    lines = wrap_narration(narration, max_words)
    if len(lines) >= 2:
        return lines
    tokens = (narration or "").split()
    if len(tokens) >= 2:
        middle = (len(tokens) + 1) // 2
        return [" ".join(tokens[:middle]), " ".join(tokens[middle:])]
    fillers = [f"Key idea: {title}", "Let's look at it step by step."]
    return tokens + fillers[:2 - len(tokens)]


def synthesize_directives(chunk: Chunk) -> List[Directive]:
    """Build a minimum-viable board for a chunk from its title and narration."""
    speed = config.default_speed
    delay = config.default_delay_per_unit

    directives: List[Directive] = [
        WriteText(text=chunk.title, speed=speed, delay_per_unit=delay)
    ]
    lines = narration_lines(chunk.narration_text, chunk.title, config.max_words_per_line)
    for line in lines[:config.max_narration_lines]:
        directives.append(WriteText(text=line, speed=speed, delay_per_unit=delay))
    directives.append(
        WriteText(text=derive_example_line(chunk.narration_text), speed=speed, delay_per_unit=delay)
    )

    fraction = find_fraction(chunk.narration_text)
    if fraction:
        numerator, denominator = fraction
        directives.append(DrawFractionBar(numerator=numerator, denominator=max(1, denominator)))
    return directives


class NarrationEnricher:
    """Expands short narration and fills in sparse whiteboards"""

    def __init__(self, generator=None):
        self.generator = generator
        self.expanded = 0
        self.synthesized = 0
        self.degraded = 0

    def expand_narration(self, chunk: Chunk) -> str:
        """
        Return an expanded narration, or raise EnrichmentDegraded.

        A rewrite that is empty or still under the word floor counts as a
        failure so the caller keeps the original text.
        """
        if self.generator is None:
            raise EnrichmentDegraded("no generation service configured")
        try:
            text = self.generator.expand_narration(chunk.title, chunk.narration_text)
        except Exception as e:
            raise EnrichmentDegraded(f"expansion request failed: {e}") from e
        if word_count(text) < config.narration_word_floor:
            raise EnrichmentDegraded(
                f"expansion returned {word_count(text)} words, floor is {config.narration_word_floor}"
            )
        return text

    def enrich_chunk(self, chunk: Chunk) -> Chunk:
        narration = chunk.narration_text
        if word_count(narration) < config.narration_word_floor:
            try:
                narration = self.expand_narration(chunk)
                self.expanded += 1
            except EnrichmentDegraded as e:
                self.degraded += 1
                logger.warning(f"Narration expansion degraded for chunk {chunk.id}: {e}")

        enriched = replace(chunk, narration_text=narration)

        if count_write_text(enriched.directives) >= MIN_WRITE_TEXT:
            return enriched

        try:
            enriched = replace(enriched, directives=synthesize_directives(enriched))
            self.synthesized += 1
        except Exception as e:
            self.degraded += 1
            logger.warning(f"Directive synthesis degraded for chunk {chunk.id}: {e}")
        return enriched

    def enrich_script(self, script: Script) -> Script:
        chunks = [self.enrich_chunk(chunk) for chunk in script.chunks]
        logger.info(
            f"Enriched {len(chunks)} chunks: {self.expanded} expanded, "
            f"{self.synthesized} synthesized, {self.degraded} degraded"
        )
        return replace(script, chunks=chunks)


def enrich_script(script: Script, generator=None) -> Script:
    """Convenience wrapper around NarrationEnricher"""
    return NarrationEnricher(generator).enrich_script(script)
