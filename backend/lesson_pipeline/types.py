"""
Shared types for the lesson generation pipeline.

A directive is one of three variants (WriteText, DrawFractionBar, Erase).
Coordinates and timing may be None until the layout sanitizer runs.
"""
from typing import ClassVar, List, Optional, Union
from dataclasses import dataclass, field


WRITE_TEXT = "WRITE_TEXT"
DRAW_FRACTION_BAR = "DRAW_FRACTION_BAR"
ERASE = "ERASE"

DIRECTIVE_TYPES = (WRITE_TEXT, DRAW_FRACTION_BAR, ERASE)

SPEED_WORD = "word"
SPEED_CHAR = "char"
SPEEDS = (SPEED_WORD, SPEED_CHAR)


@dataclass
class WriteText:
    """Reveal a line of text on the whiteboard"""
    text: str
    x: Optional[float] = None
    y: Optional[float] = None
    speed: Optional[str] = None  # 'word' | 'char'
    delay_per_unit: Optional[float] = None  # milliseconds per word/char

    type: ClassVar[str] = WRITE_TEXT


@dataclass
class DrawFractionBar:
    """Draw a bar split into `denominator` parts with `numerator` shaded"""
    numerator: float
    denominator: float
    x: Optional[float] = None
    y: Optional[float] = None

    type: ClassVar[str] = DRAW_FRACTION_BAR


@dataclass
class Erase:
    """Erase a rectangle, or the whole canvas when no bounds are given"""
    x: Optional[float] = None
    y: Optional[float] = None
    w: Optional[float] = None
    h: Optional[float] = None

    type: ClassVar[str] = ERASE

    @property
    def is_full_canvas(self) -> bool:
        return self.x is None and self.y is None and self.w is None and self.h is None


Directive = Union[WriteText, DrawFractionBar, Erase]


@dataclass
class Chunk:
    """One narrated teaching step"""
    id: str
    title: str
    narration_text: str
    directives: List[Directive] = field(default_factory=list)
    audio_ref: Optional[str] = None


@dataclass
class PracticeItem:
    """Multiple-choice question; directives=None means no visualization"""
    question: str
    options: List[str]
    correct_answer: str
    explanation: str
    directives: Optional[List[Directive]] = None


@dataclass
class Script:
    """Complete lesson artifact persisted once per lesson request"""
    title: str
    grade_level: int
    chunks: List[Chunk] = field(default_factory=list)
    practice_items: List[PracticeItem] = field(default_factory=list)


@dataclass
class LessonRequest:
    """User's input for lesson generation"""
    topic: str
    grade_level: int
    chunk_count: int = 8
    practice_count: int = 5


def count_write_text(directives: List[Directive]) -> int:
    return sum(1 for d in directives if isinstance(d, WriteText))
