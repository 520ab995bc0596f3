"""
Flat-nullable wire encoding for directives and lesson scripts.

The generation service's structured-output mode requires every property to
be listed in `required` and forbids oneOf/anyOf, so a directive travels as a
single record carrying every variant's fields, with the inapplicable ones set
to null. Decoding recovers the variant and rejects records that break the
variant rules, so nothing malformed gets past this module.
"""
import math
from numbers import Real
from typing import Any, Dict, List, Optional

from lesson_pipeline.errors import SchemaViolation
from lesson_pipeline.types import (
    DIRECTIVE_TYPES,
    DRAW_FRACTION_BAR,
    ERASE,
    SPEEDS,
    WRITE_TEXT,
    Chunk,
    Directive,
    DrawFractionBar,
    Erase,
    PracticeItem,
    Script,
    WriteText,
)


# Order matters: it is the `required` list sent to the generation service
DIRECTIVE_FIELDS = (
    'type', 'x', 'y', 'text', 'speed', 'delayPerUnit',
    'numerator', 'denominator', 'w', 'h',
)

_NUMERIC_FIELDS = ('x', 'y', 'delayPerUnit', 'numerator', 'denominator', 'w', 'h')
_ERASE_BOUNDS = ('x', 'y', 'w', 'h')


# =============================================================================
# Directives
# =============================================================================

def decode_directive(record: Any, path: str = "directive") -> Directive:
    """
    Decode a flat record into a directive variant.

    Raises:
        SchemaViolation: unknown tag, unknown keys, wrong field types, or a
            variant whose required fields are missing.
    """
    if not isinstance(record, dict):
        raise SchemaViolation("directive must be an object", path)

    unknown = set(record) - set(DIRECTIVE_FIELDS)
    if unknown:
        raise SchemaViolation(f"unknown directive fields: {sorted(unknown)}", path)

    tag = record.get('type')
    if tag not in DIRECTIVE_TYPES:
        raise SchemaViolation(f"unknown directive type {tag!r}", path)

    for name in _NUMERIC_FIELDS:
        value = record.get(name)
        if value is not None and (isinstance(value, bool) or not isinstance(value, Real)):
            raise SchemaViolation(f"{name} must be a number or null", path)
        if value is not None and not math.isfinite(value):
            raise SchemaViolation(f"{name} must be finite", path)

    text = record.get('text')
    if text is not None and not isinstance(text, str):
        raise SchemaViolation("text must be a string or null", path)

    speed = record.get('speed')
    if speed is not None and speed not in SPEEDS:
        raise SchemaViolation(f"speed must be one of {SPEEDS} or null", path)

    if tag == WRITE_TEXT:
        if text is None:
            raise SchemaViolation("WRITE_TEXT.text is required", path)
        return WriteText(
            text=text,
            x=record.get('x'),
            y=record.get('y'),
            speed=speed,
            delay_per_unit=record.get('delayPerUnit'),
        )

    if tag == DRAW_FRACTION_BAR:
        for name in ('numerator', 'denominator'):
            if record.get(name) is None:
                raise SchemaViolation(f"DRAW_FRACTION_BAR.{name} is required", path)
        return DrawFractionBar(
            numerator=record['numerator'],
            denominator=record['denominator'],
            x=record.get('x'),
            y=record.get('y'),
        )

    present = [name for name in _ERASE_BOUNDS if record.get(name) is not None]
    if present and len(present) != len(_ERASE_BOUNDS):
        raise SchemaViolation(
            "ERASE requires x, y, w, h together or all null for a full-canvas erase",
            path,
        )
    return Erase(
        x=record.get('x'),
        y=record.get('y'),
        w=record.get('w'),
        h=record.get('h'),
    )


def encode_directive(directive: Directive) -> Dict[str, Any]:
    """Encode a directive as a flat record with every field present."""
    record: Dict[str, Any] = {name: None for name in DIRECTIVE_FIELDS}
    record['type'] = directive.type

    if isinstance(directive, WriteText):
        record.update({
            'text': directive.text,
            'x': directive.x,
            'y': directive.y,
            'speed': directive.speed,
            'delayPerUnit': directive.delay_per_unit,
        })
    elif isinstance(directive, DrawFractionBar):
        record.update({
            'numerator': directive.numerator,
            'denominator': directive.denominator,
            'x': directive.x,
            'y': directive.y,
        })
    elif isinstance(directive, Erase):
        record.update({
            'x': directive.x,
            'y': directive.y,
            'w': directive.w,
            'h': directive.h,
        })
    else:
        raise TypeError(f"Not a directive: {directive!r}")
    return record


def decode_directives(records: Any, path: str) -> List[Directive]:
    if not isinstance(records, list):
        raise SchemaViolation("directives must be a list", path)
    return [
        decode_directive(record, f"{path}[{index}]")
        for index, record in enumerate(records)
    ]


# =============================================================================
# Scripts
# =============================================================================

def _require(raw: Dict[str, Any], key: str, kind: type, path: str):
    value = raw.get(key)
    if not isinstance(value, kind) or isinstance(value, bool):
        raise SchemaViolation(f"{key} must be {kind.__name__}", path)
    return value


def decode_chunk(raw: Any, path: str) -> Chunk:
    if not isinstance(raw, dict):
        raise SchemaViolation("chunk must be an object", path)
    audio_ref = raw.get('audioRef')
    if audio_ref is not None and not isinstance(audio_ref, str):
        raise SchemaViolation("audioRef must be a string", path)
    return Chunk(
        id=_require(raw, 'id', str, path),
        title=_require(raw, 'title', str, path),
        narration_text=_require(raw, 'narrationText', str, path),
        directives=decode_directives(raw.get('directives'), f"{path}.directives"),
        audio_ref=audio_ref,
    )


def decode_practice_item(raw: Any, path: str) -> PracticeItem:
    if not isinstance(raw, dict):
        raise SchemaViolation("practice item must be an object", path)
    options = raw.get('options')
    if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
        raise SchemaViolation("options must be a list of strings", path)

    directives: Optional[List[Directive]] = None
    if raw.get('directives') is not None:
        directives = decode_directives(raw['directives'], f"{path}.directives")

    return PracticeItem(
        question=_require(raw, 'question', str, path),
        options=list(options),
        correct_answer=_require(raw, 'correctAnswer', str, path),
        explanation=_require(raw, 'explanation', str, path),
        directives=directives,
    )


def decode_script(raw: Any) -> Script:
    """
    Validate and decode a raw lesson payload.

    Every directive in every chunk and practice item is decoded; the first
    violation aborts with a SchemaViolation naming its location.
    """
    if not isinstance(raw, dict):
        raise SchemaViolation("script must be an object", "script")

    grade = raw.get('gradeLevel')
    if isinstance(grade, bool) or not isinstance(grade, Real):
        raise SchemaViolation("gradeLevel must be a number", "script")
    if not math.isfinite(grade) or grade != int(grade):
        raise SchemaViolation("gradeLevel must be a whole number", "script")

    chunks = raw.get('chunks')
    if not isinstance(chunks, list):
        raise SchemaViolation("chunks must be a list", "script")

    practice = raw.get('practiceItems')
    if practice is None:
        practice = []
    if not isinstance(practice, list):
        raise SchemaViolation("practiceItems must be a list", "script")

    return Script(
        title=_require(raw, 'title', str, "script"),
        grade_level=int(grade),
        chunks=[decode_chunk(c, f"chunks[{i}]") for i, c in enumerate(chunks)],
        practice_items=[
            decode_practice_item(p, f"practiceItems[{i}]") for i, p in enumerate(practice)
        ],
    )


def encode_chunk(chunk: Chunk) -> Dict[str, Any]:
    data = {
        'id': chunk.id,
        'title': chunk.title,
        'narrationText': chunk.narration_text,
        'directives': [encode_directive(d) for d in chunk.directives],
    }
    if chunk.audio_ref:
        data['audioRef'] = chunk.audio_ref
    return data


def encode_practice_item(item: PracticeItem) -> Dict[str, Any]:
    return {
        'question': item.question,
        'options': list(item.options),
        'correctAnswer': item.correct_answer,
        'explanation': item.explanation,
        'directives': (
            None if item.directives is None
            else [encode_directive(d) for d in item.directives]
        ),
    }


def encode_script(script: Script) -> Dict[str, Any]:
    """Convert Script to a JSON-serializable dict"""
    return {
        'title': script.title,
        'gradeLevel': script.grade_level,
        'chunks': [encode_chunk(c) for c in script.chunks],
        'practiceItems': [encode_practice_item(p) for p in script.practice_items],
    }


# =============================================================================
# Structured-output JSON schema
# =============================================================================

def directive_json_schema() -> Dict[str, Any]:
    """Flat directive object: every key required, inapplicable keys nullable."""
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "type": {"type": "string", "enum": list(DIRECTIVE_TYPES)},
            "x": {"type": ["number", "null"]},
            "y": {"type": ["number", "null"]},
            "text": {"type": ["string", "null"]},
            "speed": {"type": ["string", "null"], "enum": list(SPEEDS) + [None]},
            "delayPerUnit": {"type": ["number", "null"]},
            "numerator": {"type": ["number", "null"]},
            "denominator": {"type": ["number", "null"]},
            "w": {"type": ["number", "null"]},
            "h": {"type": ["number", "null"]},
        },
        "required": list(DIRECTIVE_FIELDS),
    }


def lesson_json_schema() -> Dict[str, Any]:
    """Strict schema for a whole lesson as produced by the generation service."""
    directive = directive_json_schema()
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "title": {"type": "string"},
            "gradeLevel": {"type": "number"},
            "chunks": {
                "type": "array",
                "items": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "id": {"type": "string"},
                        "title": {"type": "string"},
                        "narrationText": {"type": "string"},
                        "directives": {"type": "array", "items": directive},
                    },
                    "required": ["id", "title", "narrationText", "directives"],
                },
            },
            "practiceItems": {
                "type": "array",
                "items": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "question": {"type": "string"},
                        "options": {"type": "array", "items": {"type": "string"}},
                        "correctAnswer": {"type": "string"},
                        "explanation": {"type": "string"},
                        # required but nullable: null means no visualization
                        "directives": {"type": ["array", "null"], "items": directive},
                    },
                    "required": ["question", "options", "correctAnswer", "explanation", "directives"],
                },
            },
        },
        "required": ["title", "gradeLevel", "chunks", "practiceItems"],
    }
