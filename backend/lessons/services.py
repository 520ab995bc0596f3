"""Persistence helpers for lesson scripts."""
import logging
from typing import Optional

from lesson_pipeline.errors import LessonNotFound
from lesson_pipeline.schema import decode_script, encode_script
from lesson_pipeline.types import Script

from .models import Lesson

logger = logging.getLogger(__name__)


def create_lesson(topic: str, grade_level: int, script: Script) -> Lesson:
    """
    Write the assembled script once; called only by the assembler.

    The row is keyed by the requested topic and grade so lesson reuse matches
    what callers ask for, whatever grade the generated content reports.
    """
    return Lesson.objects.create(
        title=script.title or topic,
        topic=topic,
        grade_level=grade_level,
        status=Lesson.STATUS_LIVE,
        script=encode_script(script),
    )


def save_script(lesson: Lesson, script: Script) -> None:
    """Audio reference backfill: the only update a persisted script receives."""
    lesson.script = encode_script(script)
    lesson.save(update_fields=['script', 'updated_at'])


def find_existing_lesson(topic: str, grade_level: int) -> Optional[Lesson]:
    return (
        Lesson.objects
        .filter(topic__iexact=topic.strip(), grade_level=grade_level)
        .order_by('id')
        .first()
    )


def load_lesson_script(lesson_id: int) -> Script:
    """
    Load and decode the persisted script for a lesson.

    Raises:
        LessonNotFound: no row, or the row carries no script
    """
    row = Lesson.objects.filter(pk=lesson_id).values_list('script', flat=True).first()
    if not row:
        raise LessonNotFound(lesson_id)
    return decode_script(row)
