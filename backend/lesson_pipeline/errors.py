"""
Error taxonomy for the lesson pipeline.

Fatal errors derive from PipelineError and abort assembly. Degraded
operations derive from DegradedOperation and are caught where they occur;
the two hierarchies never overlap.
"""
from typing import Optional


class PipelineError(Exception):
    """Base class for failures that abort lesson assembly."""


class SchemaViolation(PipelineError):
    """Generated content does not satisfy the flat directive schema."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class GenerationFailed(PipelineError):
    """The generation service did not return usable content."""


class DegradedOperation(Exception):
    """Base class for best-effort failures that fall back to original content."""


class EnrichmentDegraded(DegradedOperation):
    """Narration expansion or directive synthesis failed."""


class AudioSynthesisFailed(DegradedOperation):
    """Text-to-speech failed for a single chunk."""


class LessonNotFound(Exception):
    """No persisted script exists for the requested lesson."""

    def __init__(self, lesson_id):
        self.lesson_id = lesson_id
        super().__init__(f"Lesson {lesson_id} not found")
