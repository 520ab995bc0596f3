"""
Main orchestrator pipeline.

Assembles a lesson script in a fixed order:
1. Decode and validate the generated content (fatal on SchemaViolation)
2. Enrich thin narration and sparse whiteboards (best-effort)
3. Sanitize layout and timing
4. Persist the script
5. Synthesize audio per chunk and backfill audio references (best-effort)
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from lesson_pipeline.errors import AudioSynthesisFailed
from lesson_pipeline.pipelines.enrichment import NarrationEnricher
from lesson_pipeline.pipelines.layout import sanitize_script
from lesson_pipeline.schema import decode_script
from lesson_pipeline.services.audio import get_audio_service
from lesson_pipeline.services.generation import get_generation_service
from lesson_pipeline.types import LessonRequest, Script

logger = logging.getLogger(__name__)


@dataclass
class AssemblyStats:
    """Counters collected while assembling one lesson"""
    chunks: int = 0
    practice_items: int = 0
    narrations_expanded: int = 0
    boards_synthesized: int = 0
    enrichment_degraded: int = 0
    audio_synthesized: int = 0
    audio_failed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'chunks': self.chunks,
            'practice_items': self.practice_items,
            'narrations_expanded': self.narrations_expanded,
            'boards_synthesized': self.boards_synthesized,
            'enrichment_degraded': self.enrichment_degraded,
            'audio_synthesized': self.audio_synthesized,
            'audio_failed': self.audio_failed,
        }


@dataclass
class AssemblyResult:
    lesson_id: int
    script: Script
    stats: AssemblyStats = field(default_factory=AssemblyStats)


def build_script(raw: Any, generator=None, stats: Optional[AssemblyStats] = None) -> Script:
    """
    Validate, enrich and sanitize raw generated content.

    Raises:
        SchemaViolation: the raw content breaks the directive schema; nothing
            downstream runs.
    """
    script = decode_script(raw)

    enricher = NarrationEnricher(generator)
    script = enricher.enrich_script(script)
    script = sanitize_script(script)

    if stats is not None:
        stats.chunks = len(script.chunks)
        stats.practice_items = len(script.practice_items)
        stats.narrations_expanded = enricher.expanded
        stats.boards_synthesized = enricher.synthesized
        stats.enrichment_degraded = enricher.degraded
    return script


def attach_audio(script: Script, lesson_id: int, audio_service, stats: Optional[AssemblyStats] = None) -> Script:
    """Synthesize narration per chunk; chunks whose synthesis fails keep no audio ref."""
    chunks = []
    for chunk in script.chunks:
        try:
            audio = audio_service.synthesize(chunk.narration_text)
            audio_ref = audio_service.store(lesson_id, chunk.id, audio)
            chunks.append(replace(chunk, audio_ref=audio_ref))
            if stats is not None:
                stats.audio_synthesized += 1
            logger.info(f"Synthesized audio for chunk {chunk.id}")
        except AudioSynthesisFailed as e:
            chunks.append(replace(chunk, audio_ref=None))
            if stats is not None:
                stats.audio_failed += 1
            logger.warning(f"Audio synthesis failed for chunk {chunk.id}: {e}")
    return replace(script, chunks=chunks)


def assemble_lesson(
    request: LessonRequest,
    generator=None,
    audio_service=None,
) -> AssemblyResult:
    """
    Generate, assemble and persist a complete lesson.

    Raises:
        GenerationFailed: the generation service produced nothing usable
        SchemaViolation: the generated content is malformed; no row is written
    """
    from lessons.services import create_lesson, save_script

    generator = generator or get_generation_service()
    audio_service = audio_service or get_audio_service()
    stats = AssemblyStats()

    logger.info(f"=== Assembling lesson: {request.topic} (grade {request.grade_level}) ===")

    raw = generator.generate_lesson_content(request)
    script = build_script(raw, generator=generator, stats=stats)
    if script.grade_level != request.grade_level:
        logger.warning(
            f"Generated grade {script.grade_level} differs from requested grade {request.grade_level}; "
            f"keeping the requested grade"
        )
        script = replace(script, grade_level=request.grade_level)

    lesson = create_lesson(request.topic, request.grade_level, script)
    logger.info(f"Persisted lesson {lesson.id} with {len(script.chunks)} chunks")

    script = attach_audio(script, lesson.id, audio_service, stats)
    if stats.audio_synthesized:
        save_script(lesson, script)

    logger.info(f"=== Lesson {lesson.id} assembled: {stats.to_dict()} ===")
    return AssemblyResult(lesson_id=lesson.id, script=script, stats=stats)
