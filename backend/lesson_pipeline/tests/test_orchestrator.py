"""
Integration-style tests for lesson_pipeline/pipelines/orchestrator.py

Tests the full assembly pipeline with mocked external services:
- LessonGenerationService (no OpenAI calls)
- AudioSynthesisService (no Google TTS calls, no storage writes)

Run with: python -m pytest lesson_pipeline/tests/test_orchestrator.py -v
"""
import json
import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from django.test import TestCase, override_settings

from lesson_pipeline.errors import AudioSynthesisFailed, SchemaViolation
from lesson_pipeline.pipelines.layout import chunk_base_y
from lesson_pipeline.pipelines.orchestrator import (
    AssemblyStats,
    assemble_lesson,
    build_script,
)
from lesson_pipeline.schema import DIRECTIVE_FIELDS, encode_script
from lesson_pipeline.services.audio import AudioSynthesisService
from lesson_pipeline.types import DrawFractionBar, LessonRequest, WriteText
from lessons.models import Lesson
from lessons.services import find_existing_lesson, load_lesson_script


# =============================================================================
# Test Fixtures
# =============================================================================

PIZZA_NARRATION = "We share one pizza. Then we eat 3/4 of a pizza together."


def make_record(**fields):
    record = {name: None for name in DIRECTIVE_FIELDS}
    record.update(fields)
    return record


def make_raw_lesson() -> dict:
    """Raw generated content: one thin chunk, one rich chunk, one practice item."""
    return {
        "title": "Fractions",
        "gradeLevel": 4,
        "chunks": [
            {
                "id": "c1",
                "title": "Pizza fractions",
                "narrationText": PIZZA_NARRATION,
                "directives": [make_record(type="WRITE_TEXT", text="Pizza")],
            },
            {
                "id": "c2",
                "title": "Halves",
                "narrationText": " ".join(["half"] * 95),
                "directives": [
                    make_record(type="WRITE_TEXT", text="Halves"),
                    make_record(type="WRITE_TEXT", text="Two equal parts"),
                    make_record(type="WRITE_TEXT", text="1/2 + 1/2 = 1"),
                    make_record(type="ERASE"),
                ],
            },
        ],
        "practiceItems": [
            {
                "question": "How many quarters make a whole?",
                "options": ["2", "3", "4", "5"],
                "correctAnswer": "4",
                "explanation": "Four quarters make one whole.",
                "directives": None,
            }
        ],
    }


def make_generator(raw=None, expansion_error=True) -> MagicMock:
    generator = MagicMock()
    generator.generate_lesson_content.return_value = raw if raw is not None else make_raw_lesson()
    if expansion_error:
        generator.expand_narration.side_effect = RuntimeError("expansion offline")
    return generator


def make_audio_service(fail_for=()) -> MagicMock:
    audio = MagicMock()

    def synthesize(text):
        if any(marker in text for marker in fail_for):
            raise AudioSynthesisFailed("voice unavailable")
        return b"ID3" + b"\x00" * 500

    audio.synthesize.side_effect = synthesize
    audio.store.side_effect = lambda lesson_id, chunk_id, data: f"/media/lessons/{lesson_id}/audio/{chunk_id}.mp3"
    return audio


# =============================================================================
# Test Cases
# =============================================================================

class TestAssemblyStats(unittest.TestCase):

    def test_stats_to_dict(self):
        stats = AssemblyStats(chunks=3, audio_synthesized=2, audio_failed=1)

        d = stats.to_dict()

        self.assertEqual(d["chunks"], 3)
        self.assertEqual(d["audio_synthesized"], 2)
        self.assertEqual(d["audio_failed"], 1)


class TestBuildScript(unittest.TestCase):
    """Decode -> enrich -> sanitize without persistence."""

    def test_pizza_scenario(self):
        script = build_script(make_raw_lesson(), generator=make_generator())
        chunk = script.chunks[0]
        lines = [d for d in chunk.directives if isinstance(d, WriteText)]
        bar = chunk.directives[-1]

        # narration unchanged because expansion failed
        self.assertEqual(chunk.narration_text, PIZZA_NARRATION)
        self.assertEqual(lines[0].text, "Pizza fractions")
        self.assertEqual(lines[0].y, chunk_base_y(0))
        self.assertEqual(len(lines), 4)
        ys = [line.y for line in lines]
        self.assertTrue(all(a < b for a, b in zip(ys, ys[1:])))
        self.assertIsInstance(bar, DrawFractionBar)
        self.assertEqual((bar.numerator, bar.denominator), (3, 4))
        self.assertGreater(bar.y, ys[-1])

    def test_one_sentence_narration_without_expansion(self):
        raw = make_raw_lesson()
        raw["chunks"][0]["narrationText"] = "3/4 of a pizza"
        raw["chunks"][0]["directives"] = [make_record(type="WRITE_TEXT", text="Pizza")]

        chunk = build_script(raw, generator=make_generator()).chunks[0]
        lines = [d for d in chunk.directives if isinstance(d, WriteText)]

        self.assertEqual(chunk.narration_text, "3/4 of a pizza")
        self.assertGreaterEqual(len(lines), 4)
        self.assertEqual(lines[0].text, "Pizza fractions")
        ys = [line.y for line in lines]
        self.assertTrue(all(a < b for a, b in zip(ys, ys[1:])))

    def test_rich_chunk_is_only_laid_out(self):
        script = build_script(make_raw_lesson(), generator=make_generator())
        texts = [d.text for d in script.chunks[1].directives if isinstance(d, WriteText)]

        self.assertEqual(texts, ["Halves", "Two equal parts", "1/2 + 1/2 = 1"])

    def test_schema_violation_stops_before_enrichment(self):
        raw = make_raw_lesson()
        raw["chunks"][1]["directives"].append(make_record(type="ERASE", x=5, y=5))
        generator = make_generator()

        with self.assertRaises(SchemaViolation):
            build_script(raw, generator=generator)

        generator.expand_narration.assert_not_called()

    def test_rebuilding_a_built_script_is_stable(self):
        first = build_script(make_raw_lesson(), generator=make_generator())
        second = build_script(encode_script(first), generator=make_generator())

        self.assertEqual(
            json.dumps(encode_script(first), sort_keys=True),
            json.dumps(encode_script(second), sort_keys=True),
        )

    def test_stats_are_collected(self):
        stats = AssemblyStats()

        build_script(make_raw_lesson(), generator=make_generator(), stats=stats)

        self.assertEqual(stats.chunks, 2)
        self.assertEqual(stats.practice_items, 1)
        self.assertEqual(stats.boards_synthesized, 1)
        self.assertEqual(stats.enrichment_degraded, 1)


class TestAssembleLesson(TestCase):
    """Full assembly with persistence in the test database."""

    def setUp(self):
        self.request = LessonRequest(topic="Fractions", grade_level=4, chunk_count=2, practice_count=1)

    def test_persists_script_with_audio_refs(self):
        audio = make_audio_service()

        result = assemble_lesson(self.request, generator=make_generator(), audio_service=audio)

        lesson = Lesson.objects.get(pk=result.lesson_id)
        stored = load_lesson_script(lesson.id)
        self.assertEqual(lesson.topic, "Fractions")
        self.assertEqual(lesson.grade_level, 4)
        self.assertEqual(stored.chunks[0].audio_ref, f"/media/lessons/{lesson.id}/audio/c1.mp3")
        self.assertEqual(stored, result.script)
        self.assertEqual(result.stats.audio_synthesized, 2)

    def test_audio_failure_is_per_chunk(self):
        audio = make_audio_service(fail_for=("half",))

        result = assemble_lesson(self.request, generator=make_generator(), audio_service=audio)

        stored = load_lesson_script(result.lesson_id)
        self.assertIsNotNone(stored.chunks[0].audio_ref)
        self.assertIsNone(stored.chunks[1].audio_ref)
        self.assertNotIn("audioRef", Lesson.objects.get(pk=result.lesson_id).script["chunks"][1])
        self.assertEqual(result.stats.audio_failed, 1)

    def test_all_audio_failing_still_persists(self):
        audio = MagicMock()
        audio.synthesize.side_effect = AudioSynthesisFailed("tts down")

        result = assemble_lesson(self.request, generator=make_generator(), audio_service=audio)

        stored = load_lesson_script(result.lesson_id)
        self.assertTrue(all(chunk.audio_ref is None for chunk in stored.chunks))
        audio.store.assert_not_called()

    def test_store_failure_is_per_chunk(self):
        audio = make_audio_service()

        def store(lesson_id, chunk_id, data):
            if chunk_id == "c1":
                raise AudioSynthesisFailed("bucket unavailable")
            return f"/media/lessons/{lesson_id}/audio/{chunk_id}.mp3"

        audio.store.side_effect = store

        result = assemble_lesson(self.request, generator=make_generator(), audio_service=audio)

        stored = load_lesson_script(result.lesson_id)
        self.assertIsNone(stored.chunks[0].audio_ref)
        self.assertEqual(stored.chunks[1].audio_ref, f"/media/lessons/{result.lesson_id}/audio/c2.mp3")
        self.assertEqual((result.stats.audio_synthesized, result.stats.audio_failed), (1, 1))

    def test_unsafe_chunk_id_is_stored_inside_lesson_audio_dir(self):
        raw = make_raw_lesson()
        raw["chunks"][0]["id"] = "../../../escape"
        tts = MagicMock()
        tts.synthesize_speech.return_value = MagicMock(audio_content=b"\xff" * 1024)

        with tempfile.TemporaryDirectory() as media_root:
            with override_settings(MEDIA_ROOT=media_root, MEDIA_URL="/media/"):
                result = assemble_lesson(
                    self.request, generator=make_generator(raw), audio_service=AudioSynthesisService(client=tts)
                )
                audio_dir = os.path.join(media_root, "lessons", str(result.lesson_id), "audio")
                stored_files = sorted(os.listdir(audio_dir))
                escaped = os.path.exists(os.path.join(media_root, "..", "..", "escape.mp3"))

        prefix = f"/media/lessons/{result.lesson_id}/audio/"
        ref = result.script.chunks[0].audio_ref
        self.assertTrue(ref.startswith(prefix))
        self.assertNotIn("/", ref[len(prefix):])
        self.assertEqual(len(stored_files), 2)
        self.assertFalse(escaped)

    def test_storage_error_does_not_abort_assembly(self):
        tts = MagicMock()
        tts.synthesize_speech.return_value = MagicMock(audio_content=b"\xff" * 1024)

        with patch("lesson_pipeline.services.audio.default_storage") as storage:
            storage.exists.return_value = False
            storage.save.side_effect = OSError("disk full")
            result = assemble_lesson(
                self.request, generator=make_generator(), audio_service=AudioSynthesisService(client=tts)
            )

        self.assertEqual(Lesson.objects.count(), 1)
        self.assertEqual(result.stats.audio_failed, 2)
        self.assertTrue(all(chunk.audio_ref is None for chunk in load_lesson_script(result.lesson_id).chunks))

    def test_requested_grade_is_stored(self):
        for generated_grade in (7, 0, -1):
            with self.subTest(generated_grade=generated_grade):
                raw = make_raw_lesson()
                raw["gradeLevel"] = generated_grade

                result = assemble_lesson(self.request, generator=make_generator(raw), audio_service=make_audio_service())

                lesson = Lesson.objects.get(pk=result.lesson_id)
                self.assertEqual(lesson.grade_level, 4)
                self.assertEqual(result.script.grade_level, 4)
                self.assertEqual(find_existing_lesson("fractions", 4).id, lesson.id)
                lesson.delete()

    def test_schema_violation_persists_nothing(self):
        raw = make_raw_lesson()
        raw["chunks"][0]["directives"] = [make_record(type="WRITE_TEXT")]
        audio = make_audio_service()

        with self.assertRaises(SchemaViolation):
            assemble_lesson(self.request, generator=make_generator(raw), audio_service=audio)

        self.assertEqual(Lesson.objects.count(), 0)
        audio.synthesize.assert_not_called()


if __name__ == "__main__":
    unittest.main()
