"""
API tests for lessons/views.py and lesson_pipeline/views.py

Assembly is patched at the view boundary; persistence uses the test database.

Run with: python -m pytest lessons/tests/test_views.py -v
"""
from unittest.mock import MagicMock, patch

from rest_framework import status
from rest_framework.test import APITestCase

from lesson_pipeline.errors import GenerationFailed, LessonNotFound, SchemaViolation
from lesson_pipeline.pipelines.orchestrator import AssemblyResult, AssemblyStats
from lesson_pipeline.types import Chunk, Script, WriteText
from lessons.models import Lesson
from lessons.services import create_lesson, load_lesson_script


def make_script() -> Script:
    return Script(
        title="Adding fractions",
        grade_level=5,
        chunks=[
            Chunk(id="c1", title="Like denominators", narration_text="...",
                  directives=[WriteText(text="1/4 + 2/4 = 3/4", x=40, y=60, speed="word", delay_per_unit=350)]),
        ],
    )


class TestStartLesson(APITestCase):
    url = "/api/lessons/start/"

    @patch("lessons.views.assemble_lesson")
    def test_creates_lesson(self, assemble):
        assemble.return_value = AssemblyResult(lesson_id=7, script=make_script(), stats=AssemblyStats(chunks=1))

        response = self.client.post(self.url, {"topic": " Adding fractions ", "gradeLevel": 5}, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["lessonId"], 7)
        self.assertEqual(response.data["wsUrl"], "/ws/lessons/7/")
        self.assertFalse(response.data["reused"])
        self.assertEqual(response.data["stats"]["chunks"], 1)
        request = assemble.call_args[0][0]
        self.assertEqual(request.topic, "Adding fractions")
        self.assertEqual((request.chunk_count, request.practice_count), (8, 5))

    @patch("lessons.views.assemble_lesson")
    def test_reuses_existing_lesson(self, assemble):
        lesson = create_lesson("Adding fractions", 5, make_script())

        response = self.client.post(self.url, {"topic": "adding FRACTIONS", "gradeLevel": 5}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["lessonId"], lesson.id)
        self.assertTrue(response.data["reused"])
        assemble.assert_not_called()

    @patch("lessons.views.assemble_lesson")
    def test_regenerate_skips_reuse(self, assemble):
        create_lesson("Adding fractions", 5, make_script())
        assemble.return_value = AssemblyResult(lesson_id=99, script=make_script(), stats=AssemblyStats())

        response = self.client.post(
            self.url, {"topic": "Adding fractions", "gradeLevel": 5, "regenerate": True}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        assemble.assert_called_once()

    @patch("lessons.views.assemble_lesson")
    def test_schema_violation_is_bad_gateway(self, assemble):
        assemble.side_effect = SchemaViolation("text is required", path="chunks[0].directives[0]")

        response = self.client.post(self.url, {"topic": "Fractions", "gradeLevel": 4}, format="json")

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertIn("chunks[0].directives[0]", response.data["detail"])
        self.assertEqual(Lesson.objects.count(), 0)

    @patch("lessons.views.assemble_lesson")
    def test_generation_failure_is_bad_gateway(self, assemble):
        assemble.side_effect = GenerationFailed("OpenAI unavailable")

        response = self.client.post(self.url, {"topic": "Fractions", "gradeLevel": 4}, format="json")

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)

    def test_invalid_body(self):
        response = self.client.post(self.url, {"topic": "Fractions", "gradeLevel": 40}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class TestLessonScript(APITestCase):

    def test_returns_stored_script(self):
        lesson = create_lesson("Adding fractions", 5, make_script())

        response = self.client.get(f"/api/lessons/{lesson.id}/script/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["title"], "Adding fractions")
        self.assertEqual(response.data["chunks"][0]["directives"][0]["type"], "WRITE_TEXT")

    def test_missing_lesson(self):
        response = self.client.get("/api/lessons/404/script/")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_detail_includes_playback_url(self):
        lesson = create_lesson("Adding fractions", 5, make_script())

        response = self.client.get(f"/api/lessons/{lesson.id}/")

        self.assertEqual(response.data["wsUrl"], f"/ws/lessons/{lesson.id}/")
        self.assertEqual(response.data["grade_level"], 5)


class TestLoadLessonScript(APITestCase):

    def test_round_trips_through_storage(self):
        lesson = create_lesson("Adding fractions", 5, make_script())

        self.assertEqual(load_lesson_script(lesson.id), make_script())

    def test_missing_row(self):
        with self.assertRaises(LessonNotFound):
            load_lesson_script(12345)

    def test_empty_script(self):
        lesson = Lesson.objects.create(title="t", topic="t", grade_level=3)

        with self.assertRaises(LessonNotFound):
            load_lesson_script(lesson.id)


class TestHealthCheck(APITestCase):
    url = "/api/lesson-pipeline/health/"

    @patch("lesson_pipeline.services.audio.get_audio_service")
    @patch("lesson_pipeline.services.generation.get_generation_service")
    def test_ok_when_generation_available(self, get_generation, get_audio):
        get_generation.return_value = MagicMock(available=True)
        get_audio.return_value = MagicMock(available=False)

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["services"]["audio"]["available"])

    @patch("lesson_pipeline.services.audio.get_audio_service")
    @patch("lesson_pipeline.services.generation.get_generation_service")
    def test_unavailable_generation(self, get_generation, get_audio):
        get_generation.return_value = MagicMock(available=False)
        get_audio.return_value = MagicMock(available=True)

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 503)
        self.assertFalse(response.json()["ok"])
