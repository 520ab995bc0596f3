from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status, permissions
from django.shortcuts import get_object_or_404
import logging

from lesson_pipeline.errors import GenerationFailed, SchemaViolation
from lesson_pipeline.pipelines.orchestrator import assemble_lesson
from lesson_pipeline.types import LessonRequest

from .models import Lesson
from .serializers import LessonSerializer, StartLessonSerializer
from .services import find_existing_lesson

logger = logging.getLogger(__name__)


def playback_url(lesson_id: int) -> str:
    return f"/ws/lessons/{lesson_id}/"


class StartLessonView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        """
        Generate, assemble and persist a lesson script

        POST /api/lessons/start/
        Body: {
            "topic": "Adding fractions",
            "gradeLevel": 5,
            "chunkCount": 8,      # optional
            "practiceCount": 5,   # optional
            "regenerate": false   # optional, skip reuse of an existing lesson
        }

        Returns: {"lessonId": 12, "wsUrl": "/ws/lessons/12/", "reused": false, "stats": {...}}
        """
        body = StartLessonSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        data = body.validated_data

        if not data['regenerate']:
            existing = find_existing_lesson(data['topic'], data['gradeLevel'])
            if existing:
                logger.info(f"Reusing lesson {existing.id} for topic '{data['topic']}'")
                return Response({
                    "lessonId": existing.id,
                    "wsUrl": playback_url(existing.id),
                    "reused": True,
                })

        lesson_request = LessonRequest(
            topic=data['topic'].strip(),
            grade_level=data['gradeLevel'],
            chunk_count=data['chunkCount'],
            practice_count=data['practiceCount'],
        )

        try:
            result = assemble_lesson(lesson_request)
        except SchemaViolation as e:
            logger.error(f"Generated lesson rejected: {e}")
            return Response({
                "error": "Generated lesson failed validation",
                "detail": str(e),
            }, status=status.HTTP_502_BAD_GATEWAY)
        except GenerationFailed as e:
            logger.error(f"Lesson generation failed: {e}")
            return Response({
                "error": "Failed to generate lesson",
                "detail": str(e),
            }, status=status.HTTP_502_BAD_GATEWAY)

        return Response({
            "lessonId": result.lesson_id,
            "wsUrl": playback_url(result.lesson_id),
            "reused": False,
            "stats": result.stats.to_dict(),
        }, status=status.HTTP_201_CREATED)


class LessonScriptView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request, lesson_id: int):
        """Return the stored script for a lesson"""
        lesson = get_object_or_404(Lesson, pk=lesson_id)
        return Response(lesson.script)


class LessonDetailView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request, lesson_id: int):
        lesson = get_object_or_404(Lesson, pk=lesson_id)
        data = LessonSerializer(lesson).data
        data['wsUrl'] = playback_url(lesson.id)
        return Response(data)
