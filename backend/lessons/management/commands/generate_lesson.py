import json

from django.core.management.base import BaseCommand, CommandError

from lesson_pipeline.errors import PipelineError
from lesson_pipeline.pipelines.orchestrator import assemble_lesson
from lesson_pipeline.types import LessonRequest


class Command(BaseCommand):
    help = "Generate, assemble and persist a whiteboard lesson, then print its id and stats."

    def add_arguments(self, parser):
        parser.add_argument("topic", help="Lesson topic, e.g. 'Adding fractions'")
        parser.add_argument("--grade", type=int, required=True, help="Grade level (1-12)")
        parser.add_argument("--chunks", type=int, default=8, help="Number of teaching chunks")
        parser.add_argument("--practice", type=int, default=5, help="Number of practice items")

    def handle(self, *args, **options):
        request = LessonRequest(
            topic=options["topic"],
            grade_level=options["grade"],
            chunk_count=options["chunks"],
            practice_count=options["practice"],
        )
        try:
            result = assemble_lesson(request)
        except PipelineError as e:
            raise CommandError(f"Lesson assembly failed: {e}") from e

        self.stdout.write(self.style.SUCCESS(f"Lesson {result.lesson_id} ready at /ws/lessons/{result.lesson_id}/"))
        self.stdout.write(json.dumps(result.stats.to_dict(), indent=2))
