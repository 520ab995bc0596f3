from rest_framework import serializers
from .models import Lesson


class StartLessonSerializer(serializers.Serializer):
    """Body of a lesson generation request."""
    topic = serializers.CharField(max_length=255)
    gradeLevel = serializers.IntegerField(min_value=1, max_value=12)
    chunkCount = serializers.IntegerField(min_value=1, max_value=80, required=False, default=8)
    practiceCount = serializers.IntegerField(min_value=0, max_value=60, required=False, default=5)
    regenerate = serializers.BooleanField(required=False, default=False)


class LessonSerializer(serializers.ModelSerializer):
    class Meta:
        model = Lesson
        fields = ['id', 'title', 'topic', 'grade_level', 'status', 'created_at', 'updated_at']
        read_only_fields = fields
