from django.contrib import admin
from .models import Lesson


@admin.register(Lesson)
class LessonAdmin(admin.ModelAdmin):
    list_display = ['id', 'title', 'topic', 'grade_level', 'status', 'created_at']
    list_filter = ['grade_level', 'status', 'created_at']
    search_fields = ['title', 'topic']
    readonly_fields = ['created_at', 'updated_at']
