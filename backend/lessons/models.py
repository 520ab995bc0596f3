from django.db import models


class Lesson(models.Model):
    """A generated whiteboard lesson and its persisted script."""
    STATUS_LIVE = 'live'
    STATUS_CHOICES = ((STATUS_LIVE, 'live'),)

    title = models.CharField(max_length=255)
    topic = models.CharField(max_length=255)
    grade_level = models.PositiveSmallIntegerField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_LIVE)
    script = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"Lesson {self.id}: {self.title} (grade {self.grade_level})"
