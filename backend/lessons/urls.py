from django.urls import path
from django.views.decorators.csrf import csrf_exempt
from .views import StartLessonView, LessonScriptView, LessonDetailView


urlpatterns = [
    path('start/', csrf_exempt(StartLessonView.as_view()), name='lesson-start'),
    path('<int:lesson_id>/', LessonDetailView.as_view(), name='lesson-detail'),
    path('<int:lesson_id>/script/', LessonScriptView.as_view(), name='lesson-script'),
]
