from django.urls import path
from . import views

urlpatterns = [
    path('health/', views.health_check, name='lesson_pipeline_health'),
]
