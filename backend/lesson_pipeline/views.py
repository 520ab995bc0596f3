"""
API views for lesson pipeline.
"""
import logging
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

logger = logging.getLogger(__name__)


@csrf_exempt
def health_check(request):
    """
    GET /api/lesson-pipeline/health/

    Check if the generation and audio services are available. Audio is
    best-effort, so only the generation service decides the status code.
    """
    from lesson_pipeline.services.generation import get_generation_service
    from lesson_pipeline.services.audio import get_audio_service

    health = {
        'ok': True,
        'services': {}
    }

    try:
        generation = get_generation_service()
        health['services']['generation'] = {'available': generation.available}
        if not generation.available:
            health['ok'] = False
    except Exception as e:
        health['services']['generation'] = {'available': False, 'error': str(e)}
        health['ok'] = False

    try:
        audio = get_audio_service()
        health['services']['audio'] = {'available': audio.available}
    except Exception as e:
        health['services']['audio'] = {'available': False, 'error': str(e)}

    status_code = 200 if health['ok'] else 503
    return JsonResponse(health, status=status_code)
