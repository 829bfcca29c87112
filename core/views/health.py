import logging
import time

from django.db import DatabaseError, connections
from django.http import JsonResponse
from django.utils import timezone

from core.models import BloodComponent, BloodGroup, User

logger = logging.getLogger(__name__)


def liveness(request):
    return JsonResponse({'status': 'ok', 'message': 'Blood Warriors API is running'})


def healthz(request):
    started = time.monotonic()
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
    except DatabaseError as e:
        logger.warning('Health check failed: %s', e)
        return JsonResponse({
            'ok': False, 'status': 'unhealthy', 'database': 'disconnected',
            'timestamp': timezone.now().isoformat(),
        }, status=503)
    return JsonResponse({
        'ok': bool(row and row[0] == 1),
        'status': 'healthy',
        'database': 'connected',
        'response_time_ms': round((time.monotonic() - started) * 1000, 2),
        'timestamp': timezone.now().isoformat(),
    })


def healthz_db(request):
    checks = {}
    for name, model in (('blood_groups', BloodGroup), ('blood_components', BloodComponent), ('users', User)):
        try:
            checks[name] = {'ok': True, 'count': model.objects.count()}
        except DatabaseError as e:
            logger.warning('Health check on %s failed: %s', name, e)
            checks[name] = {'ok': False, 'error': str(e)}
    healthy = all(c['ok'] for c in checks.values())
    return JsonResponse({
        'ok': healthy,
        'status': 'healthy' if healthy else 'degraded',
        'checks': checks,
        'timestamp': timezone.now().isoformat(),
    }, status=200 if healthy else 503)
