"""Liveness probe: database round trip plus cache round trip, no auth."""
from django.core.cache import cache
from django.db import DatabaseError, connections
from django.http import JsonResponse
from django_redis.exceptions import ConnectionInterrupted


def _unavailable(code, e):
    return JsonResponse({'ok': False, 'error': {'code': code, 'message': str(e)}}, status=503)


def healthz(request):
    checks = {}
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            checks['db'] = c.fetchone()[0] == 1
    except DatabaseError as e:
        return _unavailable('db_unavailable', e)
    try:
        cache.set('healthz', 1, 5)
        checks['cache'] = cache.get('healthz') == 1
    except ConnectionInterrupted as e:
        return _unavailable('cache_unavailable', e)
    return JsonResponse({'ok': all(checks.values()), **checks})
