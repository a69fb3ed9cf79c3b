import pytest
from django_redis.exceptions import ConnectionInterrupted

from scheduling.views import health

pytestmark = pytest.mark.django_db


class DownCache:
    def set(self, *args, **kwargs):
        raise ConnectionInterrupted(connection=None)

    def get(self, *args, **kwargs):
        raise ConnectionInterrupted(connection=None)


def test_healthz_reports_cache_outage_as_503(client, monkeypatch):
    monkeypatch.setattr(health, 'cache', DownCache())
    r = client.get('/healthz')
    assert r.status_code == 503
    body = r.json()
    assert body['ok'] is False
    assert body['error']['code'] == 'cache_unavailable'


def test_healthz_ok(client):
    r = client.get('/healthz')
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True, 'cache': True}


def test_admin_cannot_add_bookings_or_slots(admin_client):
    assert admin_client.get('/admin/scheduling/booking/add/').status_code == 403
    assert admin_client.get('/admin/scheduling/slot/add/').status_code == 403
