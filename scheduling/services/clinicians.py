from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache

from scheduling.exceptions import ClinicianNotFound

User = get_user_model()

CLINICIANS_CACHE_KEY = 'scheduling:clinicians'


def get_clinician(clinician_id, *, lock: bool = False):
    qs = User.objects.filter(role=User.ROLE_CLINICIAN)
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=clinician_id)
    except User.DoesNotExist:
        raise ClinicianNotFound(f'Clinician with ID {clinician_id} not found')


def format_clinician(u) -> dict:
    return {'id': u.id, 'name': u.display_name, 'email': u.email}


def list_clinicians() -> list[dict]:
    """Active clinicians for booking pickers, cached for a few minutes."""
    cached = cache.get(CLINICIANS_CACHE_KEY)
    if cached is not None:
        return cached
    qs = (
        User.objects.filter(role=User.ROLE_CLINICIAN, is_active=True)
        .only('id', 'first_name', 'last_name', 'username', 'email')
        .order_by('last_name', 'first_name', 'id')
    )
    data = [format_clinician(u) for u in qs]
    cache.set(CLINICIANS_CACHE_KEY, data, settings.SCHEDULING_CLINICIAN_CACHE_SECONDS)
    return data


def invalidate_clinicians_cache() -> None:
    cache.delete(CLINICIANS_CACHE_KEY)
