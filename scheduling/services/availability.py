from datetime import date, datetime, time, timedelta
from typing import Optional

from django.utils import timezone

from scheduling.models import Slot


def day_bounds(on_date: date) -> tuple[datetime, datetime]:
    """Half-open ``[midnight, next midnight)`` of a local calendar day."""
    tz = timezone.get_current_timezone()
    start = datetime.combine(on_date, time.min, tzinfo=tz)
    return start, datetime.combine(on_date + timedelta(days=1), time.min, tzinfo=tz)


def list_available(clinician_id, on_date: Optional[date] = None) -> list[Slot]:
    """Open slots of a clinician ordered by start time.

    Walk-in slots are never listed.  Read-only; with ``on_date`` only
    slots intersecting that local day are returned.
    """
    qs = Slot.objects.filter(clinician_id=clinician_id, status=Slot.STATUS_AVAILABLE, is_emergency=False)
    if on_date is not None:
        start, end = day_bounds(on_date)
        qs = qs.filter(start_at__lt=end, end_at__gt=start)
    return list(qs.select_related('clinician').order_by('start_at'))
