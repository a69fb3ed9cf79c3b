"""
Walk-in admission.

A walk-in patient is admitted on the spot: instead of claiming an existing
Available slot we synthesize an emergency slot starting now, already
Booked, and attach a Confirmed walk-in booking to it in the same
transaction.  Emergency slots skip the overlap check (the clinician fits
them in between regular appointments), and the PostgreSQL exclusion
constraint ignores them.

A patient may hold only one live walk-in at a time.  With
``SCHEDULING_WALKIN_GUARD_SCOPE = 'day'`` (the default) only walk-ins whose
slot starts on the same local day count; ``'global'`` considers every live
walk-in regardless of date.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from scheduling.exceptions import DuplicateWalkIn
from scheduling.models import Booking, Slot
from scheduling.services.audit import log_action
from scheduling.services.availability import day_bounds
from scheduling.services.clinicians import get_clinician
from scheduling.services.patients import get_patient

logger = logging.getLogger(__name__)


def active_walk_ins(patient, now: datetime):
    qs = Booking.objects.filter(patient=patient, is_walk_in=True, status__in=Booking.LIVE_STATUSES)
    if settings.SCHEDULING_WALKIN_GUARD_SCOPE == 'day':
        start, end = day_bounds(timezone.localdate(now))
        qs = qs.filter(slot__start_at__gte=start, slot__start_at__lt=end)
    return qs


def register_walk_in(patient_id, clinician_id, reason_for_visit: str, *, actor=None,
                     now: Optional[datetime] = None) -> Booking:
    """Admit a patient immediately with a synthesized emergency slot."""
    now = now or timezone.now()
    with transaction.atomic():
        # lock the patient so two desks cannot admit the same person twice
        patient = get_patient(patient_id, lock=True)
        clinician = get_clinician(clinician_id)
        if active_walk_ins(patient, now).exists():
            logger.warning('duplicate walk-in rejected: patient=%s', patient.pk)
            raise DuplicateWalkIn(
                f'Patient {patient.display_name} already has an active walk-in appointment'
            )
        slot = Slot.objects.create(
            clinician=clinician,
            start_at=now,
            end_at=now + timedelta(minutes=settings.SCHEDULING_WALKIN_DURATION_MINUTES),
            status=Slot.STATUS_BOOKED,
            is_emergency=True,
        )
        booking = Booking.objects.create(
            patient=patient,
            slot=slot,
            status=Booking.STATUS_CONFIRMED,
            reason_for_visit=reason_for_visit,
            is_walk_in=True,
        )
        log_action(user=actor, action='walk_in_register', obj=booking,
                   detail={'slot': str(slot.pk), 'clinician': clinician.pk})
    logger.info('walk-in registered: booking=%s patient=%s clinician=%s', booking.pk, patient.pk, clinician.pk)
    return Booking.objects.select_related('patient', 'slot', 'slot__clinician').get(pk=booking.pk)


def get_walk_ins_for_date(on_date: Optional[date] = None) -> list[Booking]:
    """Non-cancelled walk-ins whose slot falls on the given local day (default today)."""
    start, end = day_bounds(on_date or timezone.localdate())
    qs = (
        Booking.objects.select_related('patient', 'slot', 'slot__clinician')
        .filter(is_walk_in=True, slot__start_at__lt=end, slot__end_at__gt=start)
        .exclude(status=Booking.STATUS_CANCELLED)
        .order_by('slot__start_at')
    )
    return list(qs)
