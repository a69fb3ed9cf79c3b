"""
Slot store: clinician availability windows.

Two regular slots of one clinician never overlap.  ``define_slot`` and
``update_slot`` check the half-open overlap predicate under a lock on the
clinician row, and on PostgreSQL the exclusion constraint from migration
``0002`` rejects whatever slips past that check; its violation is reported
as the same :class:`SlotConflict`.

Every status or interval change bumps ``Slot.version`` while the row is
locked, so ``update_slot`` callers can pass the version they last saw and
get :class:`SlotVersionConflict` instead of silently overwriting.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from django.db import IntegrityError, transaction

from scheduling.exceptions import (
    InvalidIntervalError,
    SlotConflict,
    SlotNotFound,
    SlotUnavailable,
    SlotVersionConflict,
)
from scheduling.models import Slot
from scheduling.services.audit import log_action
from scheduling.services.clinicians import get_clinician

logger = logging.getLogger(__name__)

EXCLUSION_VIOLATION = '23P01'


def validate_interval(start: datetime, end: datetime) -> None:
    if start >= end:
        raise InvalidIntervalError('Start time must be before end time')


def overlapping(qs, start: datetime, end: datetime):
    """Filter ``qs`` to slots intersecting ``[start, end)``."""
    return qs.filter(start_at__lt=end, end_at__gt=start)


def _is_exclusion_violation(exc: IntegrityError) -> bool:
    cause = exc.__cause__
    code = getattr(cause, 'sqlstate', None) or getattr(cause, 'pgcode', None)
    return code == EXCLUSION_VIOLATION


@contextmanager
def _overlap_as_conflict(clinician_id):
    try:
        yield
    except IntegrityError as exc:
        if _is_exclusion_violation(exc):
            logger.warning('slot overlap rejected by store: clinician=%s', clinician_id)
            raise SlotConflict(
                'This time slot overlaps with an existing slot for this clinician'
            ) from exc
        raise


def _ensure_no_overlap(clinician_id, start, end, *, exclude_pk=None) -> None:
    qs = overlapping(Slot.objects.filter(clinician_id=clinician_id), start, end)
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    clash = qs.order_by('start_at').first()
    if clash:
        logger.warning('slot overlap rejected: clinician=%s clash=%s', clinician_id, clash.pk)
        raise SlotConflict(
            f'This time slot overlaps with slot {clash.pk} '
            f'({clash.start_at.isoformat()} - {clash.end_at.isoformat()}) for this clinician'
        )


def get_slot(slot_id) -> Slot:
    try:
        return Slot.objects.select_related('clinician').get(pk=slot_id)
    except Slot.DoesNotExist:
        raise SlotNotFound(f'Slot with ID {slot_id} not found')


def lock_slot(slot_id) -> Slot:
    """Fetch a slot with a row lock held until the surrounding transaction ends."""
    try:
        return Slot.objects.select_for_update().get(pk=slot_id)
    except Slot.DoesNotExist:
        raise SlotNotFound(f'Slot with ID {slot_id} not found')


def lock_slots(slot_ids) -> dict[str, Slot]:
    """Lock several slots in primary key order; missing ids are simply absent."""
    ids = sorted({str(i) for i in slot_ids if i})
    qs = Slot.objects.select_for_update().filter(pk__in=ids).order_by('pk')
    return {str(s.pk): s for s in qs}


def set_status(slot: Slot, status: str, **fields) -> Slot:
    """Transition a locked slot and bump its version."""
    slot.status = status
    for name, value in fields.items():
        setattr(slot, name, value)
    slot.version += 1
    slot.save(update_fields=['status', 'version', 'updated_at', *fields])
    return slot


def define_slot(clinician_id, start: datetime, end: datetime, *, actor=None) -> Slot:
    """Publish a new Available slot for a clinician.

    Raises :class:`SlotConflict` without writing anything when the interval
    intersects any existing slot of the clinician.
    """
    validate_interval(start, end)
    with _overlap_as_conflict(clinician_id):
        with transaction.atomic():
            # serializes concurrent define_slot calls for one clinician
            clinician = get_clinician(clinician_id, lock=True)
            _ensure_no_overlap(clinician.pk, start, end)
            slot = Slot.objects.create(
                clinician=clinician,
                start_at=start,
                end_at=end,
                status=Slot.STATUS_AVAILABLE,
            )
            log_action(user=actor, action='slot_define', obj=slot,
                       detail={'start': start.isoformat(), 'end': end.isoformat()})
    logger.info('slot defined: id=%s clinician=%s %s~%s', slot.pk, clinician.pk, start, end)
    return slot


def update_slot(slot_id, *, start: Optional[datetime] = None, end: Optional[datetime] = None,
                expected_version: Optional[int] = None, actor=None) -> Slot:
    """Move an Available or Blocked slot to a new interval."""
    with transaction.atomic():
        slot = lock_slot(slot_id)
        if expected_version is not None and expected_version != slot.version:
            raise SlotVersionConflict(
                f'Slot has been modified by another user. Current version: {slot.version}'
            )
        if slot.status == Slot.STATUS_BOOKED:
            raise SlotUnavailable('A booked slot cannot be moved; reschedule the booking instead')
        new_start = start or slot.start_at
        new_end = end or slot.end_at
        validate_interval(new_start, new_end)
        get_clinician(slot.clinician_id, lock=True)
        _ensure_no_overlap(slot.clinician_id, new_start, new_end, exclude_pk=slot.pk)
        old = (slot.start_at, slot.end_at)
        slot.start_at, slot.end_at = new_start, new_end
        slot.version += 1
        with _overlap_as_conflict(slot.clinician_id):
            slot.save(update_fields=['start_at', 'end_at', 'version', 'updated_at'])
        log_action(user=actor, action='slot_update', obj=slot, detail={
            'from': [old[0].isoformat(), old[1].isoformat()],
            'to': [new_start.isoformat(), new_end.isoformat()],
        })
    logger.info('slot updated: id=%s version=%s %s~%s', slot.pk, slot.version, new_start, new_end)
    return slot


def block_slot(slot_id, reason: str = '', *, actor=None) -> Slot:
    with transaction.atomic():
        slot = lock_slot(slot_id)
        if slot.status == Slot.STATUS_BLOCKED:
            return slot
        if slot.status == Slot.STATUS_BOOKED:
            logger.warning('block rejected, slot booked: id=%s', slot.pk)
            raise SlotUnavailable('Cannot block slot with active bookings. Cancel or reschedule bookings first.')
        set_status(slot, Slot.STATUS_BLOCKED, block_reason=reason)
        log_action(user=actor, action='slot_block', obj=slot, detail={'reason': reason})
    logger.info('slot blocked: id=%s', slot.pk)
    return slot


def unblock_slot(slot_id, *, actor=None) -> Slot:
    with transaction.atomic():
        slot = lock_slot(slot_id)
        if slot.status == Slot.STATUS_AVAILABLE:
            return slot
        if slot.status == Slot.STATUS_BOOKED:
            raise SlotUnavailable('Slot is Booked, not Blocked')
        if slot.is_emergency:
            raise SlotUnavailable('A walk-in slot cannot be reopened for booking')
        set_status(slot, Slot.STATUS_AVAILABLE, block_reason='')
        log_action(user=actor, action='slot_unblock', obj=slot)
    logger.info('slot unblocked: id=%s', slot.pk)
    return slot


def get_clinician_schedule(clinician_id, start: datetime, end: datetime, status: Optional[str] = None) -> list[Slot]:
    """Every slot of the clinician intersecting ``[start, end)``, earliest first."""
    validate_interval(start, end)
    clinician = get_clinician(clinician_id)
    qs = overlapping(Slot.objects.filter(clinician=clinician), start, end)
    if status:
        qs = qs.filter(status=status)
    return list(qs.select_related('clinician').order_by('start_at'))
