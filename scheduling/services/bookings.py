"""
Booking engine: the state machine tying bookings to slots.

Every mutation runs in one ``transaction.atomic()`` block and holds
``SELECT ... FOR UPDATE`` locks on the slot rows it transitions, so two
requests for the same slot are strictly ordered: the second one re-reads
the slot as Booked and fails with :class:`SlotUnavailable`.  A slot and
the booking pointing at it are always written in the same transaction.

Booking states::

    Pending ──> Confirmed ──┬──> Cancelled   (releases the slot)
       │                    ├──> Completed   (slot stays Booked)
       └────────────────────┴──> No-Show     (slot stays Booked)

A cancelled walk-in does not reopen its emergency slot: the slot goes to
Blocked, since it was admitted on top of regular availability.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction

from scheduling.exceptions import BookingNotActive, BookingNotFound, ConflictError, SlotNotFound, SlotUnavailable
from scheduling.models import Booking, Slot
from scheduling.services.audit import log_action
from scheduling.services.patients import get_patient
from scheduling.services.slots import lock_slot, lock_slots, set_status

logger = logging.getLogger(__name__)

WALK_IN_RELEASED = 'walk-in cancelled'

_TRANSITIONS = {
    Booking.STATUS_PENDING: {
        Booking.STATUS_CONFIRMED,
        Booking.STATUS_CANCELLED,
        Booking.STATUS_COMPLETED,
        Booking.STATUS_NO_SHOW,
    },
    Booking.STATUS_CONFIRMED: {
        Booking.STATUS_CANCELLED,
        Booking.STATUS_COMPLETED,
        Booking.STATUS_NO_SHOW,
    },
}


def can_transition(current: str, new: str) -> bool:
    """Return True if a booking may move from ``current`` to ``new``."""
    return new in _TRANSITIONS.get(current, set())


def _booking_qs():
    return Booking.objects.select_related('patient', 'slot', 'slot__clinician')


def _lock_booking(booking_id) -> Booking:
    try:
        return Booking.objects.select_for_update().get(pk=booking_id)
    except Booking.DoesNotExist:
        raise BookingNotFound(f'Booking with ID {booking_id} not found')


def _claim_slot(slot: Slot) -> None:
    if slot.is_emergency or slot.status != Slot.STATUS_AVAILABLE:
        logger.warning('booking rejected: slot=%s status=%s', slot.pk, slot.status)
        raise SlotUnavailable(f'Slot {slot.pk} is {slot.status} and cannot be booked')
    set_status(slot, Slot.STATUS_BOOKED)


def _release_slot(slot: Slot) -> None:
    # a slot already claimed again by another live booking stays Booked
    if slot.status != Slot.STATUS_BOOKED:
        return
    if slot.bookings.filter(status__in=Booking.LIVE_STATUSES).exists():
        return
    if slot.is_emergency:
        # walk-in slots may overlap regular ones and are never reopened
        set_status(slot, Slot.STATUS_BLOCKED, block_reason=WALK_IN_RELEASED)
        return
    set_status(slot, Slot.STATUS_AVAILABLE)


def _cancel(booking: Booking, slot: Optional[Slot]) -> None:
    booking.status = Booking.STATUS_CANCELLED
    booking.save(update_fields=['status', 'updated_at'])
    if slot is not None:
        _release_slot(slot)


def create_booking(patient_id, slot_id, reason_for_visit: str = '', *, actor=None) -> Booking:
    """Claim an Available slot for a patient.

    On success the slot is Booked and exactly one Confirmed booking points
    at it; on any failure the slot is untouched.
    """
    with transaction.atomic():
        patient = get_patient(patient_id)
        slot = lock_slot(slot_id)
        _claim_slot(slot)
        booking = Booking.objects.create(
            patient=patient,
            slot=slot,
            status=Booking.STATUS_CONFIRMED,
            reason_for_visit=reason_for_visit or '',
            is_walk_in=False,
        )
        log_action(user=actor, action='booking_create', obj=booking, detail={'slot': str(slot.pk)})
    logger.info('booking created: id=%s patient=%s slot=%s', booking.pk, patient.pk, slot.pk)
    return _booking_qs().get(pk=booking.pk)


def cancel_booking(booking_id, *, actor=None) -> Booking:
    """Cancel a live booking and reopen its slot.

    Cancelling an already Cancelled booking returns it unchanged without
    touching the slot.  Completed and No-Show bookings cannot be cancelled.
    """
    with transaction.atomic():
        booking = _lock_booking(booking_id)
        if booking.status == Booking.STATUS_CANCELLED:
            return _booking_qs().get(pk=booking.pk)
        if not booking.is_live:
            raise BookingNotActive(f'Cannot cancel a {booking.status.lower()} booking')
        slot = lock_slot(booking.slot_id) if booking.slot_id else None
        _cancel(booking, slot)
        log_action(user=actor, action='booking_cancel', obj=booking,
                   detail={'slot': str(booking.slot_id) if booking.slot_id else None})
    logger.info('booking cancelled: id=%s slot=%s', booking.pk, booking.slot_id)
    return _booking_qs().get(pk=booking.pk)


def reschedule_booking(booking_id, new_slot_id, *, actor=None) -> Booking:
    """Move a live booking to another slot, as one unit of work.

    The original booking is cancelled and its slot reopened, then the new
    slot is claimed and a new Confirmed booking is created for the same
    patient and reason.  Returns the new booking.
    """
    with transaction.atomic():
        original = _lock_booking(booking_id)
        if not original.is_live:
            raise BookingNotActive(f'Cannot reschedule a {original.status.lower()} booking')
        locked = lock_slots([original.slot_id, new_slot_id])
        old_slot = locked.get(str(original.slot_id)) if original.slot_id else None

        _cancel(original, old_slot)

        new_slot = locked.get(str(new_slot_id))
        if new_slot is None:
            raise SlotNotFound(f'New slot with ID {new_slot_id} not found')
        _claim_slot(new_slot)
        booking = Booking.objects.create(
            patient_id=original.patient_id,
            slot=new_slot,
            status=Booking.STATUS_CONFIRMED,
            reason_for_visit=original.reason_for_visit,
            is_walk_in=False,
            rescheduled_from=original,
        )
        log_action(user=actor, action='booking_reschedule', obj=booking, detail={
            'from_booking': str(original.pk),
            'from_slot': str(original.slot_id) if original.slot_id else None,
            'to_slot': str(new_slot.pk),
        })
    logger.info('booking rescheduled: %s -> %s slot %s -> %s',
                original.pk, booking.pk, original.slot_id, new_slot.pk)
    return _booking_qs().get(pk=booking.pk)


def update_booking(booking_id, *, reason_for_visit: Optional[str] = None,
                   status: Optional[str] = None, actor=None) -> Booking:
    """Edit the reason for visit and/or advance the status.

    Moving to Cancelled goes through the same path as :func:`cancel_booking`;
    Completed and No-Show leave the slot Booked.
    """
    with transaction.atomic():
        booking = _lock_booking(booking_id)
        if not booking.is_live:
            raise BookingNotActive(f'Cannot update {booking.status.lower()} booking')
        old_status = booking.status
        if status and status != booking.status:
            if not can_transition(booking.status, status):
                raise ConflictError(f'Cannot move booking from {booking.status} to {status}',
                                    code='invalid_transition')
            if status == Booking.STATUS_CANCELLED:
                slot = lock_slot(booking.slot_id) if booking.slot_id else None
                _cancel(booking, slot)
            else:
                booking.status = status
        if reason_for_visit is not None:
            booking.reason_for_visit = reason_for_visit
        booking.save(update_fields=['status', 'reason_for_visit', 'updated_at'])
        log_action(user=actor, action='booking_update', obj=booking,
                   detail={'from': old_status, 'to': booking.status})
    logger.info('booking updated: id=%s %s -> %s', booking.pk, old_status, booking.status)
    return _booking_qs().get(pk=booking.pk)


def get_booking(booking_id) -> Booking:
    try:
        return _booking_qs().get(pk=booking_id)
    except Booking.DoesNotExist:
        raise BookingNotFound(f'Booking with ID {booking_id} not found')


def get_patient_appointments(patient_id) -> list[Booking]:
    patient = get_patient(patient_id)
    return list(_booking_qs().filter(patient=patient).order_by('-slot__start_at', '-created_at'))
