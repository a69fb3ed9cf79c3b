from datetime import datetime, timezone as dt_timezone

import pytest

from scheduling.exceptions import (
    BookingNotActive,
    BookingNotFound,
    ConflictError,
    PatientNotFound,
    SlotNotFound,
    SlotUnavailable,
)
from scheduling.models import AuditEvent, Booking, Slot
from scheduling.services import bookings as booking_service
from scheduling.services.availability import list_available
from scheduling.services.slots import block_slot, define_slot

pytestmark = pytest.mark.django_db


def at(day, hour, minute=0):
    return datetime(2030, 1, day, hour, minute, tzinfo=dt_timezone.utc)


@pytest.fixture
def slot(clinician):
    return define_slot(clinician.pk, at(7, 9), at(7, 9, 30))


@pytest.fixture
def second_slot(clinician):
    return define_slot(clinician.pk, at(7, 10), at(7, 10, 30))


def test_create_booking_claims_slot(patient, slot, clinician):
    booking = booking_service.create_booking(patient.pk, slot.pk, 'annual check-up', actor=patient)
    assert booking.status == Booking.STATUS_CONFIRMED
    assert not booking.is_walk_in
    assert booking.reason_for_visit == 'annual check-up'
    slot.refresh_from_db()
    assert slot.status == Slot.STATUS_BOOKED
    assert slot.version == 2
    assert list_available(clinician.pk) == []
    event = AuditEvent.objects.get(action='booking_create')
    assert event.user == patient
    assert event.object_id == str(booking.pk)


def test_second_booking_of_same_slot_is_rejected(patient, other_patient, slot):
    booking_service.create_booking(patient.pk, slot.pk)
    with pytest.raises(SlotUnavailable):
        booking_service.create_booking(other_patient.pk, slot.pk)
    assert Booking.objects.filter(slot=slot).count() == 1


def test_blocked_slot_cannot_be_booked(patient, slot):
    block_slot(slot.pk, 'maintenance')
    with pytest.raises(SlotUnavailable):
        booking_service.create_booking(patient.pk, slot.pk)
    assert not Booking.objects.exists()


def test_create_booking_unknown_patient_or_slot(patient, clinician, slot):
    with pytest.raises(PatientNotFound):
        booking_service.create_booking(clinician.pk, slot.pk)
    with pytest.raises(SlotNotFound):
        booking_service.create_booking(patient.pk, '00000000-0000-0000-0000-000000000000')
    slot.refresh_from_db()
    assert slot.status == Slot.STATUS_AVAILABLE
    assert not Booking.objects.exists()


def test_cancel_reopens_slot(patient, slot, clinician):
    booking = booking_service.create_booking(patient.pk, slot.pk)
    cancelled = booking_service.cancel_booking(booking.pk)
    assert cancelled.status == Booking.STATUS_CANCELLED
    slot.refresh_from_db()
    assert slot.status == Slot.STATUS_AVAILABLE
    assert [s.pk for s in list_available(clinician.pk)] == [slot.pk]


def test_cancel_then_rebook(patient, other_patient, slot):
    first = booking_service.create_booking(patient.pk, slot.pk)
    booking_service.cancel_booking(first.pk)
    second = booking_service.create_booking(other_patient.pk, slot.pk)
    assert second.status == Booking.STATUS_CONFIRMED
    assert Booking.objects.filter(slot=slot, status__in=Booking.LIVE_STATUSES).count() == 1


def test_cancel_is_idempotent(patient, slot):
    booking = booking_service.create_booking(patient.pk, slot.pk)
    booking_service.cancel_booking(booking.pk)
    slot.refresh_from_db()
    version = slot.version
    again = booking_service.cancel_booking(booking.pk)
    assert again.status == Booking.STATUS_CANCELLED
    slot.refresh_from_db()
    assert slot.version == version
    assert AuditEvent.objects.filter(action='booking_cancel').count() == 1


def test_cancel_terminal_booking_is_refused(patient, slot):
    booking = booking_service.create_booking(patient.pk, slot.pk)
    booking_service.update_booking(booking.pk, status=Booking.STATUS_COMPLETED)
    with pytest.raises(BookingNotActive):
        booking_service.cancel_booking(booking.pk)
    slot.refresh_from_db()
    assert slot.status == Slot.STATUS_BOOKED


def test_cancel_unknown_booking():
    with pytest.raises(BookingNotFound):
        booking_service.cancel_booking('00000000-0000-0000-0000-000000000000')


def test_reschedule_moves_booking(patient, slot, second_slot):
    original = booking_service.create_booking(patient.pk, slot.pk, 'follow-up')
    moved = booking_service.reschedule_booking(original.pk, second_slot.pk)

    assert moved.pk != original.pk
    assert moved.slot_id == second_slot.pk
    assert moved.status == Booking.STATUS_CONFIRMED
    assert moved.reason_for_visit == 'follow-up'
    assert moved.rescheduled_from_id == original.pk
    original.refresh_from_db()
    assert original.status == Booking.STATUS_CANCELLED
    slot.refresh_from_db()
    second_slot.refresh_from_db()
    assert slot.status == Slot.STATUS_AVAILABLE
    assert second_slot.status == Slot.STATUS_BOOKED


def test_reschedule_to_taken_slot_rolls_back(patient, other_patient, slot, second_slot):
    original = booking_service.create_booking(patient.pk, slot.pk)
    booking_service.create_booking(other_patient.pk, second_slot.pk)
    with pytest.raises(SlotUnavailable):
        booking_service.reschedule_booking(original.pk, second_slot.pk)
    original.refresh_from_db()
    slot.refresh_from_db()
    assert original.status == Booking.STATUS_CONFIRMED
    assert slot.status == Slot.STATUS_BOOKED
    assert Booking.objects.count() == 2


def test_reschedule_failure_after_release_rolls_back(monkeypatch, patient, slot, second_slot):
    original = booking_service.create_booking(patient.pk, slot.pk)

    def boom(s):
        raise RuntimeError('store went away')

    monkeypatch.setattr(booking_service, '_claim_slot', boom)
    with pytest.raises(RuntimeError):
        booking_service.reschedule_booking(original.pk, second_slot.pk)

    original.refresh_from_db()
    slot.refresh_from_db()
    second_slot.refresh_from_db()
    assert original.status == Booking.STATUS_CONFIRMED
    assert slot.status == Slot.STATUS_BOOKED
    assert second_slot.status == Slot.STATUS_AVAILABLE
    assert Booking.objects.count() == 1


def test_reschedule_to_missing_slot(patient, slot):
    original = booking_service.create_booking(patient.pk, slot.pk)
    with pytest.raises(SlotNotFound):
        booking_service.reschedule_booking(original.pk, '00000000-0000-0000-0000-000000000000')
    original.refresh_from_db()
    assert original.status == Booking.STATUS_CONFIRMED


def test_reschedule_to_same_slot(patient, slot):
    original = booking_service.create_booking(patient.pk, slot.pk)
    moved = booking_service.reschedule_booking(original.pk, slot.pk)
    assert moved.slot_id == slot.pk
    slot.refresh_from_db()
    assert slot.status == Slot.STATUS_BOOKED


def test_reschedule_cancelled_booking_is_refused(patient, slot, second_slot):
    original = booking_service.create_booking(patient.pk, slot.pk)
    booking_service.cancel_booking(original.pk)
    with pytest.raises(BookingNotActive):
        booking_service.reschedule_booking(original.pk, second_slot.pk)


def test_update_booking_transitions(patient, slot):
    booking = booking_service.create_booking(patient.pk, slot.pk)
    updated = booking_service.update_booking(booking.pk, reason_for_visit='new symptoms')
    assert updated.reason_for_visit == 'new symptoms'
    assert updated.status == Booking.STATUS_CONFIRMED

    with pytest.raises(ConflictError):
        booking_service.update_booking(booking.pk, status=Booking.STATUS_PENDING)

    done = booking_service.update_booking(booking.pk, status=Booking.STATUS_NO_SHOW)
    assert done.status == Booking.STATUS_NO_SHOW
    slot.refresh_from_db()
    assert slot.status == Slot.STATUS_BOOKED


def test_update_booking_to_cancelled_releases_slot(patient, slot):
    booking = booking_service.create_booking(patient.pk, slot.pk)
    booking_service.update_booking(booking.pk, status=Booking.STATUS_CANCELLED)
    slot.refresh_from_db()
    assert slot.status == Slot.STATUS_AVAILABLE


def test_can_transition():
    assert booking_service.can_transition(Booking.STATUS_PENDING, Booking.STATUS_CONFIRMED)
    assert booking_service.can_transition(Booking.STATUS_CONFIRMED, Booking.STATUS_COMPLETED)
    assert not booking_service.can_transition(Booking.STATUS_CANCELLED, Booking.STATUS_CONFIRMED)
    assert not booking_service.can_transition(Booking.STATUS_COMPLETED, Booking.STATUS_CANCELLED)


def test_patient_appointments_newest_first(patient, other_patient, slot, second_slot):
    first = booking_service.create_booking(patient.pk, slot.pk)
    second = booking_service.create_booking(patient.pk, second_slot.pk)
    assert [b.pk for b in booking_service.get_patient_appointments(patient.pk)] == [second.pk, first.pk]
    assert booking_service.get_patient_appointments(other_patient.pk) == []


def test_patient_appointments_unknown_patient(clinician):
    with pytest.raises(PatientNotFound):
        booking_service.get_patient_appointments(clinician.pk)


def test_get_booking(patient, slot):
    booking = booking_service.create_booking(patient.pk, slot.pk)
    fetched = booking_service.get_booking(booking.pk)
    assert fetched.slot.clinician_id == slot.clinician_id
    with pytest.raises(BookingNotFound):
        booking_service.get_booking('00000000-0000-0000-0000-000000000000')
