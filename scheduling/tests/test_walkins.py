from datetime import date, datetime, timezone as dt_timezone

import pytest

from scheduling.exceptions import ClinicianNotFound, DuplicateWalkIn, PatientNotFound, SlotUnavailable
from scheduling.models import Booking, Slot
from scheduling.services.availability import list_available
from scheduling.services.bookings import cancel_booking, create_booking, reschedule_booking
from scheduling.services.slots import define_slot, unblock_slot
from scheduling.services.walkins import get_walk_ins_for_date, register_walk_in

pytestmark = pytest.mark.django_db


def at(day, hour, minute=0):
    return datetime(2030, 1, day, hour, minute, tzinfo=dt_timezone.utc)


def test_walk_in_creates_booked_emergency_slot(patient, clinician, staff, settings):
    settings.SCHEDULING_WALKIN_DURATION_MINUTES = 45
    booking = register_walk_in(patient.pk, clinician.pk, 'chest pain', actor=staff, now=at(7, 13))
    assert booking.is_walk_in
    assert booking.status == Booking.STATUS_CONFIRMED
    assert booking.reason_for_visit == 'chest pain'
    slot = booking.slot
    assert slot.is_emergency
    assert slot.status == Slot.STATUS_BOOKED
    assert slot.clinician_id == clinician.pk
    assert (slot.start_at, slot.end_at) == (at(7, 13), at(7, 13, 45))


def test_walk_in_may_overlap_regular_availability(patient, clinician):
    regular = define_slot(clinician.pk, at(7, 13), at(7, 13, 30))
    booking = register_walk_in(patient.pk, clinician.pk, 'fall injury', now=at(7, 13, 10))
    assert booking.slot.is_emergency
    regular.refresh_from_db()
    assert regular.status == Slot.STATUS_AVAILABLE
    assert [s.pk for s in list_available(clinician.pk)] == [regular.pk]


def test_duplicate_walk_in_same_day_is_rejected(patient, clinician, other_clinician):
    register_walk_in(patient.pk, clinician.pk, 'fever', now=at(7, 8))
    with pytest.raises(DuplicateWalkIn):
        register_walk_in(patient.pk, other_clinician.pk, 'still fever', now=at(7, 15))
    assert Booking.objects.count() == 1
    assert Slot.objects.count() == 1


def test_walk_in_allowed_after_cancellation(patient, clinician):
    first = register_walk_in(patient.pk, clinician.pk, 'fever', now=at(7, 8))
    cancel_booking(first.pk)
    second = register_walk_in(patient.pk, clinician.pk, 'fever again', now=at(7, 9))
    assert second.pk != first.pk


def test_walk_in_guard_is_per_day_by_default(patient, clinician):
    register_walk_in(patient.pk, clinician.pk, 'cough', now=at(7, 8))
    register_walk_in(patient.pk, clinician.pk, 'cough', now=at(8, 8))
    assert Booking.objects.filter(is_walk_in=True).count() == 2


def test_walk_in_guard_global_scope(patient, clinician, settings):
    settings.SCHEDULING_WALKIN_GUARD_SCOPE = 'global'
    register_walk_in(patient.pk, clinician.pk, 'cough', now=at(7, 8))
    with pytest.raises(DuplicateWalkIn):
        register_walk_in(patient.pk, clinician.pk, 'cough', now=at(8, 8))


def test_walk_in_of_other_patient_is_independent(patient, other_patient, clinician):
    register_walk_in(patient.pk, clinician.pk, 'burn', now=at(7, 8))
    register_walk_in(other_patient.pk, clinician.pk, 'burn', now=at(7, 8))
    assert Booking.objects.filter(is_walk_in=True).count() == 2


def test_walk_in_unknown_patient_or_clinician(patient, clinician):
    with pytest.raises(PatientNotFound):
        register_walk_in(999999, clinician.pk, 'x', now=at(7, 8))
    with pytest.raises(ClinicianNotFound):
        register_walk_in(patient.pk, patient.pk, 'x', now=at(7, 8))
    assert not Slot.objects.exists()


def test_cancelled_walk_in_slot_cannot_double_book_clinician(patient, other_patient, clinician):
    regular = define_slot(clinician.pk, at(7, 13), at(7, 13, 30))
    create_booking(other_patient.pk, regular.pk)
    walk_in = register_walk_in(patient.pk, clinician.pk, 'sprain', now=at(7, 13))
    cancel_booking(walk_in.pk)

    slot = Slot.objects.get(pk=walk_in.slot_id)
    assert slot.status == Slot.STATUS_BLOCKED
    assert list_available(clinician.pk) == []
    with pytest.raises(SlotUnavailable):
        create_booking(patient.pk, slot.pk)
    with pytest.raises(SlotUnavailable):
        unblock_slot(slot.pk)

    live = Booking.objects.filter(slot__clinician=clinician, status__in=Booking.LIVE_STATUSES)
    assert live.count() == 1


def test_rescheduling_walk_in_retires_its_slot(patient, clinician):
    walk_in = register_walk_in(patient.pk, clinician.pk, 'sprain', now=at(7, 8))
    later = define_slot(clinician.pk, at(7, 15), at(7, 15, 30))
    moved = reschedule_booking(walk_in.pk, later.pk)
    assert moved.slot_id == later.pk
    assert Slot.objects.get(pk=walk_in.slot_id).status == Slot.STATUS_BLOCKED


def test_walk_ins_for_date(patient, other_patient, clinician):
    a = register_walk_in(patient.pk, clinician.pk, 'a', now=at(7, 11))
    b = register_walk_in(other_patient.pk, clinician.pk, 'b', now=at(7, 9))
    register_walk_in(patient.pk, clinician.pk, 'c', now=at(8, 9))
    slot = define_slot(clinician.pk, at(7, 14), at(7, 14, 30))
    create_booking(patient.pk, slot.pk)

    assert [w.pk for w in get_walk_ins_for_date(date(2030, 1, 7))] == [b.pk, a.pk]

    cancel_booking(b.pk)
    assert [w.pk for w in get_walk_ins_for_date(date(2030, 1, 7))] == [a.pk]
    assert get_walk_ins_for_date(date(2030, 1, 10)) == []
