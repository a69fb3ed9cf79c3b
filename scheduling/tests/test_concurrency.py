"""
Races against a real row-locking store.

SQLite has no ``SELECT ... FOR UPDATE``, so these only run when the test
database is PostgreSQL (set ``PG_NAME``/``PG_USER`` or ``DATABASE_URL``).
"""
import threading
from datetime import datetime, timezone as dt_timezone

import pytest
from django.db import connection, connections

from scheduling.exceptions import DuplicateWalkIn, SlotConflict, SlotUnavailable
from scheduling.models import Booking, Slot, User
from scheduling.services.bookings import create_booking
from scheduling.services.slots import define_slot
from scheduling.services.walkins import register_walk_in

pytestmark = [
    pytest.mark.django_db(transaction=True),
    pytest.mark.skipif(
        connection.vendor != 'postgresql',
        reason='needs row-level locks; set PG_NAME/PG_USER or DATABASE_URL to a PostgreSQL database',
    ),
]

WORKERS = 8


def race(fn, args_list, expected):
    """Run ``fn`` concurrently once per args tuple; return (successes, expected failures)."""
    barrier = threading.Barrier(len(args_list))
    ok, failed, errors = [], [], []

    def worker(args):
        try:
            barrier.wait()
            ok.append(fn(*args))
        except expected as e:
            failed.append(e)
        except Exception as e:  # noqa: BLE001
            errors.append(e)
        finally:
            connections.close_all()

    threads = [threading.Thread(target=worker, args=(a,)) for a in args_list]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert not errors, errors
    return ok, failed


def at(hour, minute=0):
    return datetime(2030, 1, 7, hour, minute, tzinfo=dt_timezone.utc)


def make_patients(n):
    return [
        User.objects.create_user(username=f'racer{i}', password='P@ssw0rd1', role=User.ROLE_PATIENT)
        for i in range(n)
    ]


def test_concurrent_bookings_of_one_slot_yield_one_winner(clinician):
    slot = define_slot(clinician.pk, at(9), at(9, 30))
    patients = make_patients(WORKERS)

    ok, failed = race(create_booking, [(p.pk, slot.pk) for p in patients], SlotUnavailable)

    assert len(ok) == 1
    assert len(failed) == WORKERS - 1
    slot.refresh_from_db()
    assert slot.status == Slot.STATUS_BOOKED
    assert Booking.objects.filter(slot=slot, status__in=Booking.LIVE_STATUSES).count() == 1


def test_concurrent_overlapping_definitions_yield_one_slot(clinician):
    args = [(clinician.pk, at(9, i), at(9, 30 + i)) for i in range(WORKERS)]

    ok, failed = race(define_slot, args, SlotConflict)

    assert len(ok) == 1
    assert Slot.objects.filter(clinician=clinician).count() == 1


def test_concurrent_walk_ins_for_one_patient_yield_one_admission(patient, clinician):
    now = at(8)
    ok, failed = race(
        lambda: register_walk_in(patient.pk, clinician.pk, 'collapse', now=now),
        [()] * WORKERS,
        DuplicateWalkIn,
    )

    assert len(ok) == 1
    assert Booking.objects.filter(patient=patient, is_walk_in=True).count() == 1
    assert Slot.objects.filter(is_emergency=True).count() == 1
