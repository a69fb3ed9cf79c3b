"""
Management command to publish demo availability.

Creates ``--clinicians`` clinician accounts (if missing) and fills the next
``--days`` weekdays with 30-minute slots between 09:00 and 17:00 local
time.  Slots go through ``define_slot``, so re-running the command only
adds what is missing and never produces overlaps.
"""
from datetime import datetime, time, timedelta

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.utils import timezone

from scheduling.exceptions import SlotConflict
from scheduling.models import User
from scheduling.services.clinicians import invalidate_clinicians_cache
from scheduling.services.slots import define_slot

CLINICIAN_NAMES = [
    ('Grace', 'Hopper'), ('Alan', 'Turing'), ('Barbara', 'Liskov'),
    ('Edsger', 'Dijkstra'), ('Frances', 'Allen'),
]
DAY_START = time(9, 0)
DAY_END = time(17, 0)
SLOT_MINUTES = 30


class Command(BaseCommand):
    help = 'Populate clinicians and weekday availability slots'

    def add_arguments(self, parser):
        parser.add_argument('--days', type=int, default=5)
        parser.add_argument('--clinicians', type=int, default=3)

    def handle(self, *args, **options):
        clinicians = self.ensure_clinicians(options['clinicians'])
        created = skipped = 0
        for day in self.weekdays(options['days']):
            for clinician in clinicians:
                c, s = self.fill_day(clinician, day)
                created += c
                skipped += s
        self.stdout.write(self.style.SUCCESS(f'{created} slots created, {skipped} already present'))

    def ensure_clinicians(self, count):
        users = []
        for i, (first, last) in enumerate(CLINICIAN_NAMES[:count], start=1):
            u, _ = User.objects.get_or_create(
                username=f'clinician{i}',
                defaults={'role': User.ROLE_CLINICIAN, 'first_name': first, 'last_name': last,
                          'password': make_password(None)},
            )
            users.append(u)
        invalidate_clinicians_cache()
        return users

    def weekdays(self, count):
        day = timezone.localdate() + timedelta(days=1)
        while count > 0:
            if day.weekday() < 5:
                yield day
                count -= 1
            day += timedelta(days=1)

    def fill_day(self, clinician, day):
        tz = timezone.get_current_timezone()
        cursor = datetime.combine(day, DAY_START, tzinfo=tz)
        end_of_day = datetime.combine(day, DAY_END, tzinfo=tz)
        created = skipped = 0
        while cursor < end_of_day:
            nxt = cursor + timedelta(minutes=SLOT_MINUTES)
            try:
                define_slot(clinician.pk, cursor, nxt)
                created += 1
            except SlotConflict:
                skipped += 1
            cursor = nxt
        return created, skipped
