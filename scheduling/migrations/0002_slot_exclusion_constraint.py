"""
Range-exclusion constraint for clinician slots (PostgreSQL only).

Two regular slots of one clinician may never overlap.  The service layer
checks this before inserting, but only the store can close the window
between that check and the insert, so on PostgreSQL we add an exclusion
constraint over ``tstzrange(start_at, end_at, '[)')``.  Walk-in slots
(``is_emergency``) are left out.  Other backends rely on the service-level
check, serialized by a lock on the clinician row.
"""
from django.db import migrations

CONSTRAINT_NAME = 'slot_no_overlap_per_clinician'

EXTENSION_SQL = "CREATE EXTENSION IF NOT EXISTS btree_gist"

ADD_SQL = f"""
ALTER TABLE scheduling_slot
    ADD CONSTRAINT {CONSTRAINT_NAME}
    EXCLUDE USING gist (
        clinician_id WITH =,
        tstzrange(start_at, end_at, '[)') WITH &&
    ) WHERE (NOT is_emergency)
"""

DROP_SQL = f"ALTER TABLE scheduling_slot DROP CONSTRAINT IF EXISTS {CONSTRAINT_NAME}"


def add_exclusion_constraint(apps, schema_editor):
    if schema_editor.connection.vendor != 'postgresql':
        return
    schema_editor.execute(EXTENSION_SQL)
    schema_editor.execute(ADD_SQL)


def drop_exclusion_constraint(apps, schema_editor):
    if schema_editor.connection.vendor != 'postgresql':
        return
    schema_editor.execute(DROP_SQL)


class Migration(migrations.Migration):

    dependencies = [
        ('scheduling', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(add_exclusion_constraint, drop_exclusion_constraint),
    ]
