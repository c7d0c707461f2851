"""Database-level guard against overlapping active reservations.

PostgreSQL gets a btree_gist exclusion constraint over
(resource_id, tstzrange(slot_start, slot_end, '[)')). SQLite has no range
types, so equivalent triggers abort with the same constraint name.
"""

from django.db import migrations

CONSTRAINT = "reservations_no_overlap"
TABLE = "reservations_reservation"

POSTGRES_FORWARD = [
    "CREATE EXTENSION IF NOT EXISTS btree_gist",
    f"""
    ALTER TABLE {TABLE}
    ADD CONSTRAINT {CONSTRAINT}
    EXCLUDE USING gist (
        resource_id WITH =,
        tstzrange(slot_start, slot_end, '[)') WITH &&
    ) WHERE (status = 'confirmed')
    """,
]

POSTGRES_BACKWARD = [
    f"ALTER TABLE {TABLE} DROP CONSTRAINT IF EXISTS {CONSTRAINT}",
]

_SQLITE_OVERLAP = f"""
    NEW.status = 'confirmed' AND EXISTS (
        SELECT 1 FROM {TABLE} AS r
        WHERE r.resource_id = NEW.resource_id
          AND r.id != NEW.id
          AND r.status = 'confirmed'
          AND r.slot_start < NEW.slot_end
          AND NEW.slot_start < r.slot_end
    )
"""

SQLITE_FORWARD = [
    f"""
    CREATE TRIGGER {CONSTRAINT}_insert
    BEFORE INSERT ON {TABLE}
    WHEN {_SQLITE_OVERLAP}
    BEGIN
        SELECT RAISE(ABORT, '{CONSTRAINT}');
    END
    """,
    f"""
    CREATE TRIGGER {CONSTRAINT}_update
    BEFORE UPDATE OF resource_id, slot_start, slot_end, status ON {TABLE}
    WHEN {_SQLITE_OVERLAP}
    BEGIN
        SELECT RAISE(ABORT, '{CONSTRAINT}');
    END
    """,
]

SQLITE_BACKWARD = [
    f"DROP TRIGGER IF EXISTS {CONSTRAINT}_insert",
    f"DROP TRIGGER IF EXISTS {CONSTRAINT}_update",
]


def _run(schema_editor, statements_by_vendor):
    statements = statements_by_vendor.get(schema_editor.connection.vendor)
    if statements is None:
        raise NotImplementedError(
            f"No overlap guard for database vendor {schema_editor.connection.vendor!r}"
        )
    for statement in statements:
        schema_editor.execute(statement)


def add_overlap_guard(apps, schema_editor):
    _run(schema_editor, {"postgresql": POSTGRES_FORWARD, "sqlite": SQLITE_FORWARD})


def remove_overlap_guard(apps, schema_editor):
    _run(schema_editor, {"postgresql": POSTGRES_BACKWARD, "sqlite": SQLITE_BACKWARD})


class Migration(migrations.Migration):
    dependencies = [
        ("reservations", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(add_overlap_guard, remove_overlap_guard),
    ]
