"""
One-off script: add the natural-key unique indexes to an existing database.

- applications (job_id, user_id)            : one application per applicant per job
- application_progress (application_id, step_id) : one progress row per step

Usage:
  python scripts/add_unique_constraints.py
The script reads DATABASE_URL from app.core.config.settings. Existing duplicate
rows are reported and must be cleaned up before the index can be created.
"""
import sys
from sqlalchemy import create_engine, inspect, text
from app.core.config import settings

UNIQUE_INDEXES = [
    ("applications", "uq_applications_job_user", ("job_id", "user_id")),
    ("application_progress", "uq_application_progress_application_step", ("application_id", "step_id")),
]


def find_duplicates(conn, table, columns):
    cols = ", ".join(columns)
    return conn.execute(text(
        f"SELECT {cols}, COUNT(*) AS n FROM {table} GROUP BY {cols} HAVING COUNT(*) > 1"
    )).fetchall()


def existing_unique_keys(inspector, table):
    keys = set()
    for constraint in inspector.get_unique_constraints(table):
        keys.add(tuple(constraint["column_names"]))
    for index in inspector.get_indexes(table):
        if index.get("unique"):
            keys.add(tuple(index["column_names"]))
    return keys


def main(database_url=None):
    engine = create_engine(database_url or settings.database_url)
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())
    failed = False

    with engine.begin() as conn:
        for table, name, columns in UNIQUE_INDEXES:
            if table not in tables:
                print(f"Table '{table}' does not exist, skipping")
                continue
            if columns in existing_unique_keys(inspector, table):
                print(f"Unique key on {table}{columns} already exists")
                continue

            duplicates = find_duplicates(conn, table, columns)
            if duplicates:
                failed = True
                print(f"Cannot add {name}: {len(duplicates)} duplicate groups in '{table}'")
                for row in duplicates[:10]:
                    print(f"  {tuple(row)}")
                continue

            print(f"Adding unique index '{name}' on {table}{columns}")
            conn.execute(text(f"CREATE UNIQUE INDEX IF NOT EXISTS {name} ON {table} ({', '.join(columns)})"))
            print(f"Added unique index '{name}'")

    return 1 if failed else 0


if __name__ == '__main__':
    sys.exit(main())
