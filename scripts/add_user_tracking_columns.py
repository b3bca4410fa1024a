"""
Script to add the audit columns (created_by_*, updated_by_*, created_at, updated_at)
and the version column to board tables created before user tracking existed.
"""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass

database_url = os.getenv("DATABASE_URL", "sqlite:///./var/dispatch.db")

try:
    from dispatch_board.db import engine
    from sqlalchemy import inspect, text
except Exception as e:
    print(f"ERROR: Failed to import database components: {e}")
    sys.exit(1)

TABLES = ["absences", "downed_equipment", "on_call_staff", "notices", "emergency_alerts"]

if database_url.startswith("postgresql"):
    COLUMNS = {
        "created_by_email": "VARCHAR(255)",
        "created_by_name": "VARCHAR(255)",
        "updated_by_email": "VARCHAR(255)",
        "updated_by_name": "VARCHAR(255)",
        "created_at": "TIMESTAMP WITH TIME ZONE DEFAULT NOW()",
        "updated_at": "TIMESTAMP WITH TIME ZONE DEFAULT NOW()",
        "version": "INTEGER NOT NULL DEFAULT 1",
        "notes": "TEXT",
    }
else:
    COLUMNS = {
        "created_by_email": "VARCHAR(255)",
        "created_by_name": "VARCHAR(255)",
        "updated_by_email": "VARCHAR(255)",
        "updated_by_name": "VARCHAR(255)",
        "created_at": "TIMESTAMP",
        "updated_at": "TIMESTAMP",
        "version": "INTEGER NOT NULL DEFAULT 1",
        "notes": "TEXT",
    }

print("=" * 60)
print("Adding user tracking columns to board tables")
print("=" * 60)
print()

try:
    existing_tables = set(inspect(engine).get_table_names())
    with engine.begin() as conn:
        for table in TABLES:
            if table not in existing_tables:
                print(f"[SKIP] {table} does not exist (run scripts/init_db.py)")
                continue
            present = {c["name"] for c in inspect(conn).get_columns(table)}
            for column, ddl in COLUMNS.items():
                if column in present:
                    continue
                sql = f"ALTER TABLE {table} ADD COLUMN {column} {ddl}"
                print(f"Executing: {sql}")
                conn.execute(text(sql))
            print(f"[OK] {table} up to date")

    print()
    print("=" * 60)
    print("Migration completed successfully!")
    print("=" * 60)

except Exception as e:
    print()
    print("=" * 60)
    print(f"ERROR: Migration failed: {e}")
    print("=" * 60)
    sys.exit(1)
