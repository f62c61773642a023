#!/usr/bin/env python3
"""Apply SQL migrations from migrations/ to the database in DATABASE_URL."""
import os
import sys
from pathlib import Path

import psycopg2

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def migration_files(args: list[str]) -> list[Path]:
    if args:
        return [Path(a) for a in args]
    return sorted(MIGRATIONS_DIR.glob("*.sql"))


def main() -> None:
    files = migration_files(sys.argv[1:])
    if not files:
        print(f"No migrations found in {MIGRATIONS_DIR}")
        sys.exit(1)

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("DATABASE_URL environment variable not set")
        print("Or paste the SQL files into the Supabase SQL editor:")
        for path in files:
            print(f"  {path}")
        sys.exit(1)

    conn = psycopg2.connect(database_url)
    try:
        with conn.cursor() as cursor:
            for path in files:
                print(f"Applying {path.name} ({path.stat().st_size} bytes)")
                cursor.execute(path.read_text())
        conn.commit()
        print(f"Applied {len(files)} migration(s)")
    except Exception as e:
        conn.rollback()
        print(f"Migration failed, rolled back: {e}")
        sys.exit(1)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
