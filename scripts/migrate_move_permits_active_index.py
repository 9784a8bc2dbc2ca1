"""
Add the partial unique index that allows one live move permit per lease and direction.
For a NEW database: not needed; app.models.move_permit.MovePermit already defines it.
Run once on an EXISTING DB: python scripts/migrate_move_permits_active_index.py (from project root)
Fails if duplicate live permits already exist; cancel or reject the extras first.
"""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from sqlalchemy import text, inspect
from app.database import engine

INDEX_NAME = "uq_move_permits_active_lease_type"


def main():
    insp = inspect(engine)
    if not insp.has_table("move_permits"):
        print("  skip: move_permits table not found (start the app once to create it)")
        return
    existing = {ix["name"] for ix in insp.get_indexes("move_permits")}
    if INDEX_NAME in existing:
        print(f"  skip (exists): {INDEX_NAME}")
    else:
        with engine.begin() as conn:
            conn.execute(text(
                f"CREATE UNIQUE INDEX {INDEX_NAME} ON move_permits (lease_id, permit_type) "
                "WHERE status IN ('draft','submitted','under_review','approved')"
            ))
        print(f"  added: {INDEX_NAME}")
    print("Done.")


if __name__ == "__main__":
    main()
