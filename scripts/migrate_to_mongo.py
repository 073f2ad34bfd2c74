# scripts/migrate_to_mongo.py
"""
Backfill the MongoDB mirror from the primary database.
Every row of every mirrored table is upserted (keyed on sqliteId) and a
unique sqliteId index is created on each collection. Safe to re-run.
Usage: python scripts/migrate_to_mongo.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio

from app.database import SessionLocal, create_tables
from app.secondary import SecondaryStore
from app.services.mirror_service import MODELS, EntityKind, MirrorService


async def ensure_indexes(mdb):
    for kind in EntityKind:
        await mdb[kind.value].create_index("sqliteId", unique=True, sparse=True)


async def backfill(db, mirror: MirrorService) -> dict:
    counts = {}
    for kind in EntityKind:
        model = MODELS[kind]
        ok = failed = 0
        for row in db.query(model).order_by(model.id).yield_per(500):
            outcome = await mirror.mirror(kind, row)
            if outcome.ok:
                ok += 1
            else:
                failed += 1
        counts[kind.value] = (ok, failed)
    return counts


async def main():
    secondary = SecondaryStore.from_settings()
    if not secondary.configured:
        print("❌ MONGODB_URI is not set")
        sys.exit(1)

    mdb = await secondary.get_database()
    if mdb is None:
        print(f"❌ Cannot reach MongoDB: {secondary.last_error}")
        sys.exit(1)
    print(f"✅ Connected to MongoDB database '{mdb.name}'")

    create_tables()
    db = SessionLocal()
    try:
        await ensure_indexes(mdb)
        print("📇 sqliteId indexes ready")
        counts = await backfill(db, MirrorService(secondary))
    finally:
        db.close()
        await secondary.close()

    for name, (ok, failed) in counts.items():
        print(f"   ✓ {name}: {ok} mirrored" + (f", {failed} failed" if failed else ""))
    print("\n🎉 Mirror backfill complete")


if __name__ == "__main__":
    asyncio.run(main())
