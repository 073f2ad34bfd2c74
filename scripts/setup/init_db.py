# scripts/setup/init_db.py
"""
Initialize database — creates all tables, normalizes stored mobile numbers
and seeds the default admin.
Run once before first launch, or after adding new models.
Usage: python scripts/setup/init_db.py [--cars-json cars.json]
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

import argparse
import json

from sqlalchemy import inspect, text

from app.config import settings
from app.database import SessionLocal, create_tables, engine
from app.models.car import Car
from app.models.user import User
from app.services.auth_service import seed_default_admin
from app.utils.normalize import normalize_mobile


def normalize_mobiles(db) -> tuple:
    """Rewrite mobiles as digits only. Returns (updated, cleared_duplicates).

    The lowest user id keeps a number. Duplicates are cleared and flushed
    before any survivor is rewritten, so "+1555" and "1555" never collide
    on the unique index mid-update.
    """
    seen = set()
    rewrites = []
    cleared = 0
    for user in db.query(User).filter(User.mobile.isnot(None)).order_by(User.id).all():
        digits = normalize_mobile(user.mobile)
        if digits and digits in seen:
            user.mobile = None
            cleared += 1
            continue
        if digits:
            seen.add(digits)
        if digits != user.mobile:
            rewrites.append((user, digits))
    db.flush()

    for user, digits in rewrites:
        user.mobile = digits
    db.commit()
    return len(rewrites), cleared


def seed_cars(db, path: str) -> int:
    with open(path, "r", encoding="utf-8") as f:
        rows = json.load(f)
    if db.query(Car.id).first():
        print("ℹ️  Cars table not empty, skipping car seed")
        return 0
    columns = {c.name for c in Car.__table__.columns} - {"id"}
    for row in rows:
        fields = {"price_per_day": row.get("pricePerDay", row.get("price_per_day"))}
        for key, value in row.items():
            snake = "".join(f"_{ch.lower()}" if ch.isupper() else ch for ch in key)
            if snake in columns and snake not in fields:
                fields[snake] = value
        db.add(Car(**fields))
    db.commit()
    return len(rows)


def main():
    parser = argparse.ArgumentParser(description="Initialize the car hire database")
    parser.add_argument("--cars-json", help="Optional JSON file of cars to seed into an empty table")
    args = parser.parse_args()

    print("🗄️  Car Hire DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    # Test connection
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables()
    tables = sorted(inspect(engine).get_table_names())
    print(f"✅ Tables ready ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    db = SessionLocal()
    try:
        updated, cleared = normalize_mobiles(db)
        print(f"\n📱 Mobiles normalized: {updated} updated, {cleared} duplicates cleared")

        if seed_default_admin(db):
            print(f"👤 Seeded admin {settings.DEFAULT_ADMIN_EMAIL}")
        else:
            print(f"👤 Admin {settings.DEFAULT_ADMIN_EMAIL} already exists")

        if args.cars_json:
            print(f"🚗 Seeded {seed_cars(db, args.cars_json)} cars from {args.cars_json}")
    finally:
        db.close()

    print("\n🎉 Database ready! You can now start the backend:")
    print("   uvicorn app.main:app --host 0.0.0.0 --port 8080 --reload")


if __name__ == "__main__":
    main()
