#!/usr/bin/env python3
"""
Initialize a database schema using the SQLAlchemy models.

Creates every SalonHub table. Safe to run multiple times (idempotent).
Pass --seed to also create the demo company (client CL001, two stylists,
one free and two priced services).

Usage:
    export DATABASE_URL="postgresql+asyncpg://localhost:5432/salonhub_test"
    python3 Backend/scripts/init_test_db.py [--seed]
"""
import asyncio
import os
import sys
from pathlib import Path

# Add Backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from salonhub.models import Base
from salonhub.seed import seed_demo_data

# Get test database URL from environment
DATABASE_URL = os.getenv("DATABASE_URL")

if not DATABASE_URL:
    print("❌ ERROR: DATABASE_URL environment variable not set")
    print("   Use: export DATABASE_URL='postgresql+asyncpg://localhost:5432/salonhub_test'")
    sys.exit(1)

# Safety check - refuse anything that looks like a hosted production database
if any(marker in DATABASE_URL.lower() for marker in ("prod", "neon", "rds.amazonaws")):
    print("❌ FATAL: Refusing to initialize what looks like a production database!")
    print(f"   DATABASE_URL: {DATABASE_URL}")
    print("   This script is for LOCAL TEST DATABASES ONLY")
    sys.exit(1)


async def init_db(seed: bool = False):
    """Create all tables, optionally seeding the demo company."""
    print("🔧 Initializing database...")
    print(f"   Database: {DATABASE_URL}")

    engine = create_async_engine(DATABASE_URL, echo=False)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        print("✅ Schema initialized successfully!")
        print("\n📋 Tables:")
        for table_name in sorted(Base.metadata.tables):
            print(f"   - {table_name}")

        if seed:
            session_factory = async_sessionmaker(engine, expire_on_commit=False)
            async with session_factory() as session:
                company = await seed_demo_data(session)
            print(f"\n🌱 Seeded demo company '{company.slug}' (id={company.id})")
            print(f"   Use header: X-Company-Id: {company.id}")

        print("\n🎯 Next steps:")
        print("   pytest Backend/tests -v")

    except Exception as e:
        print(f"❌ Error initializing database: {e}")
        sys.exit(1)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init_db(seed="--seed" in sys.argv[1:]))
