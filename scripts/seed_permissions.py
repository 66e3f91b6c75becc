"""
Seed the permission catalog.
Run after the tables exist; safe to run repeatedly.
"""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from facilityhub.db import Base, SessionLocal, engine  # noqa: E402
from facilityhub.models import models  # noqa: E402,F401
from facilityhub.services.permission_catalog import seed_permission_catalog  # noqa: E402


def seed_permissions(create_tables: bool = True) -> int:
    """Seed initial permissions"""
    if create_tables:
        Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        count = seed_permission_catalog(db)
        print(f"Seeded {count} permissions")
        return count
    finally:
        db.close()


if __name__ == "__main__":
    seed_permissions()
