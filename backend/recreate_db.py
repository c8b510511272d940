"""
Script to recreate database with the valuation schema
"""
from app.core.database import SessionLocal, engine
from app.models.tenant import Base
from app.services.seed import seed_demo

# Import all models to ensure they're registered
import app.models  # noqa: F401


def recreate_db():
    print("Recreating database with valuation schema...")

    print("Dropping existing tables...")
    Base.metadata.drop_all(bind=engine)

    print("Creating tables...")
    Base.metadata.create_all(bind=engine)

    print("Seeding demo data...")
    db = SessionLocal()
    try:
        tenant = seed_demo(db)
        print(f"Database recreated successfully! Tenant: {tenant.slug}")
    except Exception as e:
        print(f"Error seeding data: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    recreate_db()
