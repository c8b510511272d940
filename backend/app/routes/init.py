import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db, SessionLocal, engine
from app.models.tenant import Base, Tenant
from app.models.currency import Currency
from app.models.metal import Metal
from app.models.variant import MetalVariant
from app.services.seed import seed_demo

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/initialize-database")
def initialize_database():
    """
    Initialize database with schema and demo data.
    WARNING: This will drop all existing tables and recreate them!
    """
    if settings.env not in {"dev", "test"}:
        raise HTTPException(status_code=403, detail="Only allowed in dev/test environments")

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        tenant = seed_demo(db)
        logger.info("database initialized with demo tenant=%s", tenant.slug)
        return {
            "success": True,
            "message": "Database initialized successfully with demo data",
            "tenant": tenant.slug,
        }
    finally:
        db.close()


@router.get("/database-status")
def database_status(db: Session = Depends(get_db)):
    """Check if database is initialized"""
    tenant_count = db.query(Tenant).count()
    return {
        "initialized": tenant_count > 0,
        "tenants": tenant_count,
        "currencies": db.query(Currency).count(),
        "metals": db.query(Metal).count(),
        "variants": db.query(MetalVariant).count(),
    }
