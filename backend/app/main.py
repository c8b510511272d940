import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.routes.health import router as health_router
from app.routes.init import router as init_router
from app.routes.currencies import router as currencies_router
from app.routes.metals import router as metals_router
from app.routes.variants import router as variants_router
from app.routes.quotes import router as quotes_router
from app.core.database import SessionLocal, init_db
from app.services.seed import seed_demo


logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Valuation API", version="0.1.0")

    origins = settings.cors_origins
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(health_router, tags=["health"])
    app.include_router(init_router, prefix="/init", tags=["init"])
    app.include_router(currencies_router, prefix="/valuation/currencies", tags=["currencies"])
    app.include_router(metals_router, prefix="/valuation/metals", tags=["metals"])
    app.include_router(variants_router, prefix="/valuation/variants", tags=["variants"])
    app.include_router(quotes_router, prefix="/valuation/quotes", tags=["quotes"])

    return app


app = create_app()

# Only seed in development or when explicitly requested
if settings.env == "dev" or os.getenv("FORCE_SEED") == "true":
    try:
        init_db()
        with SessionLocal() as db:
            seed_demo(db)
    except Exception:
        logger.exception("demo seed failed")
