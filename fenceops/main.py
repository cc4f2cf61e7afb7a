from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os

from .config import settings
from .database import engine, Base
from .routers import bom, catalog, pricing, projects

logger = logging.getLogger("fenceops")

# Create tables (handles new tables but won't add columns to existing ones)
Base.metadata.create_all(bind=engine)


def _run_migrations():
    """Run pending Alembic migrations on startup.

    Databases created by Base.metadata.create_all() before Alembic was
    introduced get the initial revision stamped first.
    """
    from alembic.config import Config
    from alembic import command
    from sqlalchemy import inspect

    alembic_ini = os.path.join(os.path.dirname(__file__), "..", "alembic.ini")
    if not os.path.exists(alembic_ini):
        logger.info("alembic.ini not found, skipping migrations")
        return

    alembic_cfg = Config(alembic_ini)
    alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

    insp = inspect(engine)
    tables = insp.get_table_names()
    if "alembic_version" not in tables and "formula_templates" in tables:
        logger.info("Stamping base migration a1f3c9e2b7d4 (tables already exist)")
        command.stamp(alembic_cfg, "a1f3c9e2b7d4")

    logger.info("Running pending Alembic migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Migrations complete")


app = FastAPI(
    title="FenceOps BOM Engine",
    description=f"Bill-of-materials and pricing resolution for {settings.COMPANY_NAME}",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(bom.router, prefix="/api")
app.include_router(pricing.router, prefix="/api")
app.include_router(catalog.router, prefix="/api")
app.include_router(projects.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "fenceops-bom"}


@app.on_event("startup")
def auto_migrate():
    """Run pending Alembic migrations on startup."""
    _run_migrations()


@app.on_event("startup")
def auto_seed():
    """Seed the default catalog on first run."""
    if not settings.AUTO_SEED:
        return
    from .database import SessionLocal
    from .seed import seed_defaults
    db = SessionLocal()
    try:
        seed_defaults(db)
        db.commit()
    finally:
        db.close()
