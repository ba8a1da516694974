from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .config import settings
from .database import engine, Base
from .routers import catalog, lines, projects, settings as settings_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("takeoff")

# Create tables (new tables only; no migrations)
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Steel Takeoff Estimator",
    description="Structural steel fabrication takeoff and cost estimating",
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
app.include_router(projects.router, prefix="/api")
app.include_router(lines.router, prefix="/api")
app.include_router(settings_router.router, prefix="/api")
app.include_router(catalog.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "steel-takeoff-estimator"}


@app.on_event("startup")
def auto_seed():
    """Seed the default company rate tables on first run."""
    from .database import SessionLocal
    from .store import SqlSettingsProvider
    db = SessionLocal()
    try:
        if SqlSettingsProvider(db).seed_defaults(company_name=settings.COMPANY_NAME):
            logger.info("Seeded default company settings for %s", settings.COMPANY_NAME)
    except Exception as e:
        db.rollback()
        logger.warning(f"Seed warning: {e}")
    finally:
        db.close()
