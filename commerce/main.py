# commerce/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from commerce.core.config import get_settings
from commerce.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from commerce.models import user as _user_models  # noqa: F401
from commerce.models import catalogue as _catalogue_models  # noqa: F401
from commerce.models import product as _product_models  # noqa: F401
from commerce.models import cart as _cart_models  # noqa: F401
from commerce.models import order as _order_models  # noqa: F401

# Routers
from commerce.routers.admin_stats import router as admin_stats_router
from commerce.routers.cart import router as cart_router
from commerce.routers.catalogue import router as catalogue_router
from commerce.routers.orders import router as orders_router
from commerce.routers.products import router as products_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
    """
    logger.info("Startup: connecting to the database...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error("Startup: DB connection FAILED: %s", e)
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(catalogue_router, prefix=settings.API_V1_STR)
app.include_router(products_router, prefix=settings.API_V1_STR)
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(orders_router, prefix=settings.API_V1_STR)
app.include_router(admin_stats_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "commerce-catalogue"}
