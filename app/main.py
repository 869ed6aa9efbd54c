"""
Winery Event Pricing API - Main application entry point.

Prices winery events (food, drinks, wine, staffing, venue, add-ons) and
derives the base price that keeps each event on its target margin.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.api import pricing_config, quotes
from app.services.config_store import PricingConfigError, get_pricing_config

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info(f"Starting {settings.app_name}...")
    try:
        get_pricing_config()
    except PricingConfigError as e:
        # Pricing endpoints answer 503 until the file is fixed and reloaded
        logger.warning(f"Pricing config not loaded at startup: {e.message}")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")


app = FastAPI(
    title=settings.app_name,
    description="""
    ## Winery Event Pricing API

    Itemized event quotes for the winery's event-hosting business:

    - **Quote engine**: food, drinks, wine, staffing, venue and add-ons
    - **Base price**: top-up fee that keeps each event on its target margin
    - **Summary & export rows**: display strings and table rows for PDF / spreadsheet renderers
    """,
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(quotes.router, prefix="/quotes", tags=["Quotes"])
app.include_router(pricing_config.router, prefix="/pricing-config", tags=["Pricing Config"])


@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": "1.0.0",
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    try:
        config = get_pricing_config()
        pricing = "loaded"
        vat = config.vat
    except PricingConfigError:
        pricing = "unavailable"
        vat = None
    return {
        "status": "healthy",
        "pricing_config": pricing,
        "vat": vat,
    }
