from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from app.database.database import engine, Base

# Import middleware and error handling
from app.common.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from app.common.exceptions import PosError, pos_error_handler

# Import routers
from app.modules.products.router import product_router
from app.modules.sales.router import sales_router
from app.modules.turnos.router import turnos_router
from app.modules.configuration.router import config_router
from app.modules.reports.routers import (
    sales_router as sales_reports_router,
    inventory_router as inventory_reports_router
)

# Import models for table creation
import app.modules.products.models
import app.modules.inventory.models
import app.modules.sales.models
import app.modules.turnos.models
import app.modules.configuration.models

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Turnos POS API",
    description="Punto de venta con turnos de caja, ventas atómicas y arqueo en Bs y USD",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Errores esperados del dominio -> respuesta con código estable
app.add_exception_handler(PosError, pos_error_handler)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestContextMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Add your frontend URLs
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(product_router, prefix="/api/v1")
app.include_router(sales_router, prefix="/api/v1")
app.include_router(turnos_router, prefix="/api/v1")
app.include_router(config_router, prefix="/api/v1")
app.include_router(sales_reports_router, prefix="/api/v1")
app.include_router(inventory_reports_router, prefix="/api/v1")

# Create database tables (only for development - use migrations in production)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=engine)


@app.get("/")
async def read_root():
    return {
        "message": "Turnos POS API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
async def startup_event():
    logger.info("Turnos POS API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    logger.info(f"Business timezone: {settings.BUSINESS_TIMEZONE}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Turnos POS API shutting down...")
