from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
import logging

# Import database components
from app.database.database import engine, Base

# Import middleware
from app.common.middleware import ActingUserMiddleware
from app.common.exceptions import LedgerError, TransportError

# Import routers
from app.modules.contacts.router import router as contacts_router
from app.modules.products.router import product_router
from app.modules.invoices.router import router as invoices_router, payment_router
from app.modules.inventory.router import inventory_router
from app.modules.purchases.router import purchase_router

# Import models for table creation
import app.modules.contacts.models
import app.modules.products.models
import app.modules.invoices.models
import app.modules.inventory.models
import app.modules.purchases.models

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Frutería Ledger API",
    description="Cuentas por cobrar, cuentas por pagar e inventario de una frutería",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(ActingUserMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rechazado ({exc.code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(OperationalError)
async def operational_error_handler(request: Request, exc: OperationalError):
    logger.error(f"Base de datos no disponible en {request.url.path}: {exc}")
    error = TransportError("No se pudo contactar la base de datos")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Include routers
app.include_router(contacts_router)
app.include_router(product_router)
app.include_router(invoices_router)
app.include_router(payment_router)
app.include_router(inventory_router)
app.include_router(purchase_router)

# Create database tables (only for development)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=engine)

@app.get("/")
async def read_root():
    return {
        "message": "Frutería Ledger API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}

@app.on_event("startup")
async def startup_event():
    logger.info("Frutería Ledger API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    logger.info(f"Invoice delete policy: {settings.INVOICE_DELETE_POLICY}")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Frutería Ledger API shutting down...")
