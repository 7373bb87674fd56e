"""
Main FastAPI application entry point.
"""
import logging
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from courier_billing.api import invoices, parties, payments, rate_audits, rates, slabs
from courier_billing.config.billing_config import get_cache_settings
from courier_billing.db.database import engine, Base
from courier_billing.services.errors import BillingError, IntegrityViolation
from courier_billing.services.lookup_cache import LookupCache
from courier_billing.services.slab_catalog import SlabCatalog
import courier_billing.models  # noqa: F401  registers tables on Base.metadata

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Courier Billing Back Office",
    description="Rate resolution and payment allocation for courier billing",
    version="1.0.0"
)

# One catalog per application; it owns the slab lookup cache
app.state.slab_catalog = SlabCatalog(LookupCache(**get_cache_settings()))

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],  # Dashboard dev servers
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BillingError)
async def billing_error_handler(request: Request, exc: BillingError):
    if isinstance(exc, IntegrityViolation):
        logger.error(f"Integrity violation on {request.method} {request.url.path}: {exc.message} {exc.details}")
    content = {"detail": exc.message}
    if exc.details:
        content["context"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(content))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({"detail": "Invalid input", "errors": exc.errors()}),
    )


# Include routers
app.include_router(parties.router, prefix="/api/parties", tags=["parties"])
app.include_router(slabs.router, prefix="/api/slabs", tags=["slabs"])
app.include_router(rates.router, prefix="/api/rates", tags=["rates"])
app.include_router(rate_audits.router, prefix="/api/rate-audits", tags=["rate-audits"])
app.include_router(invoices.router, prefix="/api/invoices", tags=["invoices"])
app.include_router(payments.party_payments_router, prefix="/api/party-payments", tags=["payments"])
app.include_router(payments.allocations_router, prefix="/api/payment-allocations", tags=["payments"])


@app.get("/")
async def root():
    return {"message": "Courier Billing Back Office API"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
