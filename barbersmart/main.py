import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import all models to ensure they're registered with SQLAlchemy Base
from . import (
    models,  # noqa: F401
    models_integrations,  # noqa: F401
)
from .config import CORS_ORIGINS
from .database import Base, engine
from .domain.appointments.router import router as appointments_router
from .domain.branding.router import router as branding_router
from .domain.catalog.router import router as catalog_router
from .domain.clients.router import router as clients_router
from .domain.reports.router import router as reports_router
from .domain.staff.router import router as staff_router
from .domain.units.router import router as units_router
from .routes.domains import router as domains_router
from .routes.payment_webhooks import router as payment_webhooks_router
from .routes.payments import router as payments_router
from .routes.public import router as public_router
from .routes.whatsapp import router as whatsapp_router
from .services.tenant_resolver import extract_domain_to_check

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
    yield
    logger.info("Application shutting down...")


app = FastAPI(title="BarberSmart API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors from HTTPBearer to 401 authentication errors
    when the issue is with the Authorization header
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(f"Authentication failed for {request.url.path}: Missing or invalid Authorization header")
            return JSONResponse(
                status_code=401,
                content={"detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."},
            )

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


def jsonable_errors(exc: RequestValidationError) -> list:
    # ValueError contexts from field validators are not JSON serializable
    return [{k: (str(v) if k == "ctx" else v) for k, v in error.items()} for error in exc.errors()]


@app.middleware("http")
async def tenant_host_resolver(request: Request, call_next):
    """Expose the tenant subdomain / custom domain of the Host header on request.state"""
    host = request.headers.get("x-forwarded-host") or request.headers.get("host", "")
    request.state.tenant_domain = extract_domain_to_check(host)
    return await call_next(request)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


logger.info(f"CORS allowed origins: {CORS_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(units_router)
app.include_router(appointments_router)
app.include_router(clients_router)
app.include_router(staff_router)
app.include_router(catalog_router)
app.include_router(reports_router)
app.include_router(branding_router)
app.include_router(whatsapp_router)
app.include_router(payments_router)
app.include_router(payment_webhooks_router)
app.include_router(domains_router)
app.include_router(public_router)


@app.get("/health")
def health():
    return {"status": "healthy"}
