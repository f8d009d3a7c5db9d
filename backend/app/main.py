import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.api.errors import validation_exception_handler
from app.api.routes import auth, patients, prescriptions, sms, translate

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)

# API routes
app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["Auth"])
app.include_router(patients.router, prefix=settings.API_PREFIX, tags=["Patients"])
app.include_router(prescriptions.router, prefix=settings.API_PREFIX, tags=["Prescriptions"])
app.include_router(sms.router, prefix=settings.API_PREFIX, tags=["SMS"])
app.include_router(translate.router, prefix=settings.API_PREFIX, tags=["Translation"])


@app.on_event("startup")
async def startup():
    if not settings.JSONBIN_BIN_ID or not settings.JSONBIN_MASTER_KEY:
        logger.warning("JSONBIN_BIN_ID / JSONBIN_MASTER_KEY not set; patient and prescription storage is unavailable")
    if not settings.STORE_SERIALIZE_WRITES:
        logger.warning("STORE_SERIALIZE_WRITES is off: concurrent writes to the shared document may be lost")


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": settings.APP_NAME}
