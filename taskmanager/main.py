import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from starlette.exceptions import HTTPException

from taskmanager.api.v1.api import api_router
from taskmanager.core.config import settings
from taskmanager.core.errors import AppError
from taskmanager.core.storage import URL_PREFIX
from taskmanager.db.session import init_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} started")
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _first_validation_message(errors) -> str:
    if not errors:
        return "Invalid request"
    message = errors[0].get("msg", "Invalid request")
    # Messages raised from our own validators arrive as "Value error, <text>"
    return message.removeprefix("Value error, ")


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": _first_validation_message(exc.errors())})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": _first_validation_message(exc.errors())})


# Include API routes
app.include_router(api_router, prefix=settings.API_V1_STR)

# Uploaded profile photos
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount(URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")
