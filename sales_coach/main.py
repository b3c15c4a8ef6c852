"""
FastAPI application entry point
"""
import logging
import sys

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from sales_coach.api.v1 import ai, documents, learning_paths, topics
from sales_coach.config import get_settings
from sales_coach.errors import SalesCoachError

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

# third-party HTTP clients log every request at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Sales Coach API",
    version="1.0.0",
    description="Topics, learning paths, grounded Q&A and role-play feedback for sales training",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


@app.exception_handler(SalesCoachError)
async def handle_app_error(request: Request, exc: SalesCoachError):
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return error_response(exc.status_code, exc.message)


@app.exception_handler(HTTPException)
async def handle_http_error(request: Request, exc: HTTPException):
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid request"))
    return error_response(400, message)


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    return error_response(500, "Internal server error")


app.include_router(topics.router)
app.include_router(learning_paths.router)
app.include_router(documents.router)
app.include_router(ai.router)


@app.get("/")
async def root():
    return {
        "message": "Sales Coach API",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}
