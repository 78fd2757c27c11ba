import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shortlink_app.config import settings
from shortlink_app.errors import ShortLinkError, ValidationError
from shortlink_app.logging_config import configure_logging
from shortlink_app.api.v1 import files, links, redirect
from shortlink_app.schemas.short_link import ErrorResponse

logger = configure_logging()
logger.info("Application '%s' starting up (%s)", settings.app_name, settings.environment)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Short, stable links to generated quote PDFs",
    debug=settings.debug
)


def error_body(kind: str, message: str) -> dict:
    return ErrorResponse(error=kind, message=message).model_dump()


@app.exception_handler(ShortLinkError)
async def short_link_error_handler(request: Request, exc: ShortLinkError):
    """Render domain errors as {"error": kind, "message": message}"""
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.kind, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.kind, exc.message))


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query parameters are ValidationErrors like bad slugs"""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = f"{location}: {first.get('msg', 'invalid value')}" if location else "Invalid request"
    error = ValidationError(message)
    return JSONResponse(status_code=error.status_code, content=error_body(error.kind, error.message))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Unknown routes and methods keep the same error shape"""
    kind = "NotFound" if exc.status_code == 404 else "HTTPError"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(kind, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s: %s", request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_body("InternalServerError", "An unexpected error occurred"),
    )


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment}


######## Include routers
app.include_router(links.router, prefix="/api/v1")
app.include_router(redirect.router)
app.include_router(files.router)
