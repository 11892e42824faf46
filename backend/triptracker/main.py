"""
FastAPI entrypoint for TripTracker backend application.
"""
import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from triptracker.core.config import settings
from triptracker.core.errors import ErrorCode, InvalidEnumValueError, TripTrackerError, ValidationError
from triptracker.core.utils import format_error
from triptracker.api.router import api_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.UNKNOWN_CURRENCY: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.INVALID_ENUM_VALUE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_ACTIVE_SHARE: status.HTTP_409_CONFLICT,
    ErrorCode.CONCURRENT_MODIFICATION: status.HTTP_409_CONFLICT,
    ErrorCode.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
}

# pydantic error types raised for values outside a closed enumeration
ENUM_ERROR_TYPES = {"enum", "literal_error"}

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Backend API for trip expenses, budgets and sharing",
    version="1.0.0",
    debug=settings.DEBUG
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(request: Request, exc: TripTrackerError) -> JSONResponse:
    status_code = STATUS_BY_CODE.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.code.value}): {exc.message}")
    body = format_error(exc.message, exc.details)
    body["code"] = exc.code.value
    body["user_message"] = exc.user_message
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(TripTrackerError)
async def triptracker_error_handler(request: Request, exc: TripTrackerError):
    """Map domain errors to HTTP responses."""
    return error_response(request, exc)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Report request body, path and query validation failures in the domain error shape."""
    errors = exc.errors()
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in errors
    ]
    enum_errors = [d for d in details if d["type"] in ENUM_ERROR_TYPES]
    if enum_errors:
        fields = ", ".join(d["field"] for d in enum_errors)
        return error_response(request, InvalidEnumValueError(f"Unrecognized value for {fields}", details=details))
    return error_response(request, ValidationError("Request validation failed", details=details))


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "TripTracker API is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    from triptracker.db.session import init_db

    init_db()
    uvicorn.run(app, host="0.0.0.0", port=8000)
