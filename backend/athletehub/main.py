import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from athletehub.api.v1.golf import router as golf_router
from athletehub.api.v1.group_posts import router as group_posts_router
from athletehub.api.v1.health import router as health_router
from athletehub.core.errors import DomainError, InternalError, ValidationError
from athletehub.core.logging import configure_logging
from athletehub.core.settings import settings

configure_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(title=settings.PROJECT_NAME)

# Local dev: allow Vite dev server to call the API.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
def handle_domain_error(request: Request, exc: DomainError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": exc.kind},
    )


@app.exception_handler(RequestValidationError)
def handle_request_validation_error(request: Request, exc: RequestValidationError):
    # Malformed payloads belong to the same `validation` class as domain checks.
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={"detail": jsonable_encoder(exc.errors()), "error": ValidationError.kind},
    )


@app.exception_handler(SQLAlchemyError)
def handle_store_error(request: Request, exc: SQLAlchemyError):
    logger.error("store.error", method=request.method, path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=InternalError.status_code,
        content={"detail": "Internal server error", "error": InternalError.kind},
    )


app.include_router(
    health_router,
    prefix=settings.API_V1_STR,
    tags=["Health"],
)
app.include_router(
    group_posts_router,
    prefix=settings.API_V1_STR,
    tags=["Group posts"],
)
app.include_router(
    golf_router,
    prefix=settings.API_V1_STR,
    tags=["Golf"],
)
