from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from datetime import datetime
from loguru import logger
from pathlib import Path
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from rentnest.core.config import settings
from rentnest.core.database import init_db
from rentnest.core.exceptions import NotFound, RentnestError, UpstreamFailure, ValidationError
from rentnest.core.logging import setup_logging
from rentnest.routers import auth, properties


def _error_body(kind: str, message: str) -> dict:
    return {"success": False, "error": kind, "message": message}


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"{settings.APP_NAME} started")
    yield
    logger.info(f"{settings.APP_NAME} stopped")


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Rental property listings",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Mount static media folder — images stored here after upload
    Path(settings.MEDIA_ROOT).mkdir(parents=True, exist_ok=True)
    app.mount("/media", StaticFiles(directory=settings.MEDIA_ROOT), name="media")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(UpstreamFailure)
    async def upstream_failure_handler(request: Request, exc: UpstreamFailure):
        logger.error(f"{request.method} {request.url.path} failed upstream: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.kind, exc.public_message),
        )

    @app.exception_handler(RentnestError)
    async def rentnest_error_handler(request: Request, exc: RentnestError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.kind, exc.message),
            headers=exc.headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        # Routing misses (unknown path, wrong method) end up here
        if exc.status_code == 404:
            body = _error_body(NotFound.__name__, "Route not found")
        else:
            body = _error_body("HTTPError", str(exc.detail))
        return JSONResponse(
            status_code=exc.status_code,
            content=body,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        where = ".".join(str(part) for part in first.get("loc", ()) if part != "body") or "request"
        message = f"Invalid {where}: {first.get('msg', 'malformed input')}"
        return JSONResponse(
            status_code=ValidationError.status_code,
            content=_error_body(ValidationError.__name__, message),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception(f"{request.method} {request.url.path} database error")
        return JSONResponse(status_code=500, content=_error_body("ServerError", "Server error"))

    app.include_router(auth.router, prefix="/api")
    app.include_router(properties.router, prefix="/api")

    @app.get("/")
    def root():
        return {
            "message": f"Welcome to {settings.APP_NAME}!",
            "version": "1.0.0",
            "status": "active",
            "endpoints": {
                "auth": "/api/auth",
                "properties": "/api/properties",
            },
            "documentation": "/docs"
        }

    @app.get("/health")
    def health_check():
        return {
            "status": "healthy",
            "service": settings.APP_NAME,
            "timestamp": datetime.utcnow()
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("rentnest.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
