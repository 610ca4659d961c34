import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from campus_portal.api.v1.router import build_api_router
from campus_portal.core.config import Settings, get_settings
from campus_portal.core.errors import DOMAIN_ERRORS
from campus_portal.core.logging import configure_logging
from campus_portal.core.middleware import RequestIdMiddleware
from campus_portal.core.realtime import Broadcaster, SseHub
from campus_portal.services.image_service import ImageStorage, LocalImageStorage

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    async def domain_error(request: Request, exc: Exception):
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    for exc_type in DOMAIN_ERRORS:
        app.add_exception_handler(exc_type, domain_error)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception(
            "Unhandled error",
            extra={"path": request.url.path, "request_id": getattr(request.state, "request_id", None)},
        )
        return JSONResponse(status_code=500, content={"detail": str(exc)})


def create_app(
    settings: Optional[Settings] = None,
    *,
    broadcaster: Optional[Broadcaster] = None,
    storage: Optional[ImageStorage] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    broadcaster = broadcaster if broadcaster is not None else SseHub()
    storage = storage if storage is not None else LocalImageStorage(settings.upload_dir, settings.upload_url_prefix)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
    )

    # Middleware: Request ID
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(
        build_api_router(
            storage=storage,
            broadcaster=broadcaster,
            preview_chars=settings.notification_preview_chars,
        ),
        prefix=settings.api_prefix,
    )

    if isinstance(storage, LocalImageStorage):
        app.mount(
            settings.upload_url_prefix,
            StaticFiles(directory=settings.upload_dir, check_dir=False),
            name="uploads",
        )

    return app


app = create_app()
