import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from turbobar.api.routes_capture import router as capture_router
from turbobar.api.routes_health import router as health_router
from turbobar.core.config import get_settings
from turbobar.core.errors import CaptureError, ConfigurationError, InvalidDraftError
from turbobar.services.schema_cache import CollectionSchemaCache


_FAILURE_SUMMARIES = {
    "/api/ai/organize": "Failed to organize capture.",
    "/api/notion/create-task": "Failed to create task.",
    "/api/notion/create-note": "Failed to create note.",
    "/api/capture": "Failed to capture.",
}


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Turbo Bar API", version="0.1.0")
    app.state.settings = settings
    app.state.schema_cache = CollectionSchemaCache(ttl_seconds=settings.schema_cache_ttl_seconds)

    @app.exception_handler(CaptureError)
    async def capture_error_handler(request: Request, exc: CaptureError) -> JSONResponse:
        status_code = 400 if isinstance(exc, (ConfigurationError, InvalidDraftError)) else 502
        return JSONResponse(
            status_code=status_code,
            content={
                "ok": False,
                "error": _FAILURE_SUMMARIES.get(request.url.path, "Request failed."),
                "details": str(exc),
            },
        )

    app.include_router(health_router)
    app.include_router(capture_router)
    return app


app = create_app()
