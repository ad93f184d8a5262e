"""FastAPI entrypoint for the Leafify backend service."""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .routes import image
from .schemas import HealthResponse
from .services.errors import (
    DecodeError,
    InferenceError,
    LeafifyError,
    LoadError,
    ModelUnavailableError,
)
from .services.inference import InferenceService, ServiceState
from .utils.logger import get_logger

logger = get_logger(__name__)

_STATUS_BY_ERROR = {
    DecodeError: 400,
    ModelUnavailableError: 503,
    InferenceError: 500,
}


def create_app(service: Optional[InferenceService] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        inference = service or InferenceService.from_settings(settings)
        if inference.state is ServiceState.UNLOADED:
            try:
                inference.load()
            except LoadError as exc:
                logger.error("Serving without a model: {}", exc.message)
        app.state.inference = inference
        yield

    app = FastAPI(title="Leafify Diagnosis API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LeafifyError)
    async def handle_leafify_error(request: Request, exc: LeafifyError) -> JSONResponse:
        status_code = _STATUS_BY_ERROR.get(type(exc), 500)
        return JSONResponse(status_code=status_code, content={"error": exc.kind, "detail": exc.message})

    app.include_router(image.router, tags=["diagnosis"])

    @app.get("/health", tags=["system"], response_model=HealthResponse)
    async def healthcheck(request: Request) -> HealthResponse:
        """Readiness endpoint reporting the model lifecycle state."""
        inference: InferenceService = request.app.state.inference
        return HealthResponse(status="ok", model=inference.state.value, detail=inference.failure)

    return app


app = create_app()
