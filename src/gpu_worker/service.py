"""
HTTP service for GIF transforms.

Endpoints (also mounted under /api/v1):
    POST /mirror-gif          multipart field ``file`` -> mirrored GIF
    POST /blur-gif?radius=R   multipart field ``file`` -> blurred GIF
    GET  /health              service status

The GPU context and the transforms are created once at startup and
shared by every request.
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import APIRouter, FastAPI, File, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from . import __version__
from .config import ServiceConfig
from .errors import (
    DecodeError,
    EmptyInputError,
    GpuWorkerError,
    InputError,
    InvalidFrameSize,
    ProcessingError,
)
from .gpu.context import GpuContext
from .orchestrator import TransformOrchestrator
from .transforms import MAX_BLUR_RADIUS, TextureTransform, create_transform

logger = logging.getLogger(__name__)

SERVICE_NAME = "gpu-worker"
GIF_MEDIA_TYPE = "image/gif"
FEATURES = ["mirror-gif", "blur-gif"]


def status_code_for(error: Exception) -> int:
    """HTTP status for a core error."""
    if isinstance(error, EmptyInputError):
        return 400
    if isinstance(error, (DecodeError, InvalidFrameSize, ProcessingError)):
        return 422
    if isinstance(error, InputError):
        return 400
    return 500


def error_response(error: GpuWorkerError) -> JSONResponse:
    status = status_code_for(error)
    if status >= 500:
        logger.error("Request failed: %s", error)
    else:
        logger.warning("Rejected request: %s", error)
    return JSONResponse(
        status_code=status,
        content={"error": error.error_type, "message": str(error)},
    )


def create_app(
    config: Optional[ServiceConfig] = None,
    transforms: Optional[Dict[str, TextureTransform]] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Service configuration (default: from environment)
        transforms: Prebuilt transforms keyed by name. When omitted, a
            GPU context and the mirror/blur transforms are created at
            startup and the context is closed at shutdown.
    """
    config = config or ServiceConfig.from_env()
    orchestrator = TransformOrchestrator()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        context = None
        if transforms is None:
            context = await GpuContext.create(power_preference=config.power_preference)
            app.state.transforms = {
                'mirror': create_transform('mirror', context),
                'blur': create_transform('blur', context, radius=config.blur_radius),
            }
            logger.info("GPU worker ready on %s (%s)", context.device_name, context.backend_name)
        else:
            app.state.transforms = dict(transforms)
        try:
            yield
        finally:
            if context is not None:
                context.close()

    app = FastAPI(
        title="GPU Worker",
        description="GPU-accelerated GIF transforms",
        version=__version__,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def add_version_header(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Version"] = __version__
        return response

    @app.exception_handler(GpuWorkerError)
    async def handle_worker_error(request: Request, exc: GpuWorkerError):
        return error_response(exc)

    async def process(request: Request, name: str, file: Optional[UploadFile], **options) -> Response:
        if file is None:
            raise EmptyInputError("No file field found in multipart data")
        data = await file.read()
        if not data:
            raise EmptyInputError("Uploaded file is empty")

        transform = request.app.state.transforms[name]
        logger.info("Processing %s request: %s (%d bytes)", name, file.filename, len(data))
        try:
            result = await orchestrator.run(data, transform, **options)
        except GpuWorkerError:
            raise
        except Exception as e:
            logger.exception("Unexpected failure in %s request", name)
            raise GpuWorkerError(f"Internal error: {e}") from e

        return Response(content=result, media_type=GIF_MEDIA_TYPE)

    router = APIRouter()

    @router.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": __version__,
            "features": FEATURES,
        }

    @router.post("/mirror-gif")
    async def mirror_gif(request: Request, file: Optional[UploadFile] = File(None)):
        """Flip every frame of the uploaded GIF upside down."""
        return await process(request, 'mirror', file)

    @router.post("/blur-gif")
    async def blur_gif(
        request: Request,
        file: Optional[UploadFile] = File(None),
        radius: Optional[float] = Query(None, ge=0, le=MAX_BLUR_RADIUS),
    ):
        """Blur every frame of the uploaded GIF."""
        options = {} if radius is None else {'radius': radius}
        return await process(request, 'blur', file, **options)

    app.include_router(router)
    app.include_router(router, prefix="/api/v1")

    return app
