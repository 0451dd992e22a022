import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request

from dal.object_storage import LocalObjectStorage, ObjectStorage, S3ObjectStorage
from routes.chat_route import router as chat_router
from services.detection_client import DetectionClient
from services.detection_pipeline import DetectionPipeline
from services.image_source import ImageSourceResolver
from services.image_store import StorageUploader
from services.session_addressor import SessionAddressor
from utils.settings import LOG_LEVELS, Settings

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level if level in LOG_LEVELS else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_storage(settings: Settings) -> ObjectStorage:
    """Create the object storage backend selected by STORAGE_BACKEND."""
    if settings.storage_backend == "local":
        return LocalObjectStorage(settings.local_storage_dir)
    try:
        return S3ObjectStorage(settings.s3_bucket, region=settings.aws_region)
    except Exception as exc:
        raise RuntimeError("Failed to initialize the S3 client") from exc


def build_pipeline(settings: Settings, http_client: httpx.AsyncClient, storage: ObjectStorage) -> DetectionPipeline:
    """Wire the resolver, uploader and detection client around shared clients."""
    return DetectionPipeline(
        resolver=ImageSourceResolver(http_client),
        uploader=StorageUploader(storage),
        detector=DetectionClient(http_client, settings.detection_base_url),
        service_address=settings.detection_service,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - settings from the environment (fails fast on missing config)
      - one shared async HTTP client for image fetches and detection calls
      - the object storage client, created once per process
    and attach them, plus the assembled pipeline, to `app.state`.
    """
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout))
    storage = build_storage(settings)

    app.state.settings = settings
    app.state.http_client = http_client
    app.state.storage = storage
    app.state.session_addressor = SessionAddressor()
    app.state.pipeline = build_pipeline(settings, http_client, storage)
    logging.getLogger(__name__).info(
        "Detection chat ready: storage=%s detection_service=%s", storage.name, settings.detection_service
    )

    try:
        yield
    finally:
        await http_client.aclose()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that reports whether the pipeline is wired up.
        """
        settings = getattr(request.app.state, "settings", None)
        storage = getattr(request.app.state, "storage", None)
        return {
            "ok": True,
            "pipeline_ready": getattr(request.app.state, "pipeline", None) is not None,
            "storage_backend": getattr(storage, "name", None),
            "detection_service": settings.detection_service if settings else None,
        }

    # Register application routers
    app.include_router(chat_router)

    return app


app = create_app()
