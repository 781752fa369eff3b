from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from loguru import logger
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from skinscan.config import AppSettings, get_app_settings
from skinscan.errors import PipelineError
from skinscan.healthcheck.routes import hc_route
from skinscan.healthcheck.service import instance as hc_instance
from skinscan.images.buckets_service import BucketsService
from skinscan.pipeline.dependencies import get_storage_client, get_inference_client, create_storage_client, \
    create_inference_client
from skinscan.pipeline.routes import analysis_router


def _error_response(app_settings: AppSettings, status_code: int, message: str,
                    details: str | None = None) -> JSONResponse:
    content: dict[str, str] = {"message": message}
    if details is not None and not app_settings.is_production:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _register_error_handlers(app: FastAPI, app_settings: AppSettings) -> None:
    @app.exception_handler(PipelineError)
    async def _pipeline_error_handler(_: Request, exc: PipelineError) -> JSONResponse:
        return _error_response(app_settings, exc.status_code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(app_settings, status.HTTP_400_BAD_REQUEST, "Malformed request", str(exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return JSONResponse(status_code=exc.status_code,
                                content={"message": "Route not found", "path": request.url.path})
        return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)})

    @app.exception_handler(Exception)
    async def _unexpected_error_handler(_: Request, exc: Exception) -> JSONResponse:
        logger.opt(exception=exc).error("Unexpected error while processing request")
        return _error_response(app_settings, status.HTTP_500_INTERNAL_SERVER_ERROR,
                               "An unexpected error occurred while processing images", str(exc))


def _override_clients(app: FastAPI, app_settings: AppSettings) -> None:
    storage_client = lru_cache(lambda: create_storage_client(app_settings))
    inference_client = lru_cache(lambda: create_inference_client(app_settings))
    app.dependency_overrides[get_app_settings] = lambda: app_settings
    app.dependency_overrides[get_storage_client] = storage_client
    app.dependency_overrides[get_inference_client] = inference_client


def create_app(app_settings: AppSettings | None = None) -> FastAPI:
    settings = app_settings or get_app_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        storage_client_provider = app.dependency_overrides.get(get_storage_client, get_storage_client)
        buckets_service = BucketsService(settings, storage_client_provider(), logger.bind(source="core"))
        hc_instance.set_bucket_info(await buckets_service.create_bucket())
        yield
        inference_client_provider = app.dependency_overrides.get(get_inference_client, get_inference_client)
        if hasattr(inference_client_provider, "cache_info") and inference_client_provider.cache_info().currsize:
            await inference_client_provider().close()

    result = FastAPI(lifespan=lifespan)
    if app_settings is not None:
        _override_clients(result, app_settings)

    result.include_router(analysis_router)
    result.include_router(hc_route)
    _register_error_handlers(result, settings)
    return result
