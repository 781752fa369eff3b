import uuid
from functools import lru_cache
from typing import Annotated

from logging import Logger
from fastapi.params import Depends
from loguru import logger
from minio import Minio

from skinscan.analysis.inference_client import InferenceClient, OpenAIInferenceClient
from skinscan.config import get_app_settings, AppSettings
from skinscan.images.batch_ingestor import BatchIngestor
from skinscan.images.image_normalizer import ImageNormalizer, create_default_encoders
from skinscan.images.storage_client import StorageClient, S3StorageClient
from skinscan.images.uploader import ObjectStoreUploader
from skinscan.pipeline.coordinator import PipelineCoordinator

AppSettingsDep = Annotated[AppSettings, Depends(get_app_settings)]


def create_storage_client(app_settings: AppSettings) -> StorageClient:
    s3_settings = app_settings.s3
    minio_client = Minio(endpoint=s3_settings.endpoint, access_key=s3_settings.access_key,
                 secret_key=s3_settings.secret_key, region=s3_settings.region,
                 cert_check=s3_settings.trust_cert, secure=s3_settings.use_tsl)
    return S3StorageClient(minio_client)


@lru_cache
def get_storage_client() -> StorageClient:
    return create_storage_client(get_app_settings())


StorageClientDep = Annotated[StorageClient, Depends(get_storage_client)]


def create_inference_client(app_settings: AppSettings) -> InferenceClient:
    return OpenAIInferenceClient(app_settings.openai)


@lru_cache
def get_inference_client() -> InferenceClient:
    return create_inference_client(get_app_settings())


InferenceClientDep = Annotated[InferenceClient, Depends(get_inference_client)]


def _get_request_logger() -> Logger:
    return logger.bind(request_id=uuid.uuid4().hex[:12])  # type: ignore


RequestLoggerDep = Annotated[Logger, Depends(_get_request_logger)]


def _get_batch_ingestor(app_settings: AppSettingsDep,
                        storage_client: StorageClientDep,
                        request_logger: RequestLoggerDep) -> BatchIngestor:
    normalizer = ImageNormalizer(create_default_encoders(app_settings.heif_quality), request_logger)
    uploader = ObjectStoreUploader(storage_client, app_settings.bucket, app_settings.bucket_url, request_logger,
                                   key_prefix=app_settings.key_prefix)
    return BatchIngestor(normalizer, uploader, app_settings.limits, request_logger)


BatchIngestorDep = Annotated[BatchIngestor, Depends(_get_batch_ingestor)]


def _get_pipeline_coordinator(batch_ingestor: BatchIngestorDep,
                              inference_client: InferenceClientDep,
                              request_logger: RequestLoggerDep) -> PipelineCoordinator:
    return PipelineCoordinator(batch_ingestor, inference_client, request_logger)


PipelineCoordinatorDep = Annotated[PipelineCoordinator, Depends(_get_pipeline_coordinator)]
