from logging import Logger

from minio.error import MinioException
from urllib3.exceptions import HTTPError

from skinscan.config import AppSettings
from skinscan.images.storage_client import StorageClient
from skinscan.models import BucketStatus, BucketInfo


class BucketsService:
    _app_settings: AppSettings
    _storage_client: StorageClient
    _logger: Logger

    def __init__(self, app_settings: AppSettings, storage_client: StorageClient, l: Logger):
        self._app_settings = app_settings
        self._storage_client = storage_client
        self._logger = l

    async def create_bucket(self) -> BucketInfo:
        bucket_name = self._app_settings.bucket
        public_read = self._app_settings.create_public_bucket
        try:
            bucket_created = await self._storage_client.try_create_bucket(bucket_name, public_read)
            if bucket_created:
                self._logger.info(f"Bucket {bucket_name} was created (public read: {public_read})")
                status = BucketStatus.created
            else:
                self._logger.info(f"Bucket {bucket_name} already exists, skip it")
                status = BucketStatus.exists
        except (MinioException, HTTPError, OSError, ValueError) as e:
            self._logger.opt(exception=e).warning(f"Failed to create bucket {bucket_name}")
            status = BucketStatus.error

        return BucketInfo(bucket=bucket_name, status=status)
