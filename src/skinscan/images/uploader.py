import secrets
import time
from io import BytesIO
from logging import Logger
from urllib.parse import quote

from minio.error import MinioException
from urllib3.exceptions import HTTPError

from skinscan.errors import UploadError
from skinscan.images.models import NormalizedImage, UploadedAsset
from skinscan.images.storage_client import StorageClient

_KEY_EXTENSION = "jpg"


def make_time_token() -> str:
    """ Epoch milliseconds followed by a random batch token, generated once per submission """
    return f"{time.time_ns() // 1_000_000}-{secrets.token_hex(4)}"


class ObjectStoreUploader:
    _storage_client: StorageClient
    _bucket: str
    _bucket_url: str
    _key_prefix: str
    _logger: Logger

    def __init__(self, storage_client: StorageClient, bucket: str, bucket_url: str, logger: Logger,
                 key_prefix: str = "images"):
        assert storage_client is not None, "storage_client is required"
        assert bucket, "bucket is required"
        assert bucket_url, "bucket_url is required"
        assert logger is not None, "logger is required"

        self._storage_client = storage_client
        self._bucket = bucket
        self._bucket_url = bucket_url.rstrip('/')
        self._key_prefix = key_prefix.strip('/')
        self._logger = logger

    def build_key(self, time_token: str, index: int) -> str:
        file_name = f"face-{time_token}-{index}.{_KEY_EXTENSION}"
        return f"{self._key_prefix}/{file_name}" if self._key_prefix else file_name

    def get_url(self, key: str) -> str:
        return f"{self._bucket_url}/{quote(key)}"

    async def upload(self, image: NormalizedImage, index: int, time_token: str) -> UploadedAsset:
        """
        Writes the image to the bucket
        :param image: Normalized image
        :param index: 1-based position of the image in the submission
        :param time_token: Submission's time token, see :func:`make_time_token`
        :return: :class:`UploadedAsset`
        :raises UploadError: when storage rejected the write
        """
        key = self.build_key(time_token, index)
        self._logger.debug(f"Uploading image {index} to {self._bucket}/{key}, {image.length} bytes")
        try:
            stored = await self._storage_client.put_file(self._bucket, key, BytesIO(image.data),
                                                         content_type=image.content_type)
        except (MinioException, HTTPError, OSError, ValueError) as e:
            self._logger.error(f"Failed to upload image {index} to {self._bucket}/{key}: {e}")
            raise UploadError(f"Failed to upload image {index}", details=str(e)) from e

        self._logger.info(f"Uploaded image {index} to {self._bucket}/{stored.file_name}")
        return UploadedAsset(index=index, url=self.get_url(stored.file_name), key=stored.file_name)

    async def remove(self, asset: UploadedAsset) -> bool:
        """
        Removes the uploaded image, failures are logged and reported with `False`
        """
        try:
            await self._storage_client.remove_file(self._bucket, asset.key)
            self._logger.info(f"Removed orphaned image {asset.index}: {asset.key}")
            return True
        except (MinioException, HTTPError, OSError, ValueError) as e:
            self._logger.warning(f"Failed to remove orphaned image {asset.key}: {e}")
            return False
