import functools
import json
import os
import typing
from abc import ABC, abstractmethod
from dataclasses import dataclass
from io import BytesIO
from typing import BinaryIO

import anyio.to_thread
from minio import Minio
from minio.helpers import ObjectWriteResult

T = typing.TypeVar("T")
P = typing.ParamSpec("P")


class _AsyncMinio:
    _minio: Minio

    def __init__(self, minio: Minio):
        if not minio:
            raise ValueError("minio is required")

        self._minio = minio

    @staticmethod
    async def _run_async(func: typing.Callable[P, T], *args, **kwargs) -> T:
        func = functools.partial(func, *args, **kwargs)
        return await anyio.to_thread.run_sync(func)

    async def bucket_exists(self, bucket_name: str) -> bool:
        return await self._run_async(self._minio.bucket_exists, bucket_name=bucket_name)

    async def make_bucket(self, bucket_name: str) -> None:
        return await self._run_async(self._minio.make_bucket, bucket_name=bucket_name)

    async def set_bucket_policy(self, bucket_name: str, policy: str) -> None:
        return await self._run_async(self._minio.set_bucket_policy, bucket_name=bucket_name, policy=policy)

    async def put_object(self,
                         bucket_name: str,
                         object_name: str,
                         data: BinaryIO,
                         length: int,
                         content_type: str) -> ObjectWriteResult:
        return await self._run_async(self._minio.put_object, bucket_name=bucket_name, object_name=object_name,
                                     data=data, length=length, content_type=content_type)

    async def remove_object(self, bucket_name: str, object_name: str) -> None:
        return await self._run_async(self._minio.remove_object, bucket_name=bucket_name, object_name=object_name)


@dataclass(frozen=True, slots=True)
class StorageFileItem:
    """ Contains file's information """
    bucket: str
    """ File location """
    file_name: str
    """ File name """
    size: int
    """ File size """
    content_type: str
    """ Content type """
    etag: str
    """ File's Etag """


class StorageClient(ABC):
    """
    An abstract interface to storage client
    """

    @abstractmethod
    async def put_file(self, bucket: str, file_name: str, content: BytesIO, content_type: str,
                       reset_content: bool = True) -> StorageFileItem:
        """
        Uploads files to storage
        :param bucket: Destination bucket
        :param file_name: Destination file name
        :param content: Content
        :param content_type: Destination content_type
        :param reset_content: Set true to reset source content to the beginning
        :return: :class:`StorageFileItem` of the uploaded file
        """
        pass

    @abstractmethod
    async def remove_file(self, bucket: str, file_name: str) -> None:
        """
        Removes file from storage
        :param bucket: File's bucket
        :param file_name: File name
        """
        pass

    @abstractmethod
    async def try_create_bucket(self, bucket: str, public_read: bool = False) -> bool:
        """
        Tries to create bucket in storage
        :param bucket: Bucket name
        :param public_read: Set true to allow anonymous reads of the bucket's objects
        :return: True if bucket was created, False if bucket already exists
        """
        pass


def _public_read_policy(bucket: str) -> str:
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"AWS": ["*"]},
                "Action": ["s3:GetObject"],
                "Resource": [f"arn:aws:s3:::{bucket}/*"],
            }
        ],
    })


class S3StorageClient(StorageClient):
    _minio_client: _AsyncMinio

    def __init__(self, minio: Minio):
        assert minio is not None, "Minio client is required"

        self._minio_client = _AsyncMinio(minio)

    async def try_create_bucket(self, bucket: str, public_read: bool = False) -> bool:
        bucket_exists = await self._minio_client.bucket_exists(bucket)
        if bucket_exists:
            return False

        await self._minio_client.make_bucket(bucket)
        if public_read:
            await self._minio_client.set_bucket_policy(bucket, _public_read_policy(bucket))
        return True

    async def put_file(self, bucket: str, file_name: str, content: BytesIO, content_type: str,
                       reset_content: bool = True) -> StorageFileItem:
        assert content is not None, "Content is required"

        # read content length
        content.seek(0, os.SEEK_END)
        content_length = content.tell()

        # seek to the start to put file
        content.seek(0, os.SEEK_SET)

        result = await self._minio_client.put_object(bucket, file_name, content, content_length, content_type)
        if reset_content:
            content.seek(0, os.SEEK_SET)
        return StorageFileItem(bucket=bucket, file_name=result.object_name, content_type=content_type,
                               size=content_length, etag=result.etag or "")

    async def remove_file(self, bucket: str, file_name: str) -> None:
        await self._minio_client.remove_object(bucket, file_name)
