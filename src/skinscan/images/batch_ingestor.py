from dataclasses import dataclass
from logging import Logger

import anyio

from skinscan.config import UploadLimits
from skinscan.errors import ValidationError, PipelineError
from skinscan.images.image_normalizer import ImageNormalizer
from skinscan.images.models import ImageSubmission, SubmittedImage, UploadedAsset
from skinscan.images.uploader import ObjectStoreUploader, make_time_token


@dataclass(slots=True)
class _TaskResult:
    asset: UploadedAsset | None = None
    error: PipelineError | None = None


def _normalize_content_type(content_type: str | None) -> str:
    if not content_type:
        return ""
    return content_type.split(';', 1)[0].strip().lower()


def validate_submission(submission: ImageSubmission, limits: UploadLimits) -> None:
    """
    Cheap checks of the submission, runs before any image is decoded or uploaded
    :raises ValidationError: on wrong files count, disallowed declared content type or oversized files
    """
    if len(submission) != limits.files_count:
        raise ValidationError(f"Missing picture(s). Please upload {limits.files_count} pictures to proceed.",
                              details=f"Received {len(submission)} file(s)")

    total_size = 0
    for index, image in enumerate(submission.images, start=1):
        validate_image(image, index, limits)
        total_size += image.size

    if total_size > limits.max_request_size:
        raise ValidationError(f"Total size of the pictures exceeds {limits.max_request_size} bytes",
                              details=f"Received {total_size} bytes")


def validate_image(image: SubmittedImage, index: int, limits: UploadLimits) -> None:
    content_type = _normalize_content_type(image.content_type)
    if content_type not in limits.allowed_content_types:
        allowed = ", ".join(sorted(limits.allowed_content_types))
        raise ValidationError(f"Invalid file type of picture {index}. Allowed types: {allowed}",
                              details=f"Declared content type: {image.content_type or '<empty>'}")

    if image.size == 0:
        raise ValidationError(f"Picture {index} is empty")

    if image.size > limits.max_file_size:
        raise ValidationError(f"Picture {index} exceeds maximum size of {limits.max_file_size} bytes",
                              details=f"Received {image.size} bytes")


class BatchIngestor:
    """
    Validates, normalizes and uploads photos of one submission, the batch succeeds only if every photo succeeds
    """

    _normalizer: ImageNormalizer
    _uploader: ObjectStoreUploader
    _limits: UploadLimits
    _logger: Logger

    def __init__(self, normalizer: ImageNormalizer, uploader: ObjectStoreUploader, limits: UploadLimits,
                 logger: Logger):
        assert normalizer is not None, "normalizer is required"
        assert uploader is not None, "uploader is required"
        assert limits is not None, "limits is required"
        assert logger is not None, "logger is required"

        self._normalizer = normalizer
        self._uploader = uploader
        self._limits = limits
        self._logger = logger

    async def ingest(self, submission: ImageSubmission) -> list[UploadedAsset]:
        validate_submission(submission, self._limits)

        time_token = make_time_token()
        results = [_TaskResult() for _ in submission.images]

        async with anyio.create_task_group() as tg:
            for index, image in enumerate(submission.images, start=1):
                tg.start_soon(self._process_image, image, index, time_token, results[index - 1])

        failed = next((r for r in results if r.error), None)
        if failed:
            await self._remove_uploaded(results)
            assert failed.error
            raise failed.error

        assets = [r.asset for r in results if r.asset]
        assert len(assets) == len(results), "every successful task must produce an asset"
        return assets

    async def _process_image(self, image: SubmittedImage, index: int, time_token: str, slot: _TaskResult) -> None:
        try:
            normalized = await self._normalizer.normalize_async(image.data)
            slot.asset = await self._uploader.upload(normalized, index, time_token)
        except PipelineError as e:
            self._logger.warning(f"Image {index} failed: {e.message}")
            slot.error = e

    async def _remove_uploaded(self, results: list[_TaskResult]) -> None:
        uploaded = [r.asset for r in results if r.asset]
        if not uploaded:
            return

        self._logger.info(f"Batch failed, removing {len(uploaded)} uploaded image(s)")
        async with anyio.create_task_group() as tg:
            for asset in uploaded:
                tg.start_soon(self._uploader.remove, asset)
