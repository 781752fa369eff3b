from typing import Annotated

from fastapi import APIRouter, UploadFile, File

from skinscan.images.models import ImageSubmission, SubmittedImage
from skinscan.pipeline.dependencies import PipelineCoordinatorDep, AppSettingsDep, RequestLoggerDep

analysis_router = APIRouter()

_FilesDep = Annotated[list[UploadFile] | None, File(alias="files")]


async def _read_submission(files: list[UploadFile], max_file_size: int) -> ImageSubmission:
    images: list[SubmittedImage] = []
    for file in files:
        # one extra byte is enough to detect an oversized file
        data = await file.read(max_file_size + 1)
        images.append(SubmittedImage(data=data, content_type=file.content_type or "", file_name=file.filename))
    return ImageSubmission(images=tuple(images))


@analysis_router.post("/analyze-images")
async def analyze_images(coordinator: PipelineCoordinatorDep,
                         app_settings: AppSettingsDep,
                         request_logger: RequestLoggerDep,
                         files: _FilesDep = None) -> dict:
    submission = await _read_submission(files or [], app_settings.limits.max_file_size)
    for index, image in enumerate(submission.images, start=1):
        request_logger.info(f"Received file {index}: name={image.file_name}, "
                            f"content_type={image.content_type}, size={image.size}")

    result = await coordinator.run(submission)
    return result.to_dict()
