import functools
from abc import ABC, abstractmethod
from collections.abc import Sequence
from io import BytesIO
from logging import Logger
from typing import Any

import PIL
import anyio.to_thread
import pillow_heif
from PIL import Image, ImageOps

from skinscan.errors import ConversionError
from skinscan.images.format_detector import detect_format
from skinscan.images.models import NormalizedImage, MIME_JPEG, MIME_PNG
from skinscan.models import DetectedFormat

pillow_heif.register_heif_opener()

_JPEG_FORMAT = "JPEG"
_JPEG_MODE = "RGB"
_pass_through_types: dict[DetectedFormat, str] = {
    DetectedFormat.JPEG: MIME_JPEG,
    DetectedFormat.PNG: MIME_PNG,
    # unrecognized content is forwarded as is
    DetectedFormat.UNKNOWN: MIME_JPEG,
}


class ImageEncoder(ABC):
    """
    Converts HEIC/HEIF bytes into JPEG bytes
    """

    name: str

    @abstractmethod
    def encode(self, data: bytes) -> bytes:
        """
        Converts the given bytes
        :param data: HEIC/HEIF content
        :return: JPEG content
        :raises Exception: when the content could not be converted
        """
        pass


def _save_jpeg(image: PIL.Image.Image, params: dict[str, Any]) -> bytes:
    if image.mode != _JPEG_MODE:
        image = image.convert(_JPEG_MODE)

    result = BytesIO()
    image.save(result, _JPEG_FORMAT, **params)
    return result.getvalue()


class PillowEncoder(ImageEncoder):
    """ General-purpose path: Pillow with the HEIF plugin registered """

    name = "pillow"

    def __init__(self, params: dict[str, Any] | None = None):
        self._params = params or {'optimize': True}

    def encode(self, data: bytes) -> bytes:
        with Image.open(BytesIO(data)) as im:
            im.load()
            image = ImageOps.exif_transpose(im) or im
            return _save_jpeg(image, self._params)


class HeifEncoder(ImageEncoder):
    """ Format-specialized path: decodes with libheif directly and re-encodes with a fixed quality """

    name = "libheif"

    def __init__(self, quality: int = 90):
        assert 0 < quality <= 100, "quality must be in range 1..100"
        self._quality = quality

    def encode(self, data: bytes) -> bytes:
        heif_file = pillow_heif.open_heif(data, convert_hdr_to_8bit=True)
        image = heif_file.to_pillow()
        try:
            return _save_jpeg(image, {'quality': self._quality})
        finally:
            image.close()


class ImageNormalizer:
    _encoders: Sequence[ImageEncoder]
    _logger: Logger

    def __init__(self, encoders: Sequence[ImageEncoder], logger: Logger):
        assert encoders, "at least one encoder is required"
        assert logger is not None, "logger is required"

        self._encoders = tuple(encoders)
        self._logger = logger

    def normalize(self, data: bytes) -> NormalizedImage:
        """
        Returns JPEG and PNG content unchanged, converts HEIC/HEIF content to JPEG trying encoders in order
        :param data: Raw image bytes
        :return: :class:`NormalizedImage`
        :raises ConversionError: when every encoder failed
        """
        detected_format = detect_format(data)
        self._logger.debug(f"Detected format: {detected_format}")

        content_type = _pass_through_types.get(detected_format, None)
        if content_type:
            if detected_format == DetectedFormat.UNKNOWN:
                self._logger.warning("Image format was not recognized, pass it through unchanged")
            return NormalizedImage(data=data, content_type=content_type, source_format=detected_format)

        errors: list[str] = []
        for encoder in self._encoders:
            try:
                converted = encoder.encode(data)
                self._logger.info(
                    f"Converted {detected_format} to JPEG using {encoder.name}, {len(data)} -> {len(converted)} bytes")
                return NormalizedImage(data=converted, content_type=MIME_JPEG, source_format=detected_format,
                                       converted=True)
            except (PIL.UnidentifiedImageError, ValueError, OSError, Exception) as e:
                self._logger.warning(f"Encoder {encoder.name} failed to convert {detected_format}: {e}")
                errors.append(f"{encoder.name}: {e}")

        raise ConversionError(f"Failed to convert {detected_format.upper()} image", details="; ".join(errors))

    async def normalize_async(self, data: bytes) -> NormalizedImage:
        func = functools.partial(self.normalize, data)
        return await anyio.to_thread.run_sync(func)


def create_default_encoders(heif_quality: int) -> list[ImageEncoder]:
    """ Encoders in the order they are tried """
    return [PillowEncoder(), HeifEncoder(quality=heif_quality)]
