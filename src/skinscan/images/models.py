from dataclasses import dataclass

from skinscan.models import DetectedFormat

MIME_JPEG = "image/jpeg"
MIME_PNG = "image/png"


@dataclass(frozen=True, slots=True)
class SubmittedImage:
    """ One photo of a submission as it was received """
    data: bytes
    """ Raw bytes """
    content_type: str
    """ Client-declared content type, not trusted """
    file_name: str | None = None
    """ Client-declared file name """

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True, slots=True)
class ImageSubmission:
    """ Ordered photos of one submission, position defines the 1-based index """
    images: tuple[SubmittedImage, ...]

    def __len__(self) -> int:
        return len(self.images)


@dataclass(frozen=True, slots=True)
class NormalizedImage:
    data: bytes
    """ Bytes decodable as a standard raster format """
    content_type: str
    """ Mime type of the data """
    source_format: DetectedFormat
    """ Format detected before normalization """
    converted: bool = False
    """ True when the data was re-encoded """

    @property
    def length(self) -> int:
        return len(self.data)


@dataclass(frozen=True, slots=True)
class UploadedAsset:
    index: int
    """ 1-based position in the submission """
    url: str
    """ Publicly resolvable location """
    key: str
    """ Object key in the bucket """
