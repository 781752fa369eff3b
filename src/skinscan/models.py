import enum
from dataclasses import dataclass


class DetectedFormat(enum.StrEnum):
    JPEG = enum.auto()
    PNG = enum.auto()
    HEIC = enum.auto()
    HEIF = enum.auto()
    UNKNOWN = enum.auto()


class BucketStatus(str, enum.Enum):
    created = "created"
    exists = "exists"
    error = "error"


@dataclass(slots=True)
class BucketInfo:
    bucket: str
    status: BucketStatus

    @property
    def error(self) -> bool:
        return self.status == BucketStatus.error
