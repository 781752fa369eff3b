from starlette import status


class PipelineError(Exception):
    """ Base class of every failure a submission can end with """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind: str = "PipelineError"

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(PipelineError):
    """ Wrong files count, disallowed content type or oversized file """
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "ValidationError"


class ConversionError(PipelineError):
    """ Every HEIC/HEIF encoder failed """
    kind = "ConversionError"


class UploadError(PipelineError):
    """ Object storage rejected the write """
    kind = "UploadError"


class InferenceError(PipelineError):
    """ Inference service call failed """
    kind = "InferenceError"


class ParseError(PipelineError):
    """ Inference output is not valid JSON """
    kind = "ParseError"


class SchemaError(PipelineError):
    """ Inference output is valid JSON but misses required attributes """
    kind = "SchemaError"
