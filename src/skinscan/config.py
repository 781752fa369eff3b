import typing
from urllib import parse

from pydantic import BaseModel, HttpUrl, model_validator, Field
from pydantic.dataclasses import dataclass
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource, JsonConfigSettingsSource

_MB = 1024 * 1024


@dataclass(frozen=True, slots=True)
class S3Settings:
    endpoint: str = "localhost:9000"
    """ Host """
    access_key: str = ""
    """ Access key """
    secret_key: str = ""
    """ Secret key """
    region: str = "eu-west-1"
    """ Storage region, eu-west-1 by default """
    use_tsl: bool = False
    """ Flag to use secure connection, False by default """
    trust_cert: bool = True
    """ Set True to trust secure certificate and do not validate it, True by default """


class OpenAISettings(BaseModel):
    api_key: str = ""
    """ Inference service API key """

    model: str = "gpt-4-turbo"
    """ Multimodal model name """

    temperature: float = 0.4
    top_p: float = 1.0
    max_tokens: int = 4000

    timeout_seconds: float = 60.0
    """ Timeout of a single inference call, in seconds """

    base_url: str | None = None
    """ Optional OpenAI-compatible endpoint """


class UploadLimits(BaseModel):
    files_count: int = 3
    """ How many photos one submission must contain """

    max_file_size: int = 5 * _MB
    """ Maximum size of one photo, in bytes """

    max_request_size: int = 15 * _MB
    """ Maximum size of the whole submission, in bytes """

    allowed_content_types: frozenset[str] = frozenset({"image/jpeg", "image/png", "image/heic", "image/heif"})
    """ Declared content types accepted by the coarse filter (case-insensitive) """


def _parse_path(path: str) -> tuple[str, str | None]:
    fragments = [str(t) for t in path.split('/') if t]
    if len(fragments) < 1:
        raise ValueError(f"Url path '{path}' doesn't contain region")

    if len(fragments) > 1:
        return fragments[0], fragments[1]

    return fragments[0], None


def _parse_s3_settings(value: str) -> tuple[S3Settings, str | None]:
    s3_url = HttpUrl(value)
    if not s3_url.path or not len(s3_url.path):
        raise ValueError(f"Value '{value}' was not recognized as a valid S3 connection string")

    region, bucket = _parse_path(s3_url.path)
    return S3Settings(endpoint=f"{s3_url.host}:{s3_url.port}", access_key=s3_url.username or "",
                      secret_key=s3_url.password or "", region=region, trust_cert=s3_url.scheme == 'https',
                      use_tsl=s3_url.scheme == 'https'), bucket


def _parse_content_types(value: str) -> set[str]:
    return {t.strip().lower() for t in value.split(',') if t.strip()}


class AppSettings(BaseSettings):
    """ Application settings """

    s3: S3Settings = S3Settings()
    """ S3 or minio connection parameters """

    bucket: str = ""
    """ Bucket to store submitted photos in """

    public_url: str | None = None
    """ Base url of the bucket used to build public links, derived from s3 settings when empty """

    key_prefix: str = "images"
    """ Object key namespace of submitted photos """

    create_public_bucket: bool = False
    """ Set True to apply anonymous read policy when the bucket is created """

    openai: OpenAISettings = OpenAISettings()
    """ Inference service parameters """

    limits: UploadLimits = UploadLimits()
    """ Submission limits """

    heif_quality: int = Field(default=90, ge=1, le=100)
    """ JPEG quality used by the HEIC/HEIF fallback encoder """

    environment: str = "development"
    """ Deployment environment, diagnostics are hidden from responses in production """

    log_level: str = 'info'
    """ Logging level. Options: critical, error, warning, info, debug, trace. Default: info """

    log_fmt: str = "{time} | {level}: {extra} {message}"
    """ Logging message format """

    uvicorn: dict[str, typing.Any] = Field(default_factory=dict[str, typing.Any])
    """ uvicorn specific settings """

    model_config = SettingsConfigDict(env_file=".env", nested_model_default_partial_update=True,
                                      env_nested_delimiter="__", extra='ignore', case_sensitive=False,
                                      json_file="config.json", enable_decoding=False)

    # noinspection PyNestedDecorators
    @model_validator(mode='before')
    @classmethod
    def before_validator(cls, data: typing.Any) -> typing.Any:
        result = data
        if isinstance(data, dict):
            raw_dict = dict(data)

            uvicorn_settings = dict(raw_dict.get('uvicorn', None) or dict[str, typing.Any]())
            uvicorn_settings.setdefault('host', '0.0.0.0')
            uvicorn_settings.setdefault('port', 5001)
            uvicorn_settings.setdefault('proxy_headers', True)
            raw_dict['uvicorn'] = uvicorn_settings

            if isinstance(raw_dict.get('s3', None), str):
                s3_settings, bucket = _parse_s3_settings(str(raw_dict['s3']))
                raw_dict['s3'] = s3_settings
                if not raw_dict.get('bucket', None) and bucket:
                    raw_dict['bucket'] = bucket

            limits = raw_dict.get('limits', None)
            if isinstance(limits, dict) and isinstance(limits.get('allowed_content_types', None), str):
                limits = dict(limits)
                limits['allowed_content_types'] = _parse_content_types(limits['allowed_content_types'])
                raw_dict['limits'] = limits

            result = raw_dict

        return result

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def bucket_url(self) -> str:
        if self.public_url:
            return self.public_url.rstrip('/')

        scheme = "https" if self.s3.use_tsl else "http"
        return f"{scheme}://{self.s3.endpoint}/{self.bucket}"

    def missing_settings(self) -> list[str]:
        """ Returns names of required settings which were not configured """
        required = {
            'openai.api_key': self.openai.api_key,
            's3.access_key': self.s3.access_key,
            's3.secret_key': self.s3.secret_key,
            's3.region': self.s3.region,
            'bucket': self.bucket,
        }
        return [name for name, value in required.items() if not value]

    @classmethod
    def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,
            file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, JsonConfigSettingsSource(
            settings_cls), dotenv_settings, file_secret_settings


_app_settings: AppSettings | None = None


def get_app_settings() -> AppSettings:
    global _app_settings
    if not _app_settings:
        _app_settings = AppSettings()
    return _app_settings
