import datetime

from fastapi import APIRouter
from starlette import status
from starlette.responses import Response, PlainTextResponse

from skinscan import __version__
from skinscan.healthcheck.service import instance as hc_instance

hc_route = APIRouter()


@hc_route.get("/", response_class=PlainTextResponse)
def get_root() -> str:
    return "Server is running!"


@hc_route.get("/hc")
@hc_route.get("/health")
def get_health_check(response: Response) -> dict:
    if not hc_instance.healthy:
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    bucket_info = hc_instance.bucket_info
    return {'status': 'healthy' if hc_instance.healthy else 'unhealthy',
            'version': __version__,
            'timestamp': datetime.datetime.now(datetime.timezone.utc).isoformat(),
            'bucket': {'name': bucket_info.bucket, 'status': bucket_info.status} if bucket_info else None}
