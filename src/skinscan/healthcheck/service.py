from skinscan.models import BucketInfo


class HealthCheckService:
    _bucket_info: BucketInfo | None = None

    def set_bucket_info(self, bucket_info: BucketInfo):
        assert bucket_info is not None, "bucket_info is required"

        self._bucket_info = bucket_info

    @property
    def bucket_info(self) -> BucketInfo | None:
        return self._bucket_info

    @property
    def healthy(self) -> bool:
        return self._bucket_info is not None and not self._bucket_info.error


instance = HealthCheckService()
