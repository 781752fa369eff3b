import json
from collections.abc import Sequence
from io import BytesIO

import pytest
from fastapi.testclient import TestClient

from skinscan.analysis.inference_client import InferenceClient
from skinscan.analysis.models import ATTRIBUTES
from skinscan.config import AppSettings, OpenAISettings
from skinscan.images.storage_client import StorageClient, StorageFileItem
from skinscan.main import create_app
from skinscan.pipeline.dependencies import get_storage_client, get_inference_client

_valid_response = json.dumps({name: {"score": 50 + i * 10, "explanation": f"{name} looks fine."}
                              for i, name in enumerate(ATTRIBUTES)})


class _MemoryStorageClient(StorageClient):
    def __init__(self):
        self.files: dict[str, tuple[bytes, str]] = {}

    async def put_file(self, bucket: str, file_name: str, content: BytesIO, content_type: str,
                       reset_content: bool = True) -> StorageFileItem:
        data = content.getvalue()
        self.files[file_name] = (data, content_type)
        return StorageFileItem(bucket=bucket, file_name=file_name, size=len(data), content_type=content_type,
                               etag='etag')

    async def remove_file(self, bucket: str, file_name: str) -> None:
        self.files.pop(file_name, None)

    async def try_create_bucket(self, bucket: str, public_read: bool = False) -> bool:
        return True


class _FakeInferenceClient(InferenceClient):
    def __init__(self, response: str):
        self.calls = 0
        self._response = response

    async def analyze(self, prompt: str, image_urls: Sequence[str]) -> str:
        self.calls += 1
        return self._response


def _create_client(inference_response: str = _valid_response, environment: str = "development") \
        -> tuple[TestClient, _MemoryStorageClient, _FakeInferenceClient]:
    settings = AppSettings(bucket="faces", public_url="https://cdn.example.com/faces",
                           openai=OpenAISettings(api_key="k"), environment=environment)
    storage_client = _MemoryStorageClient()
    inference_client = _FakeInferenceClient(inference_response)

    app = create_app(settings)
    app.dependency_overrides[get_storage_client] = lambda: storage_client
    app.dependency_overrides[get_inference_client] = lambda: inference_client
    return TestClient(app), storage_client, inference_client


def _files(*items: tuple[str, bytes, str]) -> list[tuple[str, tuple[str, bytes, str]]]:
    return [("files", item) for item in items]


def test_analyze_three_jpegs(jpeg_bytes: bytes):
    # arrange
    client, storage_client, inference_client = _create_client()

    # act
    response = client.post("/analyze-images", files=_files(*[(f"{i}.jpg", jpeg_bytes, "image/jpeg")
                                                             for i in (1, 2, 3)]))

    # assert
    assert response.status_code == 200
    body = response.json()
    assert [d["id"] for d in body["imageDescriptions"]] == [1, 2, 3]
    assert all(d["url"].startswith("https://cdn.example.com/faces/images/face-") for d in body["imageDescriptions"])
    assert set(body["skinAnalysis"].keys()) == set(ATTRIBUTES)
    assert all(0 <= v["score"] <= 100 for v in body["skinAnalysis"].values())
    assert len(storage_client.files) == 3
    assert all(data == jpeg_bytes for data, _ in storage_client.files.values())
    assert inference_client.calls == 1


def test_analyze_converts_heic(heic_bytes: bytes, jpeg_bytes: bytes, png_bytes: bytes):
    # arrange
    client, storage_client, _ = _create_client()

    # act
    response = client.post("/analyze-images", files=_files(("1.heic", heic_bytes, "image/heic"),
                                                           ("2.jpg", jpeg_bytes, "image/jpeg"),
                                                           ("3.png", png_bytes, "image/png")))

    # assert
    assert response.status_code == 200
    first = next(v for k, v in storage_client.files.items() if k.endswith("-1.jpg"))
    assert first[0].startswith(b"\xff\xd8\xff")
    assert first[1] == "image/jpeg"


def test_analyze_two_files_is_rejected(jpeg_bytes: bytes):
    # arrange
    client, storage_client, inference_client = _create_client()

    # act
    response = client.post("/analyze-images", files=_files(*[(f"{i}.jpg", jpeg_bytes, "image/jpeg")
                                                             for i in (1, 2)]))

    # assert
    assert response.status_code == 400
    assert "3" in response.json()["message"]
    assert not storage_client.files
    assert inference_client.calls == 0


def test_analyze_without_files_is_rejected():
    # arrange
    client, _, _ = _create_client()

    # act
    response = client.post("/analyze-images")

    # assert
    assert response.status_code == 400


def test_analyze_rejects_disallowed_type(jpeg_bytes: bytes):
    # arrange
    client, storage_client, _ = _create_client()

    # act
    response = client.post("/analyze-images", files=_files(("1.jpg", jpeg_bytes, "image/jpeg"),
                                                           ("2.gif", b"GIF89a", "image/gif"),
                                                           ("3.jpg", jpeg_bytes, "image/jpeg")))

    # assert
    assert response.status_code == 400
    assert not storage_client.files


def test_analyze_not_json_response(jpeg_bytes: bytes):
    # arrange
    client, storage_client, _ = _create_client(inference_response="not json")

    # act
    response = client.post("/analyze-images", files=_files(*[(f"{i}.jpg", jpeg_bytes, "image/jpeg")
                                                             for i in (1, 2, 3)]))

    # assert
    assert response.status_code == 500
    assert response.json()["details"] == "not json"


def test_analyze_hides_details_in_production(jpeg_bytes: bytes):
    # arrange
    client, _, _ = _create_client(inference_response="not json", environment="production")

    # act
    response = client.post("/analyze-images", files=_files(*[(f"{i}.jpg", jpeg_bytes, "image/jpeg")
                                                             for i in (1, 2, 3)]))

    # assert
    assert response.status_code == 500
    assert "details" not in response.json()
    assert response.json()["message"]


def test_analyze_incomplete_response(jpeg_bytes: bytes):
    # arrange
    incomplete = json.loads(_valid_response)
    del incomplete["Pores"]
    client, _, _ = _create_client(inference_response=json.dumps(incomplete))

    # act
    response = client.post("/analyze-images", files=_files(*[(f"{i}.jpg", jpeg_bytes, "image/jpeg")
                                                             for i in (1, 2, 3)]))

    # assert
    assert response.status_code == 500
    assert "Pores" in response.json()["message"]


def test_unknown_route():
    # arrange
    client, _, _ = _create_client()

    # act
    response = client.get("/missing")

    # assert
    assert response.status_code == 404
    assert response.json() == {"message": "Route not found", "path": "/missing"}


@pytest.mark.parametrize('path', ['/'])
def test_root(path: str):
    # arrange
    client, _, _ = _create_client()

    # act
    response = client.get(path)

    # assert
    assert response.status_code == 200
    assert response.text == "Server is running!"


def test_analyze_rejects_nan_score(jpeg_bytes: bytes):
    # arrange
    client, _, _ = _create_client(inference_response=_valid_response.replace('"score": 60', '"score": NaN'))

    # act
    response = client.post("/analyze-images", files=_files(*[(f"{i}.jpg", jpeg_bytes, "image/jpeg")
                                                             for i in (1, 2, 3)]))

    # assert
    assert response.status_code == 500
    assert "NaN" in response.json()["details"]
