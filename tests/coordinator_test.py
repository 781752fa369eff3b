import json
from collections.abc import Sequence
from unittest.mock import create_autospec

import pytest
from loguru import logger

from skinscan.analysis.inference_client import InferenceClient
from skinscan.analysis.models import ATTRIBUTES
from skinscan.analysis.prompt_builder import ANALYSIS_PROMPT
from skinscan.errors import ValidationError, InferenceError, ParseError, SchemaError, UploadError
from skinscan.images.batch_ingestor import BatchIngestor
from skinscan.images.models import ImageSubmission, SubmittedImage, UploadedAsset
from skinscan.pipeline.coordinator import PipelineCoordinator, PipelineStage

_assets = [UploadedAsset(index=i, url=f"https://cdn/face-{i}.jpg", key=f"images/face-{i}.jpg") for i in (1, 2, 3)]
_submission = ImageSubmission(images=tuple(SubmittedImage(data=b"data", content_type="image/jpeg")
                                           for _ in range(3)))
_valid_response = json.dumps({name: {"score": 70, "explanation": "fine"} for name in ATTRIBUTES})


class _FakeInferenceClient(InferenceClient):
    def __init__(self, response: str | None = None, error: Exception | None = None):
        self.calls: list[tuple[str, list[str]]] = []
        self._response = response
        self._error = error

    async def analyze(self, prompt: str, image_urls: Sequence[str]) -> str:
        self.calls.append((prompt, list(image_urls)))
        if self._error:
            raise self._error
        assert self._response is not None
        return self._response


def _create_ingestor(assets: list[UploadedAsset] | None = None, error: Exception | None = None) -> BatchIngestor:
    ingestor_mock = create_autospec(BatchIngestor)
    if error:
        ingestor_mock.ingest.side_effect = error
    else:
        ingestor_mock.ingest.return_value = assets or _assets
    return ingestor_mock


@pytest.mark.anyio
async def test_run_successful():
    # arrange
    inference_client = _FakeInferenceClient(_valid_response)
    coordinator = PipelineCoordinator(_create_ingestor(), inference_client, logger)

    # act
    result = await coordinator.run(_submission)

    # assert
    assert coordinator.stage == PipelineStage.SUCCEEDED
    assert result.assets == _assets
    body = result.to_dict()
    assert body["imageDescriptions"] == [{"id": 1, "url": "https://cdn/face-1.jpg"},
                                         {"id": 2, "url": "https://cdn/face-2.jpg"},
                                         {"id": 3, "url": "https://cdn/face-3.jpg"}]
    assert list(body["skinAnalysis"].keys()) == list(ATTRIBUTES)
    assert inference_client.calls == [(ANALYSIS_PROMPT, [a.url for a in _assets])]


@pytest.mark.anyio
async def test_run_sends_urls_in_index_order():
    # arrange
    inference_client = _FakeInferenceClient(_valid_response)
    coordinator = PipelineCoordinator(_create_ingestor(list(reversed(_assets))), inference_client, logger)

    # act
    await coordinator.run(_submission)

    # assert
    assert inference_client.calls[0][1] == [a.url for a in _assets]


@pytest.mark.anyio
@pytest.mark.parametrize('error', [ValidationError("bad count"), UploadError("upload failed")])
async def test_run_skips_inference_when_ingestion_fails(error: Exception):
    # arrange
    inference_client = _FakeInferenceClient(_valid_response)
    coordinator = PipelineCoordinator(_create_ingestor(error=error), inference_client, logger)

    # act & assert
    with pytest.raises(type(error)):
        await coordinator.run(_submission)

    assert coordinator.stage == PipelineStage.FAILED
    assert not inference_client.calls


@pytest.mark.anyio
@pytest.mark.parametrize('inference_client, expected_error', [
    (_FakeInferenceClient(error=InferenceError("unavailable")), InferenceError),
    (_FakeInferenceClient("not json"), ParseError),
    (_FakeInferenceClient('{"Redness": {"score": 1, "explanation": "x"}}'), SchemaError),
])
async def test_run_classifies_analysis_failures(inference_client: _FakeInferenceClient, expected_error: type):
    # arrange
    coordinator = PipelineCoordinator(_create_ingestor(), inference_client, logger)

    # act & assert
    with pytest.raises(expected_error):
        await coordinator.run(_submission)

    assert coordinator.stage == PipelineStage.FAILED
    assert len(inference_client.calls) == 1
