import enum
from dataclasses import dataclass
from logging import Logger

from skinscan.analysis.inference_client import InferenceClient
from skinscan.analysis.models import AnalysisResult
from skinscan.analysis.prompt_builder import ANALYSIS_PROMPT
from skinscan.analysis.response_parser import parse_analysis_response
from skinscan.errors import PipelineError
from skinscan.images.batch_ingestor import BatchIngestor
from skinscan.images.models import ImageSubmission, UploadedAsset


class PipelineStage(enum.StrEnum):
    RECEIVED = "received"
    INGESTING = "ingesting"
    PROMPT_BUILDING = "prompt_building"
    INFERRING = "inferring"
    PARSING_RESULT = "parsing_result"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class PipelineResult:
    assets: list[UploadedAsset]
    analysis: AnalysisResult

    def to_dict(self) -> dict:
        return {
            "message": "Images analyzed successfully",
            "imageDescriptions": [{"id": a.index, "url": a.url} for a in self.assets],
            "skinAnalysis": self.analysis.to_dict(),
        }


class PipelineCoordinator:
    """
    Runs one submission through ingestion and analysis, every stage is attempted once
    """

    _batch_ingestor: BatchIngestor
    _inference_client: InferenceClient
    _logger: Logger
    _stage: PipelineStage

    def __init__(self, batch_ingestor: BatchIngestor, inference_client: InferenceClient, logger: Logger,
                 prompt: str = ANALYSIS_PROMPT):
        assert batch_ingestor is not None, "batch_ingestor is required"
        assert inference_client is not None, "inference_client is required"
        assert logger is not None, "logger is required"

        self._batch_ingestor = batch_ingestor
        self._inference_client = inference_client
        self._logger = logger
        self._prompt = prompt
        self._stage = PipelineStage.RECEIVED

    @property
    def stage(self) -> PipelineStage:
        return self._stage

    def _enter(self, stage: PipelineStage) -> None:
        self._logger.debug(f"{self._stage} -> {stage}")
        self._stage = stage

    async def run(self, submission: ImageSubmission) -> PipelineResult:
        assert self._stage == PipelineStage.RECEIVED, "coordinator handles a single submission"
        try:
            self._enter(PipelineStage.INGESTING)
            assets = await self._batch_ingestor.ingest(submission)

            self._enter(PipelineStage.PROMPT_BUILDING)
            image_urls = [a.url for a in sorted(assets, key=lambda a: a.index)]
            self._logger.info(f"Image urls for analysis: {image_urls}")

            self._enter(PipelineStage.INFERRING)
            raw_text = await self._inference_client.analyze(self._prompt, image_urls)
            self._logger.debug(f"Inference response: {raw_text}")

            self._enter(PipelineStage.PARSING_RESULT)
            analysis = parse_analysis_response(raw_text)
        except PipelineError as e:
            self._logger.warning(f"Submission failed at {self._stage} with {e.kind}: {e.message}")
            self._enter(PipelineStage.FAILED)
            raise

        self._enter(PipelineStage.SUCCEEDED)
        return PipelineResult(assets=assets, analysis=analysis)
