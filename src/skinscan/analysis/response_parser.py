import json
import math
from typing import Any

from skinscan.analysis.models import ATTRIBUTES, AnalysisResult, AttributeScore
from skinscan.errors import ParseError, SchemaError


def parse_analysis_response(raw_text: str) -> AnalysisResult:
    """
    Parses the inference service output. Scores are passed through unchanged, the scoring bands are upstream's
    responsibility.

    Raises:
        ParseError: the text is not JSON, the raw text is attached as details.
        SchemaError: the JSON misses an attribute or an attribute is malformed.
    """
    try:
        data = json.loads(raw_text, parse_constant=_reject_constant)
    except (ValueError, TypeError) as e:
        raise ParseError(f"Failed to parse analysis results: {e}", details=raw_text) from e

    if not isinstance(data, dict):
        raise SchemaError("Incomplete analysis results: expected a JSON object", details=raw_text)

    missing = [name for name in ATTRIBUTES if name not in data]
    if missing:
        raise SchemaError(f"Incomplete analysis results, missing: {', '.join(missing)}", details=raw_text)

    scores = {name: _build_score(name, data[name], raw_text) for name in ATTRIBUTES}
    return AnalysisResult(scores=scores)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def _build_score(name: str, raw: Any, raw_text: str) -> AttributeScore:
    if not isinstance(raw, dict):
        raise SchemaError(f"Incomplete analysis results: '{name}' must be an object", details=raw_text)

    score = raw.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise SchemaError(f"Incomplete analysis results: '{name}.score' must be a number", details=raw_text)
    if isinstance(score, float) and not math.isfinite(score):
        raise SchemaError(f"Incomplete analysis results: '{name}.score' must be finite", details=raw_text)

    explanation = raw.get("explanation")
    if not isinstance(explanation, str):
        raise SchemaError(f"Incomplete analysis results: '{name}.explanation' must be a string", details=raw_text)

    return AttributeScore(score=score, explanation=explanation)
