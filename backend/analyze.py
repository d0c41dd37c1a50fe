"""
Model answer parsing for the chart analysis relay.

The model is asked for a JSON object but answers in free text, sometimes with
the object inside a ```json fenced block. ``extract_analysis`` pulls the object
out and reports success or failure explicitly, so the relay's fallback policy
can be exercised without any network code.
"""
import json
import re
from dataclasses import dataclass, field
from typing import Union

_FENCED_JSON = re.compile(r"```json\n?([\s\S]*?)\n?```")
_BRACE_SPAN = re.compile(r"\{[\s\S]*\}")

FALLBACK_REASONS = [
    "Unable to parse AI analysis",
    "Please try uploading a clearer chart image",
]
FALLBACK_BEST_MOVE = "Please retry with a different chart image"


@dataclass(frozen=True)
class ParsedAnalysis:
    payload: dict


@dataclass(frozen=True)
class ParseFailure:
    error: str
    raw: str = field(repr=False, default="")


ExtractionResult = Union[ParsedAnalysis, ParseFailure]


def _reject_constant(name: str):
    # NaN and Infinity are not JSON and cannot be sent back out
    raise ValueError(f"non-standard JSON constant {name}")


def extract_json_text(text: str) -> str:
    """Return the candidate JSON text: fenced block, else brace span, else everything"""
    fenced = _FENCED_JSON.search(text)
    if fenced:
        return fenced.group(1)
    braces = _BRACE_SPAN.search(text)
    if braces:
        return braces.group(0)
    return text


def extract_analysis(text: str) -> ExtractionResult:
    if not isinstance(text, str):
        return ParseFailure(error=f"model answer is {type(text).__name__}, not text", raw=repr(text))
    try:
        payload = json.loads(extract_json_text(text), parse_constant=_reject_constant)
    except ValueError as e:
        return ParseFailure(error=str(e), raw=text)
    if not isinstance(payload, dict):
        return ParseFailure(error=f"expected a JSON object, got {type(payload).__name__}", raw=text)
    return ParsedAnalysis(payload=payload)


def fallback_analysis() -> dict:
    return {
        "bias": "ranging",
        "confidence": 0,
        "reasons": list(FALLBACK_REASONS),
        "best_move": FALLBACK_BEST_MOVE,
        "parse_failed": True,
    }
