from dataclasses import dataclass
from typing import List, Literal, TypedDict

Bias = Literal["bullish", "bearish", "ranging"]
BIAS_FILTERS = ("all", "bullish", "bearish", "ranging")


class AnalysisResult(TypedDict, total=False):
    bias: str
    confidence: float
    reasons: List[str]
    best_move: str
    parse_failed: bool


class ChartAnalysis(AnalysisResult, total=False):
    id: str
    image_url: str
    created_at: str


@dataclass(frozen=True)
class ImageFile:
    """An image held in memory: name, declared MIME type and raw bytes"""
    name: str
    content_type: str
    data: bytes

    @property
    def is_image(self) -> bool:
        return (self.content_type or "").startswith("image/")
