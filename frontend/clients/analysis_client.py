"""
Analysis Gateway Client
Sends the selected chart to the backend relay and returns the analysis
"""

import base64
import logging
import httpx
from typing import Optional

from frontend.config import config
from frontend.models import AnalysisResult, ImageFile
from frontend.clients.backend_client import error_message

logger = logging.getLogger(__name__)

ANALYZE_PATH = "/api/analyze-chart"


class AnalysisFailed(Exception):
    """The relay answered with an error or could not be reached"""


class NoImageSelected(AnalysisFailed):
    pass


def to_data_url(image: ImageFile) -> str:
    encoded = base64.b64encode(image.data).decode("ascii")
    return f"data:{image.content_type};base64,{encoded}"


class AnalysisClient:
    """
    One POST per analysis: no retry, and no timeout of its own since the
    relay bounds the upstream call
    """

    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or config.BACKEND_URL).rstrip("/")
        self._transport = transport

    async def analyze(self, image: Optional[ImageFile]) -> AnalysisResult:
        """
        Analyze a chart image

        Returns:
            The relay's JSON body, passed through as-is:
            {"bias": "bullish", "confidence": 78, "reasons": [...], "best_move": "..."}

        Raises:
            NoImageSelected: if no image is given
            AnalysisFailed: on any non-success answer or network error
        """
        if image is None:
            raise NoImageSelected("Please upload an image first")

        payload = {"image": to_data_url(image)}
        try:
            async with httpx.AsyncClient(timeout=None, transport=self._transport) as client:
                response = await client.post(f"{self.base_url}{ANALYZE_PATH}", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Analysis request failed: {type(e).__name__}")
            raise AnalysisFailed("Failed to analyze chart") from e

        if response.is_error:
            message = error_message(response, "Analysis failed")
            logger.error(f"Analysis error {response.status_code}: {message}")
            raise AnalysisFailed(message)

        try:
            return response.json()
        except ValueError as e:
            raise AnalysisFailed("Analysis failed") from e
