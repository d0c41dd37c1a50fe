"""
Vision Gateway Helper
Forwards chart images to a hosted multimodal model through an
OpenAI-compatible chat-completions gateway
"""
import logging
from typing import Optional
from fastapi import HTTPException, status
import httpx
from backend.config import AI_GATEWAY_API_KEY, AI_GATEWAY_URL, AI_GATEWAY_TIMEOUT, VISION_MODEL
from backend.prompts import CHART_ANALYST_SYSTEM_PROMPT, CHART_ANALYSIS_USER_PROMPT

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again in a moment."
QUOTA_EXCEEDED_MESSAGE = "AI service quota exceeded. Please add credits to your workspace."
ANALYSIS_FAILED_MESSAGE = "Failed to analyze chart"

# =========================
# VISION GATEWAY
# =========================


class VisionGateway:
    """
    Client for the AI gateway
    One request per chart, no retries
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: str = AI_GATEWAY_URL,
        model: str = VISION_MODEL,
        timeout: float = AI_GATEWAY_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.url = url
        self.model = model
        self.timeout = timeout
        self._transport = transport

    def build_payload(self, image: str) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": CHART_ANALYST_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": CHART_ANALYSIS_USER_PROMPT},
                        {"type": "image_url", "image_url": {"url": image}},
                    ],
                },
            ],
        }

    async def query_chart(self, image: str) -> str:
        """
        Send one chart image to the model

        Args:
            image: The chart as a base64 data URL

        Returns:
            The model's free-text answer

        Raises:
            HTTPException: 429 on rate limit, 402 on exhausted quota, 500 otherwise
        """
        if not self.api_key:
            logger.error("AI_GATEWAY_API_KEY not configured")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="AI service not configured"
            )

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.url,
                    headers=headers,
                    json=self.build_payload(image),
                )
        except httpx.TimeoutException:
            logger.error("AI gateway timeout")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=ANALYSIS_FAILED_MESSAGE
            )
        except httpx.HTTPError as e:
            logger.error(f"AI gateway HTTP error: {type(e).__name__}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=ANALYSIS_FAILED_MESSAGE
            )

        if response.status_code != 200:
            logger.error(f"AI gateway error: {response.status_code} {response.text[:500]}")
            if response.status_code == 429:
                raise HTTPException(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    detail=RATE_LIMIT_MESSAGE
                )
            if response.status_code == 402:
                raise HTTPException(
                    status_code=status.HTTP_402_PAYMENT_REQUIRED,
                    detail=QUOTA_EXCEEDED_MESSAGE
                )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=ANALYSIS_FAILED_MESSAGE
            )

        try:
            body = response.json()
            return body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected AI gateway response structure: {type(e).__name__}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=ANALYSIS_FAILED_MESSAGE
            )


def get_vision_gateway() -> VisionGateway:
    """FastAPI dependency returning a gateway bound to the configured key"""
    return VisionGateway(api_key=AI_GATEWAY_API_KEY)
