import base64
import json

import httpx
import pytest

from frontend.clients.analysis_client import AnalysisClient, AnalysisFailed, NoImageSelected, to_data_url
from frontend.models import ImageFile

CHART = ImageFile(name="chart.png", content_type="image/png", data=b"\x89PNG-bytes")


def _client(handler):
    return AnalysisClient(base_url="http://backend.test/", transport=httpx.MockTransport(handler))


def test_to_data_url():
    encoded = base64.b64encode(b"\x89PNG-bytes").decode("ascii")
    assert to_data_url(CHART) == f"data:image/png;base64,{encoded}"


async def test_analyze_posts_data_url_and_returns_body():
    sent = []
    result = {"bias": "bullish", "confidence": 78, "reasons": ["HH"], "best_move": "Long"}

    def handler(request):
        sent.append(request)
        return httpx.Response(200, json=result)

    assert await _client(handler).analyze(CHART) == result
    assert len(sent) == 1
    assert str(sent[0].url) == "http://backend.test/api/analyze-chart"
    assert json.loads(sent[0].content) == {"image": to_data_url(CHART)}


async def test_no_image_is_refused_before_any_request():
    sent = []
    client = _client(lambda request: sent.append(request) or httpx.Response(200, json={}))
    with pytest.raises(NoImageSelected, match="Please upload an image first"):
        await client.analyze(None)
    assert sent == []


async def test_error_body_message_is_surfaced():
    client = _client(
        lambda request: httpx.Response(429, json={"error": "Rate limit exceeded. Please try again in a moment."})
    )
    with pytest.raises(AnalysisFailed, match="Rate limit exceeded"):
        await client.analyze(CHART)


async def test_error_without_body_uses_generic_message():
    client = _client(lambda request: httpx.Response(502, text="bad gateway"))
    with pytest.raises(AnalysisFailed, match="Analysis failed"):
        await client.analyze(CHART)


async def test_network_failure():
    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(AnalysisFailed, match="Failed to analyze chart"):
        await _client(refuse).analyze(CHART)
