import json

import httpx

from backend.vision_helper import QUOTA_EXCEEDED_MESSAGE, RATE_LIMIT_MESSAGE
from conftest import chat_completion

DATA_URL = "data:image/png;base64,iVBORw0KGgo="


def test_missing_image_is_rejected(api, upstream):
    response = api.post("/api/analyze-chart", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "No image provided"}
    assert upstream.requests == []


def test_malformed_body_is_a_bad_request(api, upstream):
    response = api.post("/api/analyze-chart", content=b"not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert "error" in response.json()


def test_missing_api_key(api, upstream):
    upstream.api_key = None
    response = api.post("/api/analyze-chart", json={"image": DATA_URL})
    assert response.status_code == 500
    assert response.json() == {"error": "AI service not configured"}


def test_successful_answer_is_passed_through(api, upstream):
    analysis = {
        "bias": "bullish",
        "confidence": 78,
        "reasons": ["Higher highs", "Liquidity swept below lows", "Bullish FVG filled"],
        "best_move": "Long on retest of the order block",
    }
    upstream.respond = lambda request: chat_completion(f"```json\n{json.dumps(analysis)}\n```")

    response = api.post("/api/analyze-chart", json={"image": DATA_URL})

    assert response.status_code == 200
    assert response.json() == analysis


def test_request_sent_to_gateway(api, upstream):
    upstream.respond = lambda request: chat_completion('{"bias": "ranging", "confidence": 40, "reasons": [], "best_move": "Wait"}')

    api.post("/api/analyze-chart", json={"image": DATA_URL})

    assert len(upstream.requests) == 1
    sent = upstream.requests[0]
    assert sent.headers["Authorization"] == "Bearer test-key"
    body = json.loads(sent.content)
    assert body["model"] == "google/gemini-2.5-flash"
    system, user = body["messages"]
    assert system["role"] == "system"
    assert "Smart Money Concepts" in system["content"]
    assert user["content"][0]["type"] == "text"
    assert user["content"][1] == {"type": "image_url", "image_url": {"url": DATA_URL}}


def test_unparseable_answer_returns_fallback(api, upstream):
    upstream.respond = lambda request: chat_completion("The chart looks choppy, hard to say.")

    response = api.post("/api/analyze-chart", json={"image": DATA_URL})

    assert response.status_code == 200
    body = response.json()
    assert body["bias"] == "ranging"
    assert body["confidence"] == 0
    assert body["reasons"] == ["Unable to parse AI analysis", "Please try uploading a clearer chart image"]
    assert body["parse_failed"] is True


def test_rate_limit_maps_to_429(api, upstream):
    upstream.respond = lambda request: httpx.Response(429, text="slow down")
    response = api.post("/api/analyze-chart", json={"image": DATA_URL})
    assert response.status_code == 429
    assert response.json() == {"error": RATE_LIMIT_MESSAGE}


def test_quota_maps_to_402_with_a_different_message(api, upstream):
    upstream.respond = lambda request: httpx.Response(402, text="payment required")
    response = api.post("/api/analyze-chart", json={"image": DATA_URL})
    assert response.status_code == 402
    assert response.json() == {"error": QUOTA_EXCEEDED_MESSAGE}
    assert QUOTA_EXCEEDED_MESSAGE != RATE_LIMIT_MESSAGE


def test_no_automatic_retry_on_rate_limit(api, upstream):
    upstream.respond = lambda request: httpx.Response(429)
    api.post("/api/analyze-chart", json={"image": DATA_URL})
    assert len(upstream.requests) == 1


def test_other_upstream_errors_map_to_500(api, upstream):
    upstream.respond = lambda request: httpx.Response(503, text="unavailable")
    response = api.post("/api/analyze-chart", json={"image": DATA_URL})
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to analyze chart"}


def test_unreachable_gateway_maps_to_500(api, upstream):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    upstream.respond = refuse
    response = api.post("/api/analyze-chart", json={"image": DATA_URL})
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to analyze chart"}


def test_unexpected_gateway_body_maps_to_500(api, upstream):
    upstream.respond = lambda request: httpx.Response(200, json={"choices": []})
    response = api.post("/api/analyze-chart", json={"image": DATA_URL})
    assert response.status_code == 500


def test_nan_in_answer_returns_fallback(api, upstream):
    upstream.respond = lambda request: chat_completion(
        '{"bias": "bullish", "confidence": NaN, "reasons": ["HH"], "best_move": "Long"}'
    )

    response = api.post("/api/analyze-chart", json={"image": DATA_URL})

    assert response.status_code == 200
    assert response.json()["parse_failed"] is True
    assert response.json()["bias"] == "ranging"
