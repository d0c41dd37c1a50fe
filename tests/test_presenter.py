from datetime import datetime, timezone

from frontend.presenter import HistoryCard, ResultPanel, bias_style


def test_bias_styles():
    assert bias_style("bullish").icon == "▲"
    assert bias_style("bullish").color == "green"
    assert bias_style("Bearish").color == "red"
    assert bias_style("ranging").icon == "■"
    # unknown values fall through to the ranging style
    assert bias_style("sideways").color == "yellow"
    assert bias_style(None).label == "ranging"


def test_result_panel():
    panel = ResultPanel.from_result(
        {"bias": "bullish", "confidence": 78, "reasons": ["HH/HL", "Swept lows"], "best_move": "Long the retest"}
    )
    assert panel.style.color == "green"
    assert panel.confidence == "78"
    assert panel.confidence_bar_width == "78%"
    assert panel.confidence_bar().count("█") == 23

    text = panel.render(color=False)
    assert "▲ Bullish" in text
    assert "Confidence: 78%" in text
    assert "  • Swept lows" in text
    assert "Long the retest" in text
    assert "could not be read" not in text


def test_result_panel_clamps_confidence_and_flags_fallback():
    panel = ResultPanel.from_result({"bias": "ranging", "confidence": 140, "parse_failed": True})
    assert panel.confidence_bar_width == "100%"
    assert panel.reasons == []
    assert "could not be read" in panel.render(color=False)

    assert ResultPanel.from_result({"confidence": "n/a"}).confidence_bar_width == "0%"


def test_colors_can_be_disabled():
    panel = ResultPanel.from_result({"bias": "bearish", "confidence": 60})
    assert "\033[31m" in panel.render(color=True)
    assert "\033[" not in panel.render(color=False)


def test_history_card():
    created = datetime(2025, 3, 1, 12, 30, tzinfo=timezone.utc)
    card = HistoryCard.from_record(
        {
            "id": "0123456789abcdef",
            "bias": "bearish",
            "confidence": 64,
            "reasons": ["LH/LL", "Bearish order block", "Liquidity above"],
            "created_at": created.isoformat(),
        }
    )
    assert card.confidence == "64.00"
    assert card.key_points == ["LH/LL", "Bearish order block"]
    local = created.astimezone()
    assert card.created == f"{local.strftime('%x')} at {local.strftime('%X')}"

    text = card.render(color=False)
    assert text.startswith("[01234567] ▼ Bearish - 64.00% confidence")
    assert "Liquidity above" not in text
