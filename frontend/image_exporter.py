"""
PNG export of a stored analysis.

The report card is laid out at CSS-like sizes (800px wide, 40px padding) and
rasterized at SCALE times that density with Pillow.
"""
from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import httpx
from PIL import Image, ImageDraw, ImageFont, ImageOps

from frontend.export_utils import ExportError, export_path, fetch_chart_image, report_date
from frontend.models import ChartAnalysis

logger = logging.getLogger(__name__)

SCALE = 2
CARD_WIDTH = 800
PADDING = 40
PANEL_PADDING = 24

WHITE = (255, 255, 255)
INK = (26, 26, 26)
BODY = (51, 51, 51)
MUTED = (102, 102, 102)
PANEL = (245, 245, 245)
BIAS_COLORS = {
    "bullish": (34, 197, 94),
    "bearish": (239, 68, 68),
}
RANGING_COLOR = (234, 179, 8)


def _font(size: int) -> ImageFont.FreeTypeFont:
    return ImageFont.load_default(size=size * SCALE)


def _px(value: float) -> int:
    return int(round(value * SCALE))


def _wrap(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> List[str]:
    lines: List[str] = []
    for paragraph in str(text).splitlines() or [""]:
        current = ""
        for word in paragraph.split(" "):
            candidate = f"{current} {word}".strip()
            if current and draw.textlength(candidate, font=font) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate
        lines.append(current)
    return lines


def _line_height(font, spacing: float = 1.3) -> int:
    ascent, descent = font.getmetrics()
    return int((ascent + descent) * spacing)


def _draw_bias_icon(draw: ImageDraw.ImageDraw, bias: str, x: int, y: int, size: int) -> None:
    """Up triangle for bullish, down triangle for bearish, bar otherwise"""
    color = BIAS_COLORS.get(bias, RANGING_COLOR)
    if bias == "bullish":
        draw.polygon([(x, y + size), (x + size // 2, y), (x + size, y + size)], fill=color)
    elif bias == "bearish":
        draw.polygon([(x, y), (x + size, y), (x + size // 2, y + size)], fill=color)
    else:
        draw.rectangle([x, y + size * 2 // 5, x + size, y + size * 3 // 5], fill=color)


class _Layout:
    """Measures and draws the report; the same code runs for both passes"""

    def __init__(self, analysis: ChartAnalysis, chart: Optional[Image.Image]):
        self.analysis = analysis
        self.chart = chart
        self.bias = str(analysis.get("bias", "")).lower()
        self.fonts = {
            "title": _font(32),
            "date": _font(14),
            "bias": _font(28),
            "body": _font(18),
            "heading": _font(20),
            "reason": _font(16),
        }
        self.inner_width = _px(CARD_WIDTH - 2 * PADDING)

    def chart_size(self) -> Tuple[int, int]:
        if self.chart is None:
            return 0, 0
        width = self.inner_width
        height = max(1, int(self.chart.height * width / self.chart.width))
        return width, height

    def run(self, draw: ImageDraw.ImageDraw, canvas: Optional[Image.Image] = None) -> int:
        f = self.fonts
        left = _px(PADDING)
        y = _px(PADDING)
        center = _px(CARD_WIDTH) // 2

        draw.text((center, y), "Chart Analysis Report", font=f["title"], fill=INK, anchor="mt")
        y += _line_height(f["title"]) + _px(10)
        draw.text((center, y), report_date(self.analysis), font=f["date"], fill=MUTED, anchor="mt")
        y += _line_height(f["date"]) + _px(30)

        if self.chart is not None:
            width, height = self.chart_size()
            if canvas is not None:
                resized = self.chart.resize((width, height))
                try:
                    canvas.paste(resized, (left, y))
                finally:
                    resized.close()
            y += height + _px(30)

        panel_top = y
        inner_left = left + _px(PANEL_PADDING)
        text_width = self.inner_width - 2 * _px(PANEL_PADDING)
        y += _px(PANEL_PADDING)
        body_lines = (
            _wrap(draw, f"Confidence: {self.analysis.get('confidence', 0)}%", f["body"], text_width)
            + _wrap(draw, f"Best Move: {self.analysis.get('best_move', '')}", f["body"], text_width)
        )
        bias_height = _line_height(f["bias"])
        panel_bottom = (
            y + bias_height + _px(16) + len(body_lines) * _line_height(f["body"]) + _px(PANEL_PADDING)
        )
        if canvas is not None:
            draw.rounded_rectangle(
                [left, panel_top, left + self.inner_width, panel_bottom], radius=_px(12), fill=PANEL
            )
        icon = _px(28)
        _draw_bias_icon(draw, self.bias, inner_left, y + (bias_height - icon) // 2, icon)
        draw.text((inner_left + icon + _px(12), y), str(self.analysis.get("bias", "")), font=f["bias"], fill=INK)
        y += bias_height + _px(16)
        for line in body_lines:
            draw.text((inner_left, y), line, font=f["body"], fill=BODY)
            y += _line_height(f["body"])
        y = panel_bottom + _px(20)

        draw.text((left, y), "Analysis Reasons:", font=f["heading"], fill=INK)
        y += _line_height(f["heading"]) + _px(16)
        reasons = self.analysis.get("reasons")
        reasons = reasons if isinstance(reasons, list) else []
        number_width = _px(24)
        for index, reason in enumerate(reasons, start=1):
            draw.text((left, y), f"{index}.", font=f["reason"], fill=BODY)
            for line in _wrap(draw, reason, f["reason"], self.inner_width - number_width):
                draw.text((left + number_width, y), line, font=f["reason"], fill=BODY)
                y += _line_height(f["reason"], spacing=1.6)
            y += _px(12)

        return y + _px(PADDING)


def _decode_chart(data: bytes) -> Image.Image:
    with Image.open(io.BytesIO(data)) as raw:
        oriented = ImageOps.exif_transpose(raw)
        try:
            return oriented.convert("RGB")
        finally:
            if oriented is not raw:
                oriented.close()


async def export_as_image(
    analysis: ChartAnalysis,
    output_dir: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Path:
    """
    Render one stored analysis as analysis-<id>.png

    Raises:
        ExportError: if the PNG cannot be produced
    """
    chart: Optional[Image.Image] = None
    scratch: Optional[Image.Image] = None
    canvas: Optional[Image.Image] = None

    image_url = analysis.get("image_url")
    if image_url:
        try:
            chart = _decode_chart(await fetch_chart_image(image_url, transport=transport))
        except Exception as e:
            logger.error(f"Error loading image for PNG export: {type(e).__name__}: {e}")

    try:
        layout = _Layout(analysis, chart)
        # measuring pass on a 1x1 scratch image
        scratch = Image.new("RGB", (1, 1), WHITE)
        height = layout.run(ImageDraw.Draw(scratch))

        canvas = Image.new("RGB", (_px(CARD_WIDTH), height), WHITE)
        layout.run(ImageDraw.Draw(canvas), canvas)

        output_path = export_path(analysis, "png", output_dir)
        canvas.save(output_path, format="PNG")
    except ExportError:
        raise
    except Exception as e:
        raise ExportError(f"Failed to create image: {e}") from e
    finally:
        for temporary in (chart, scratch, canvas):
            if temporary is not None:
                temporary.close()

    logger.info(f"Image exported to {output_path}")
    return output_path
