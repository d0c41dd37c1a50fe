from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional

import httpx
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas as pdf_canvas

from frontend.export_utils import ExportError, export_path, fetch_chart_image, report_date
from frontend.models import ChartAnalysis

logger = logging.getLogger(__name__)

PAGE_WIDTH_MM = A4[0] / mm
PAGE_HEIGHT_MM = A4[1] / mm
MARGIN_MM = 20
PAGE_BREAK_Y_MM = 270
IMAGE_HEIGHT_MM = 100
LINE_HEIGHT_MM = 6

_INLINE_CURRENCY_MAP = {
    "₹": "INR ",
    "€": "EUR ",
    "£": "GBP ",
    "¥": "JPY ",
}


def _sanitize_text(text) -> str:
    cleaned = str(text if text is not None else "")
    for symbol, replacement in _INLINE_CURRENCY_MAP.items():
        cleaned = cleaned.replace(symbol, replacement)
    cleaned = cleaned.replace("•", "*")
    # Keep ASCII for safer built-in PDF fonts.
    cleaned = cleaned.encode("ascii", "ignore").decode("ascii")
    return cleaned


class _Page:
    """Canvas plus a top-down cursor in millimetres"""

    def __init__(self, target):
        self.canvas = pdf_canvas.Canvas(target, pagesize=A4)
        self.y = MARGIN_MM
        self.page = 1
        self.size = 10
        self.bold = False

    def _baseline(self) -> float:
        return A4[1] - self.y * mm

    def font(self, size: float, bold: bool = False) -> None:
        self.canvas.setFont("Helvetica-Bold" if bold else "Helvetica", size)
        self.size = size
        self.bold = bold

    def new_page(self) -> None:
        _footer(self.canvas, self.page)
        self.canvas.showPage()
        self.page += 1
        self.y = MARGIN_MM
        self.font(self.size, self.bold)

    def centered(self, text: str) -> None:
        self.canvas.drawCentredString(A4[0] / 2, self._baseline(), _sanitize_text(text))

    def left(self, text: str) -> None:
        self.canvas.drawString(MARGIN_MM * mm, self._baseline(), _sanitize_text(text))

    def wrapped(self, text: str, step: float) -> None:
        font_name = "Helvetica-Bold" if self.bold else "Helvetica"
        width = (PAGE_WIDTH_MM - 2 * MARGIN_MM) * mm
        for line in simpleSplit(_sanitize_text(text), font_name, self.size, width) or [""]:
            if self.y > PAGE_BREAK_Y_MM:
                self.new_page()
            self.left(line)
            self.y += step

    def image(self, data: bytes) -> None:
        reader = ImageReader(io.BytesIO(data))
        if self.y + 10 + IMAGE_HEIGHT_MM > PAGE_HEIGHT_MM - MARGIN_MM / 2:
            self.new_page()
        self.y += 10
        self.left("Chart Image:")
        self.y += 10
        width = (PAGE_WIDTH_MM - 2 * MARGIN_MM) * mm
        bottom = A4[1] - (self.y + IMAGE_HEIGHT_MM) * mm
        self.canvas.drawImage(
            reader, MARGIN_MM * mm, bottom, width=width, height=IMAGE_HEIGHT_MM * mm,
            preserveAspectRatio=True, anchor="nw",
        )
        self.y += IMAGE_HEIGHT_MM

    def finish(self) -> None:
        _footer(self.canvas, self.page)
        self.canvas.save()


def _footer(canvas, page: int) -> None:
    canvas.saveState()
    canvas.setFont("Helvetica", 8)
    canvas.setFillColor(colors.HexColor("#6b7280"))
    canvas.drawRightString(A4[0] - MARGIN_MM * mm, 10 * mm, f"Chart Vision Analysis Report | Page {page}")
    canvas.restoreState()


async def export_as_pdf(
    analysis: ChartAnalysis,
    output_dir: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Path:
    """
    Render one stored analysis as analysis-<id>.pdf

    The chart image is embedded when it can be fetched and decoded; otherwise
    the error is logged and the report is produced without it.
    """
    buffer = io.BytesIO()
    page = _Page(buffer)

    page.font(20, bold=True)
    page.centered("Chart Analysis Report")
    page.y += 15

    page.font(10)
    page.centered(f"Generated: {report_date(analysis)}")
    page.y += 15

    page.font(16, bold=True)
    page.left(f"Bias: {analysis.get('bias', '')}")
    page.y += 10

    page.font(14)
    page.left(f"Confidence: {analysis.get('confidence', 0)}%")
    page.y += 10

    page.wrapped(f"Best Move: {analysis.get('best_move', '')}", step=7)
    page.y += 8

    page.font(12, bold=True)
    page.left("Analysis Reasons:")
    page.y += 8

    page.font(10)
    reasons = analysis.get("reasons")
    reasons = reasons if isinstance(reasons, list) else []
    for index, reason in enumerate(reasons, start=1):
        page.wrapped(f"{index}. {reason}", step=LINE_HEIGHT_MM)

    image_url = analysis.get("image_url")
    if image_url:
        try:
            data = await fetch_chart_image(image_url, transport=transport)
            page.image(data)
        except Exception as e:
            logger.error(f"Error loading image for PDF export: {type(e).__name__}: {e}")

    page.finish()

    output_path = export_path(analysis, "pdf", output_dir)
    try:
        output_path.write_bytes(buffer.getvalue())
    except OSError as e:
        raise ExportError(f"Could not write {output_path}: {e}") from e
    logger.info(f"PDF exported to {output_path}")
    return output_path
