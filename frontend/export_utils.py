import logging
from pathlib import Path
from typing import Optional

import httpx

from frontend.config import config
from frontend.models import ChartAnalysis
from frontend.presenter import parse_timestamp

logger = logging.getLogger(__name__)

IMAGE_FETCH_TIMEOUT = 30.0


class ExportError(Exception):
    """An export could not be produced"""


def export_path(analysis: ChartAnalysis, extension: str, output_dir: Optional[str] = None) -> Path:
    """analysis-<first 8 chars of id>.<ext> inside the export directory"""
    directory = Path(output_dir or config.EXPORT_DIR)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ExportError(f"Cannot create export directory {directory}: {e}") from e
    short_id = str(analysis.get("id", ""))[:8] or "unknown"
    return directory / f"analysis-{short_id}.{extension}"


def report_date(analysis: ChartAnalysis) -> str:
    created_at = parse_timestamp(analysis.get("created_at"))
    if created_at is None:
        return ""
    if created_at.tzinfo:
        created_at = created_at.astimezone()
    return created_at.strftime("%x")


async def fetch_chart_image(url: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> bytes:
    async with httpx.AsyncClient(timeout=IMAGE_FETCH_TIMEOUT, transport=transport, follow_redirects=True) as client:
        response = await client.get(url)
        response.raise_for_status()
        return response.content
