"""
Persistence Client
Best-effort storage of a finished analysis; never raises
"""

import logging
from typing import Optional

from frontend.clients.backend_client import BackendClient, BackendError
from frontend.models import AnalysisResult, ChartAnalysis, ImageFile

logger = logging.getLogger(__name__)


class PersistenceClient:
    def __init__(self, backend: BackendClient, session):
        self.backend = backend
        self.session = session

    async def save(self, image: ImageFile, result: AnalysisResult) -> Optional[ChartAnalysis]:
        """
        Upload the image and insert the record for the signed-in user

        Failures are logged and swallowed; nothing is rolled back.
        """
        current = self.session.current
        if current is None:
            logger.info("Not signed in - analysis not saved")
            return None
        try:
            record = await self.backend.save_analysis(current.token, image, result)
        except BackendError as e:
            logger.error(f"Error saving analysis: {e.message}")
            return None
        except Exception:
            logger.exception("Unexpected error saving analysis")
            return None
        logger.info(f"Analysis saved as {record.get('id')}")
        return record
