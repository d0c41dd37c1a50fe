"""
History Browser
Loads the signed-in user's analyses, filters them by bias, deletes on confirmation
"""
import logging
from typing import Callable, List

from frontend.clients.backend_client import BackendClient, BackendError
from frontend.models import BIAS_FILTERS, ChartAnalysis
from frontend.session import SessionContext, SignInRequired

logger = logging.getLogger(__name__)


class HistoryBrowser:
    def __init__(self, backend: BackendClient, session: SessionContext):
        self.backend = backend
        self.session = session
        self.analyses: List[ChartAnalysis] = []
        self.loading = False
        self._bias_filter = "all"

    @property
    def bias_filter(self) -> str:
        return self._bias_filter

    @bias_filter.setter
    def bias_filter(self, value: str) -> None:
        if value not in BIAS_FILTERS:
            raise ValueError(f"Unknown bias filter {value!r}; expected one of {', '.join(BIAS_FILTERS)}")
        self._bias_filter = value

    @property
    def visible(self) -> List[ChartAnalysis]:
        """Loaded analyses matching the active filter, in load order"""
        if self._bias_filter == "all":
            return list(self.analyses)
        return [a for a in self.analyses if a.get("bias") == self._bias_filter]

    async def load(self) -> List[ChartAnalysis]:
        """
        Fetch every analysis of the current user, newest first

        Raises:
            SignInRequired: when nobody is signed in or the token was rejected
        """
        current = self.session.require()
        self.loading = True
        try:
            self.analyses = await self.backend.list_analyses(current.token)
        except BackendError as e:
            if e.unauthorized:
                self.session.sign_out()
                raise SignInRequired("Session expired, please sign in again") from e
            raise
        finally:
            self.loading = False
        return self.analyses

    async def delete(self, analysis_id: str, confirm: Callable[[], bool]) -> bool:
        """
        Delete one analysis once ``confirm()`` returns True

        Returns:
            False when the user declined, True once the record is gone
        """
        if not confirm():
            return False
        current = self.session.require()
        await self.backend.delete_analysis(current.token, analysis_id)
        self.analyses = [a for a in self.analyses if a.get("id") != analysis_id]
        logger.info(f"Deleted analysis {analysis_id}")
        return True
