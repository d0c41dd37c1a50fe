"""
Backend API Client
Client for the Chart Vision FastAPI backend: auth and stored analyses
"""

import json
import httpx
from typing import Dict, List, Optional

from frontend.config import config
from frontend.models import AnalysisResult, ChartAnalysis, ImageFile


class BackendError(Exception):
    """Non-success answer from the backend"""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def unauthorized(self) -> bool:
        return self.status_code == 401


def error_message(response: httpx.Response, default: str) -> str:
    """Read the {"error": ...} field of an error body, if there is one"""
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return default


class BackendClient:
    """
    Client for the Chart Vision backend
    Calls auth and history endpoints
    """

    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or config.BACKEND_URL).rstrip("/")
        self.timeout = 30.0
        self._transport = transport
        self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of async client"""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self):
        """Close the HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _auth(token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    async def _request(self, method: str, path: str, default_error: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.HTTPError as e:
            raise BackendError(0, f"{default_error}: {type(e).__name__}") from e
        if response.is_error:
            raise BackendError(response.status_code, error_message(response, default_error))
        return response

    async def health_check(self) -> Dict:
        response = await self._request("GET", "/api/health", "Backend health check failed")
        return response.json()

    async def is_available(self) -> bool:
        """Check if backend is available (non-throwing)"""
        try:
            await self.health_check()
            return True
        except BackendError:
            return False

    # ----- auth -----

    async def sign_up(self, email: str, password: str) -> Dict:
        """
        Create an account

        Returns:
            {"token": "<jwt>", "user": {"id": "...", "email": "..."}}
        """
        response = await self._request(
            "POST", "/api/auth/signup", "Sign up failed",
            json={"email": email, "password": password},
        )
        return response.json()

    async def sign_in(self, email: str, password: str) -> Dict:
        response = await self._request(
            "POST", "/api/auth/login", "Sign in failed",
            json={"email": email, "password": password},
        )
        return response.json()

    async def me(self, token: str) -> Dict:
        response = await self._request("GET", "/api/auth/me", "Session check failed", headers=self._auth(token))
        return response.json()

    # ----- analyses -----

    async def save_analysis(self, token: str, image: ImageFile, result: AnalysisResult) -> ChartAnalysis:
        """
        Upload the chart image together with its analysis

        Returns:
            The stored record, including id, image_url and created_at
        """
        form = {
            "bias": str(result.get("bias", "")),
            "confidence": str(result.get("confidence", 0)),
            "reasons": json.dumps(list(result.get("reasons") or [])),
            "best_move": str(result.get("best_move", "")),
            "parse_failed": "true" if result.get("parse_failed") else "false",
        }
        response = await self._request(
            "POST", "/api/analyses", "Failed to save analysis",
            headers=self._auth(token),
            data=form,
            files={"image": (image.name, image.data, image.content_type)},
        )
        return response.json()

    async def list_analyses(self, token: str) -> List[ChartAnalysis]:
        """All analyses of the signed-in user, newest first"""
        response = await self._request("GET", "/api/analyses", "Failed to load analyses", headers=self._auth(token))
        return response.json()

    async def get_analysis(self, token: str, analysis_id: str) -> ChartAnalysis:
        response = await self._request(
            "GET", f"/api/analyses/{analysis_id}", "Failed to load analysis", headers=self._auth(token)
        )
        return response.json()

    async def delete_analysis(self, token: str, analysis_id: str) -> None:
        await self._request(
            "DELETE", f"/api/analyses/{analysis_id}", "Failed to delete analysis", headers=self._auth(token)
        )


# Singleton instance
_backend_client = None

def get_backend_client() -> BackendClient:
    """Get singleton Backend client instance"""
    global _backend_client
    if _backend_client is None:
        _backend_client = BackendClient()
    return _backend_client
