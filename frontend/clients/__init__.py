"""
Backend Clients for Chart Vision
Provides clean interfaces to the relay, auth and history endpoints
"""

from .backend_client import BackendClient, BackendError, get_backend_client
from .analysis_client import AnalysisClient, AnalysisFailed, NoImageSelected
from .persistence_client import PersistenceClient

__all__ = [
    # Classes
    'BackendClient',
    'AnalysisClient',
    'PersistenceClient',

    # Errors
    'BackendError',
    'AnalysisFailed',
    'NoImageSelected',

    # Singleton getters
    'get_backend_client',
]
