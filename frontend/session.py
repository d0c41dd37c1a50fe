"""
Session context for the terminal client.

Holds the signed-in user and notifies subscribers whenever it changes. Use it
as an async context manager: entering restores a saved session, leaving drops
every subscriber and closes the HTTP client.

    async with SessionContext(backend) as session:
        unsubscribe = session.subscribe(on_change)
        await session.sign_in(email, password)
"""
import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, List, Optional

from frontend.clients.backend_client import BackendClient, BackendError
from frontend.config import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    user_id: str
    email: str
    token: str


Listener = Callable[[Optional[Session]], None]


class SignInRequired(Exception):
    """Raised by screens that need a signed-in user"""


class SessionContext:
    def __init__(self, backend: BackendClient, session_file: Optional[str] = None):
        self.backend = backend
        self.session_file = Path(session_file or config.SESSION_FILE)
        self._current: Optional[Session] = None
        self._listeners: List[Listener] = []

    @property
    def current(self) -> Optional[Session]:
        return self._current

    def require(self) -> Session:
        if self._current is None:
            raise SignInRequired("Please sign in to continue")
        return self._current

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, session: Optional[Session]) -> None:
        self._current = session
        for listener in list(self._listeners):
            listener(session)

    # ----- lifecycle -----

    async def __aenter__(self) -> "SessionContext":
        await self.restore()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._listeners.clear()
        await self.backend.close()

    async def restore(self) -> Optional[Session]:
        """Load the saved token and keep it only if the backend still accepts it"""
        if not self.session_file.exists():
            return None
        try:
            saved = Session(**json.loads(self.session_file.read_text()))
        except (ValueError, TypeError):
            logger.warning(f"Ignoring unreadable session file {self.session_file}")
            self._forget()
            return None
        try:
            await self.backend.me(saved.token)
        except BackendError as e:
            if e.unauthorized:
                logger.info("Saved session expired")
                self._forget()
            else:
                logger.warning(f"Could not validate saved session: {e.message}")
            return None
        self._set(saved)
        return saved

    # ----- auth flows -----

    async def sign_up(self, email: str, password: str) -> Session:
        return self._adopt(await self.backend.sign_up(email, password))

    async def sign_in(self, email: str, password: str) -> Session:
        return self._adopt(await self.backend.sign_in(email, password))

    def sign_out(self) -> None:
        self._forget()
        self._set(None)

    def _adopt(self, auth: dict) -> Session:
        session = Session(user_id=auth["user"]["id"], email=auth["user"]["email"], token=auth["token"])
        self.session_file.parent.mkdir(parents=True, exist_ok=True)
        self.session_file.write_text(json.dumps(asdict(session)))
        self._set(session)
        return session

    def _forget(self) -> None:
        self.session_file.unlink(missing_ok=True)
