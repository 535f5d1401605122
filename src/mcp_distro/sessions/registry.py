"""Registry of live sessions, including plain host shells."""
import os
from typing import Dict, List, Optional, Tuple

from fuuid import b58_fuuid

from mcp_distro.distros.launcher import SessionFactory
from mcp_distro.errors import UnknownSessionError
from mcp_distro.logging import get_logger
from mcp_distro.sessions.session import ProcessSession, create_session
from mcp_distro.settings import Settings
from mcp_distro.types import SessionState

logger = get_logger(__name__)


def host_environment(settings: Settings) -> List[str]:
    """Baseline environment for a host shell."""
    return [
        f"HOME={settings.home_dir}",
        "TERM=xterm-256color",
        "COLORTERM=truecolor",
        f"TMPDIR={settings.cache_dir}",
        f"PATH={os.environ.get('PATH', '/usr/local/bin:/usr/bin:/bin')}",
        "LANG=en_US.UTF-8",
    ]


class SessionRegistry:
    """Live sessions by id.

    Finished sessions stay readable until the next registration or listing,
    which drops them.
    """

    def __init__(self, settings: Settings, session_factory: SessionFactory = create_session):
        self._settings = settings
        self._session_factory = session_factory
        self._sessions: Dict[str, ProcessSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def prune(self) -> List[str]:
        """Forget sessions whose process has finished; returns their ids."""
        finished = [
            session_id
            for session_id, session in self._sessions.items()
            if session.state is SessionState.FINISHED
        ]
        for session_id in finished:
            del self._sessions[session_id]
        if finished:
            logger.debug("sessions_pruned", session_ids=finished, count=len(self._sessions))
        return finished

    def add(self, session: ProcessSession) -> str:
        self.prune()
        session_id = b58_fuuid()
        self._sessions[session_id] = session
        logger.debug("session_registered", session_id=session_id, count=len(self._sessions))
        return session_id

    async def create_host_session(self) -> Tuple[str, ProcessSession]:
        """Start the host shell in the app home directory."""
        self._settings.home_dir.mkdir(parents=True, exist_ok=True)
        self._settings.cache_dir.mkdir(parents=True, exist_ok=True)

        session = await self._session_factory(
            self._settings.host_shell,
            str(self._settings.home_dir),
            [],
            host_environment(self._settings),
        )
        return self.add(session), session

    def get(self, session_id: str) -> Optional[ProcessSession]:
        return self._sessions.get(session_id)

    def require(self, session_id: str) -> ProcessSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise UnknownSessionError(session_id)
        return session

    def items(self) -> List[Tuple[str, ProcessSession]]:
        self.prune()
        return list(self._sessions.items())

    async def remove(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise UnknownSessionError(session_id)
        await session.finish()
        logger.debug("session_removed", session_id=session_id, count=len(self._sessions))

    async def close_all(self) -> None:
        for session_id, session in list(self._sessions.items()):
            await session.finish()
            self._sessions.pop(session_id, None)
