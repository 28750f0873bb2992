"""Connection lifecycle for the directory and mailbox services."""
from __future__ import annotations

from typing import Any, List, Sequence

from .errors import FatalError
from .logger import RunLogger


class SessionManager:
    """Connects to each service in order and tears the sessions down at the end.

    A session is any object exposing ``name``, ``connect()``, ``disconnect()``
    and a ``connected`` flag.
    """

    def __init__(self, sessions: Sequence[Any], logger: RunLogger) -> None:
        self._sessions: List[Any] = list(sessions)
        self._logger = logger

    def connect_all(self) -> None:
        for session in self._sessions:
            self._logger.log(f"Connecting to {session.name}...")
            try:
                session.connect()
            except Exception as exc:
                self._logger.error(f"Failed to connect to {session.name}: {exc}")
                self._release_connected()
                raise FatalError(f"Unable to connect to {session.name}: {exc}") from exc
            self._logger.log(f"Connected to {session.name}.")

    def disconnect_all(self) -> None:
        for session in self._sessions:
            if not session.connected:
                continue
            try:
                session.disconnect()
                self._logger.log(f"Disconnected from {session.name}.")
            except Exception as exc:
                self._logger.warning(f"Failed to disconnect from {session.name}: {exc}")

    def _release_connected(self) -> None:
        for session in self._sessions:
            if not session.connected:
                continue
            try:
                session.disconnect()
                self._logger.log(f"Released session to {session.name} after connection failure.")
            except Exception as exc:
                self._logger.warning(f"Failed to disconnect from {session.name}: {exc}")


__all__ = ["SessionManager"]
