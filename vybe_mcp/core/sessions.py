"""Conversation context for generative methods."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List

logger = logging.getLogger(__name__)

Turn = Dict[str, str]

MAX_TURNS = 10


def truncate(turns: List[Turn], max_turns: int = MAX_TURNS) -> List[Turn]:
    """Cap history length, keeping the first turn as anchor plus the most recent ones."""
    if len(turns) <= max_turns:
        return list(turns)
    return [turns[0], *turns[-(max_turns - 1):]]


class SessionStore(ABC):
    """Per-session turn history.

    Generative handlers read the prior turns, call the provider, then write
    the whole truncated sequence back. Two concurrent calls on one session
    race on that read-modify-write and the later writer wins; the stored
    value is always a complete list.
    """

    @abstractmethod
    async def get(self, session_id: str) -> List[Turn]:
        ...

    @abstractmethod
    async def save(self, session_id: str, turns: List[Turn]) -> None:
        ...

    @abstractmethod
    async def clear(self, session_id: str) -> bool:
        """Remove a session. Clearing an unknown session is not an error."""
        ...

    @abstractmethod
    async def count(self) -> int:
        ...

    async def append_turn(self, session_id: str, user_content: str) -> List[Turn]:
        """Return the turns stored before this user message (empty for a new session)."""
        prior = await self.get(session_id)
        logger.debug(f"Session {session_id}: {len(prior)} prior turns before new prompt")
        return prior

    def truncate(self, turns: List[Turn]) -> List[Turn]:
        return truncate(turns)


class InMemorySessionStore(SessionStore):
    """Process-lifetime session map. Sessions never expire on their own."""

    def __init__(self) -> None:
        self._sessions: Dict[str, List[Turn]] = {}

    async def get(self, session_id: str) -> List[Turn]:
        return [dict(turn) for turn in self._sessions.get(session_id, [])]

    async def save(self, session_id: str, turns: List[Turn]) -> None:
        self._sessions[session_id] = truncate(turns)

    async def clear(self, session_id: str) -> bool:
        existed = self._sessions.pop(session_id, None) is not None
        logger.debug(f"Cleared session {session_id} (existed={existed})")
        return existed

    async def count(self) -> int:
        return len(self._sessions)
