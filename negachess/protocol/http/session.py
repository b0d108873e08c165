from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional

from ...config import SearchConfig
from ...engine.game import Game
from ...search.service import SearchService


@dataclass
class Session:
    """One game plus the search state that belongs to it.

    ``lock`` serializes anything that touches ``game.board``; the search
    mutates the board while it runs.
    """

    game: Game
    search: SearchService
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)


class InMemorySessionStore:
    """Thread-safe in-memory game session store.

    Responsibilities:
    - Create new sessions with unique `game_id`s
    - Retrieve existing sessions by `game_id`
    - Replace the game of a session, dropping its stale search table
    - Delete sessions
    """

    def __init__(self, search_config: Optional[SearchConfig] = None) -> None:
        self._lock = threading.RLock()
        self._sessions: Dict[str, Session] = {}
        self._search_config = search_config or SearchConfig()

    def create(self, game: Optional[Game] = None) -> str:
        """Create a new game session and return its `game_id`."""
        gid = uuid.uuid4().hex
        session = Session(game=game or Game.new(), search=SearchService(self._search_config))
        with self._lock:
            self._sessions[gid] = session
        return gid

    def get(self, game_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(game_id)

    def set_game(self, game_id: str, game: Game) -> None:
        with self._lock:
            session = self._sessions.get(game_id)
            if session is None:
                raise KeyError(game_id)
        with session.lock:
            session.game = game
            session.search.reset()

    def delete(self, game_id: str) -> None:
        with self._lock:
            self._sessions.pop(game_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
