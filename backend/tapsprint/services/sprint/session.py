"""In-memory state for one sprint game.

A ``SprintSession`` owns its players and timing fields. All mutation goes
through its methods while the caller holds ``session.lock``; the
orchestrator is responsible for taking the lock and for broadcasting.
"""

import random
import string
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import SessionAlreadyStarted
from .scoring import rank_players

WAITING = 'waiting'
COUNTDOWN = 'countdown'
ACTIVE = 'active'
FINISHED = 'finished'

STATUSES = (WAITING, COUNTDOWN, ACTIVE, FINISHED)
JOINABLE = (WAITING, COUNTDOWN)


def generate_session_id() -> str:
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"sprint_{int(time.time() * 1000)}_{suffix}"


def default_display_name(connection_id: str) -> str:
    return f"Player_{connection_id[:6]}"


@dataclass
class Player:
    connection_id: str
    display_name: str
    join_order: int
    user_id: Optional[int] = None
    tap_count: int = 0
    is_connected: bool = True

    def to_dict(self):
        return {
            'connection_id': self.connection_id,
            'display_name': self.display_name,
            'tap_count': self.tap_count,
            'is_connected': self.is_connected,
            'user_id': self.user_id,
            'join_order': self.join_order,
        }


@dataclass
class SprintSession:
    id: str
    window_duration_ms: int
    countdown_seconds: int
    created_at: float
    status: str = WAITING
    players: Dict[str, Player] = field(default_factory=dict)
    countdown_remaining: int = 0
    started_at: Optional[float] = None
    ends_at: Optional[float] = None
    finished_at: Optional[float] = None
    ranking: List[Player] = field(default_factory=list)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)
    # name -> TimerHandle, owned by the orchestrator
    timers: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)
    _join_seq: int = field(default=0, repr=False)

    def cancel_timers(self) -> None:
        for handle in self.timers.values():
            handle.cancel()
        self.timers.clear()

    # ---- membership ----

    def add_player(self, connection_id: str, display_name: Optional[str] = None,
                   user_id: Optional[int] = None) -> Player:
        """Register (or re-register) a connection as a player.

        Raises SessionAlreadyStarted once the game is active or finished.
        """
        if self.status not in JOINABLE:
            raise SessionAlreadyStarted(self.id, self.status)
        name = (display_name or '').strip() or default_display_name(connection_id)
        existing = self.players.get(connection_id)
        if existing:
            existing.display_name = name
            existing.is_connected = True
            if user_id is not None:
                existing.user_id = user_id
            return existing
        self._join_seq += 1
        player = Player(connection_id=connection_id, display_name=name,
                        join_order=self._join_seq, user_id=user_id)
        self.players[connection_id] = player
        return player

    def drop_player(self, connection_id: str) -> bool:
        """Handle a departed connection. Returns True if the roster changed.

        Before the game is active the record is removed outright. While
        active it is kept (marked disconnected) so its taps are still ranked.
        """
        if self.status == FINISHED:
            return False
        player = self.players.get(connection_id)
        if player is None:
            return False
        if self.status == ACTIVE:
            if not player.is_connected:
                return False
            player.is_connected = False
            return True
        del self.players[connection_id]
        return True

    # ---- transitions ----

    def begin_countdown(self) -> bool:
        if self.status != WAITING:
            return False
        self.status = COUNTDOWN
        self.countdown_remaining = self.countdown_seconds
        return True

    def tick(self) -> Optional[int]:
        """Decrement the countdown. Returns the new value, or None if not counting down."""
        if self.status != COUNTDOWN:
            return None
        self.countdown_remaining = max(0, self.countdown_remaining - 1)
        return self.countdown_remaining

    def activate(self, now: float) -> bool:
        if self.status != COUNTDOWN:
            return False
        self.status = ACTIVE
        self.countdown_remaining = 0
        self.started_at = now
        self.ends_at = now + self.window_duration_ms / 1000.0
        return True

    def record_tap(self, connection_id: str) -> Optional[Player]:
        """Count one tap. Returns the player, or None when the tap is ignored."""
        if self.status != ACTIVE:
            return None
        player = self.players.get(connection_id)
        if player is None or not player.is_connected:
            return None
        player.tap_count += 1
        return player

    def finish(self, now: float) -> bool:
        if self.status != ACTIVE:
            return False
        self.status = FINISHED
        self.finished_at = now
        self.ranking = rank_players(self.players.values())
        return True

    # ---- views ----

    @property
    def winner(self) -> Optional[Player]:
        return self.ranking[0] if self.ranking else None

    def roster(self) -> List[dict]:
        return [p.to_dict() for p in sorted(self.players.values(), key=lambda p: p.join_order)]

    def ranked_results(self) -> List[dict]:
        results = []
        for rank, player in enumerate(self.ranking):
            entry = player.to_dict()
            entry['rank'] = rank
            results.append(entry)
        return results

    def to_dict(self):
        return {
            'session_id': self.id,
            'status': self.status,
            'players': self.roster(),
            'countdown_remaining': self.countdown_remaining,
            'duration_ms': self.window_duration_ms,
            'started_at': self.started_at,
            'ends_at': self.ends_at,
        }
