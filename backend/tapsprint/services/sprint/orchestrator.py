from typing import List, Optional, Tuple

from .broadcast import Broadcaster, SocketIOBroadcaster
from .errors import InvalidEvent, PersistenceWriteFailure, SessionNotFound
from .persistence import SprintResultStore
from .registry import ConnectionTracker, SessionRegistry
from .scheduler import Scheduler, SocketIOScheduler
from .session import ACTIVE, COUNTDOWN, FINISHED, STATUSES, WAITING, SprintSession

ROSTER_UPDATED = 'roster-updated'
TAP_UPDATED = 'tap-updated'
COUNTDOWN_TICK = 'countdown-tick'
GAME_STARTED = 'game-started'
GAME_FINISHED = 'game-finished'

TICK_INTERVAL_SEC = 1.0


class SprintOrchestrator:
    """Drives sprint sessions through waiting -> countdown -> active -> finished -> evicted.

    Every mutation and every broadcast for a session happens while holding
    that session's lock, and every timer callback re-checks that the session
    is still registered and in the state it expects before acting.
    """

    def __init__(self, app, registry: SessionRegistry, tracker: ConnectionTracker,
                 broadcaster: Broadcaster, scheduler: Scheduler, store: SprintResultStore):
        self.app = app
        self.logger = app.logger
        self.registry = registry
        self.tracker = tracker
        self.broadcaster = broadcaster
        self.scheduler = scheduler
        self.store = store
        cfg = app.config
        self.countdown_seconds = int(cfg.get('SPRINT_COUNTDOWN_SEC', 5))
        self.window_duration_ms = int(cfg.get('SPRINT_DURATION_MS', 15000))
        self.eviction_grace_sec = float(cfg.get('SPRINT_EVICTION_GRACE_SEC', 30))
        self.idle_timeout_sec = float(cfg.get('SPRINT_IDLE_TIMEOUT_SEC', 300))

    @classmethod
    def from_app(cls, app, socketio, scheduler: Optional[Scheduler] = None) -> 'SprintOrchestrator':
        tracker = ConnectionTracker()
        return cls(
            app,
            registry=SessionRegistry(),
            tracker=tracker,
            broadcaster=SocketIOBroadcaster(tracker, socketio, logger=app.logger),
            scheduler=scheduler or SocketIOScheduler(socketio, logger=app.logger),
            store=SprintResultStore(app, attempts=app.config.get('SPRINT_RESULT_WRITE_ATTEMPTS', 2)),
        )

    # ---- request/response operations ----

    def create_session(self) -> str:
        session = self.registry.create(self.window_duration_ms, self.countdown_seconds, self.scheduler.now())
        if self.idle_timeout_sec > 0:
            session.timers['idle'] = self.scheduler.call_later(
                self.idle_timeout_sec, self._reap_if_idle, session, label=f'idle:{session.id}'
            )
        self.logger.info(
            f"[sprint-create] session={session.id} countdown={session.countdown_seconds}s window={session.window_duration_ms}ms"
        )
        return session.id

    def get_results(self, session_id: str) -> List[dict]:
        """Persisted results, best first.

        Rows outlive the in-memory session. A session that is still live but
        has nothing persisted yet yields an empty list.
        """
        _require_id(session_id)
        rows = self.store.read_results(session_id)
        if rows or session_id in self.registry:
            return rows
        raise SessionNotFound(session_id)

    def session_snapshot(self, session_id: str) -> dict:
        session = self._get(session_id)
        with session.lock:
            data = session.to_dict()
            if session.status == FINISHED:
                data['ranked_results'] = session.ranked_results()
                data['winner'] = data['ranked_results'][0] if data['ranked_results'] else None
            return data

    def stats(self) -> dict:
        by_status = dict.fromkeys(STATUSES, 0)
        for session_id in self.registry.ids():
            session = self.registry.get(session_id)
            if session is not None:
                by_status[session.status] += 1
        return {
            'live_sessions': sum(by_status.values()),
            'tracked_connections': len(self.tracker),
            'sessions_by_status': by_status,
        }

    # ---- inbound events ----

    def join(self, session_id: str, connection_id: str, display_name: Optional[str] = None,
             user_id: Optional[int] = None) -> dict:
        """Admit a connection into a session and return the state it should render.

        Raises SessionNotFound or SessionAlreadyStarted.
        """
        _require_id(session_id)
        session = self._get(session_id)
        with session.lock:
            if not self._is_live(session):
                raise SessionNotFound(session_id)
            player = session.add_player(connection_id, display_name, user_id)
            previous = self.tracker.track(connection_id, session_id)
            self._broadcast_roster(session)
            if session.begin_countdown():
                idle = session.timers.pop('idle', None)
                if idle is not None:
                    idle.cancel()
                self.logger.info(f"[sprint-countdown] session={session.id} seconds={session.countdown_remaining}")
                self.broadcaster.broadcast(session.id, COUNTDOWN_TICK, {'seconds_remaining': session.countdown_remaining})
                session.timers['countdown'] = self.scheduler.call_every(
                    TICK_INTERVAL_SEC, self._countdown_tick, session, label=f'countdown:{session.id}'
                )
            state = session.to_dict()
        self.logger.info(f"[sprint-join] session={session_id} connection={connection_id} name={player.display_name}")
        if previous is not None and previous != session_id:
            self._leave(previous, connection_id)
        return state

    def tap(self, session_id: str, connection_id: str) -> Optional[int]:
        """Count one tap. Returns the new tally, or None when the tap was ignored."""
        session = self.registry.get(session_id) if session_id else None
        if session is None:
            return None
        with session.lock:
            if not self._is_live(session):
                return None
            player = session.record_tap(connection_id)
            if player is None:
                return None
            self.broadcaster.broadcast(session.id, TAP_UPDATED, {
                'connection_id': player.connection_id,
                'display_name': player.display_name,
                'tap_count': player.tap_count,
            })
            return player.tap_count

    def disconnect(self, connection_id: str) -> bool:
        """Detach a connection from whatever session it joined. Untracked connections are a no-op."""
        session_id = self.tracker.untrack(connection_id)
        if session_id is None:
            return False
        return self._leave(session_id, connection_id)

    # ---- timer callbacks ----

    def _countdown_tick(self, session: SprintSession) -> bool:
        with session.lock:
            if not self._is_live(session) or session.status != COUNTDOWN:
                return False
            remaining = session.tick()
            self.broadcaster.broadcast(session.id, COUNTDOWN_TICK, {'seconds_remaining': remaining})
            if remaining > 0:
                return True
            self._start(session)
            return False

    def _start(self, session: SprintSession) -> None:
        session.timers.pop('countdown', None)
        if not session.activate(self.scheduler.now()):
            return
        session.timers['finish'] = self.scheduler.call_later(
            session.window_duration_ms / 1000.0, self._finish, session, label=f'finish:{session.id}'
        )
        self.broadcaster.broadcast(session.id, GAME_STARTED, {
            'status': ACTIVE,
            'duration_ms': session.window_duration_ms,
            'started_at': session.started_at,
            'ends_at': session.ends_at,
        })
        self.logger.info(
            f"[sprint-start] session={session.id} players={len(session.players)} ends_at={session.ends_at}"
        )

    def _finish(self, session: SprintSession) -> None:
        with session.lock:
            if not self._is_live(session) or session.status != ACTIVE:
                self.logger.info(f"[sprint-finish-skip] session={session.id} status={session.status}")
                return
            now = self.scheduler.now()
            if now < session.ends_at:
                # Woke early; re-arm for the remainder of the fixed window
                session.timers['finish'] = self.scheduler.call_later(
                    session.ends_at - now, self._finish, session, label=f'finish:{session.id}'
                )
                return
            session.finish(now)
            ranked = session.ranked_results()
            winner = ranked[0] if ranked else None
            entries = [(p['user_id'], p['tap_count'], p['display_name'], p['rank']) for p in ranked]
            session.timers['evict'] = self.scheduler.call_later(
                self.eviction_grace_sec, self._evict, session, label=f'evict:{session.id}'
            )
            self.broadcaster.broadcast(session.id, GAME_FINISHED, {
                'status': FINISHED,
                'ranked_results': ranked,
                'winner': winner,
            })
            self.logger.info(
                f"[sprint-finish] session={session.id} players={len(ranked)} "
                f"winner={winner['display_name'] if winner else None}"
            )
        self.scheduler.spawn(self._persist_results, session.id, entries, label=f'persist:{session.id}')

    def _persist_results(self, session_id: str, entries: List[Tuple]) -> None:
        saved = 0
        for user_id, tap_count, display_name, rank in entries:
            try:
                self.store.write_result(session_id, user_id, tap_count, display_name=display_name, rank=rank)
                saved += 1
            except PersistenceWriteFailure as exc:
                self.logger.error(f"[sprint-persist-failed] session={session_id} user={user_id} taps={tap_count}: {exc}")
        self.logger.info(f"[sprint-persist] session={session_id} saved={saved}/{len(entries)}")

    def _evict(self, session: SprintSession) -> None:
        with session.lock:
            if not self._is_live(session):
                return
            self.registry.remove(session.id)
            dropped = self.tracker.forget_session(session.id)
            session.cancel_timers()
        self.logger.info(f"[sprint-evict] session={session.id} status={session.status} connections={len(dropped)}")

    def _reap_if_idle(self, session: SprintSession) -> None:
        with session.lock:
            if not self._is_live(session) or session.status != WAITING or session.players:
                return
            self.logger.info(f"[sprint-idle] session={session.id} reaped after {self.idle_timeout_sec}s")
            self._evict(session)

    # ---- helpers ----

    def _get(self, session_id: str) -> SprintSession:
        session = self.registry.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def _is_live(self, session: SprintSession) -> bool:
        return self.registry.get(session.id) is session

    def _leave(self, session_id: str, connection_id: str) -> bool:
        session = self.registry.get(session_id)
        if session is None:
            return False
        with session.lock:
            if not self._is_live(session) or not session.drop_player(connection_id):
                return False
            self._broadcast_roster(session)
        self.logger.info(f"[sprint-leave] session={session_id} connection={connection_id}")
        return True

    def _broadcast_roster(self, session: SprintSession) -> None:
        self.broadcaster.broadcast(session.id, ROSTER_UPDATED, {
            'players': session.roster(),
            'status': session.status,
        })


def _require_id(session_id) -> None:
    if not session_id or not isinstance(session_id, str):
        raise InvalidEvent('session_id is required')
