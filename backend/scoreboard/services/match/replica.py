"""Read replicas of canonical match state, kept current from the change feed.

A viewer (control surface, overlay, match list) never mutates what it shows.
It takes an initial snapshot, then applies ``{event_type, record}`` changes
from the feed. Deliveries carry the record's ``revision``; anything not newer
than what the replica holds is dropped, so a late snapshot or a duplicate
update cannot roll the view back.

``MatchView`` owns one subscription plus the local redraw tasks for a single
match, and releases all of them when it stops observing that match.
"""
import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from .cards import active_cards
from .clock import displayed_remaining, format_clock, now as wall_clock
from .overlay import build_overlay
from .state import MatchState

logger = logging.getLogger(__name__)

EVENT_TYPES = ('insert', 'update', 'delete')


class MatchReplica:
    """Latest known copy of one match.

    ``found`` is None until a snapshot or change arrives, False when the
    match does not exist (or was deleted), True otherwise.
    """

    def __init__(self, match_id: str, event_types: Iterable[str] = EVENT_TYPES):
        self.match_id = match_id
        self.event_types = frozenset(event_types)
        self.record: Optional[Dict[str, Any]] = None
        self.revision = 0
        self.found: Optional[bool] = None

    @property
    def state(self) -> Optional[MatchState]:
        return MatchState.from_dict(self.record) if self.record else None

    def apply_snapshot(self, record: Optional[Dict[str, Any]]) -> bool:
        if record is None:
            if self.found is None:
                self.found = False
                return True
            return False
        return self._accept(record)

    def apply_change(self, event: Dict[str, Any]) -> bool:
        event_type = event.get('event_type')
        record = event.get('record') or {}
        if event_type not in self.event_types or record.get('id') != self.match_id:
            return False
        if event_type == 'delete':
            # A delete wins over whatever we hold
            changed = self.found is not False
            self.record = None
            self.found = False
            self.revision = max(self.revision, int(record.get('revision') or 0))
            return changed
        return self._accept(record)

    def _accept(self, record: Dict[str, Any]) -> bool:
        if record.get('id') != self.match_id:
            return False
        revision = int(record.get('revision') or 0)
        if revision <= self.revision:
            logger.debug("dropping stale delivery match=%s revision=%s held=%s", self.match_id, revision, self.revision)
            return False
        self.record = record
        self.revision = revision
        self.found = True
        return True


class MatchListReplica:
    """An operator's matches, newest first, kept in sync from the owner feed."""

    def __init__(self, owner_id: int, event_types: Iterable[str] = EVENT_TYPES):
        self.owner_id = owner_id
        self.event_types = frozenset(event_types)
        self._records: Dict[str, Dict[str, Any]] = {}

    @property
    def records(self) -> List[Dict[str, Any]]:
        return sorted(self._records.values(), key=lambda r: r.get('created_at') or 0, reverse=True)

    def apply_snapshot(self, records: Iterable[Dict[str, Any]]) -> None:
        for record in records:
            held = self._records.get(record['id'])
            if held is None or int(record.get('revision') or 0) > int(held.get('revision') or 0):
                self._records[record['id']] = record

    def apply_change(self, event: Dict[str, Any]) -> bool:
        event_type = event.get('event_type')
        record = event.get('record') or {}
        if event_type not in self.event_types or record.get('owner_id') != self.owner_id:
            return False
        if event_type == 'delete':
            return self._records.pop(record['id'], None) is not None
        held = self._records.get(record['id'])
        if held is not None and int(record.get('revision') or 0) <= int(held.get('revision') or 0):
            return False
        self._records[record['id']] = record
        return True


class Feed(Protocol):
    """What a view needs from a change-feed transport."""

    def subscribe(self, match_id: str, on_snapshot: Callable, on_change: Callable) -> Callable[[], None]:
        ...

    def start_background_task(self, target: Callable, *args, **kwargs) -> Any:
        ...

    def sleep(self, seconds: float) -> None:
        ...


class PeriodicTask:
    """Calls ``callback`` every ``interval`` seconds on a feed background task.

    Each view runs its own tasks, so one slow viewer never delays another.
    ``stop`` clears the run flag; ``join`` waits for the loop to exit.
    """

    def __init__(self, feed: Feed, interval: float, callback: Callable[[], None]):
        self.feed = feed
        self.interval = interval
        self.callback = callback
        self.running = False
        self._handle: Any = None

    def start(self) -> None:
        if self.running:
            return
        self.running = True
        self._handle = self.feed.start_background_task(self._run)

    def stop(self) -> None:
        self.running = False

    def join(self) -> None:
        handle, self._handle = self._handle, None
        # A callback that closes its own view must not wait on itself
        if handle is None or handle is threading.current_thread():
            return
        join = getattr(handle, 'join', None)
        if join is not None:
            join()

    def _run(self) -> None:
        while self.running:
            self.callback()
            self.feed.sleep(self.interval)


class MatchView:
    """One viewer's window on one match.

    Holds the replica, the feed subscription and two redraw tasks: a fast
    one for the countdown and a slower one for card timers. ``switch`` tears
    all of it down before observing another match, and ``close`` (or leaving
    the ``with`` block) releases it for good.
    """

    def __init__(
        self,
        feed: Feed,
        on_clock: Optional[Callable[[str, int], None]] = None,
        on_cards: Optional[Callable[[Dict[str, list]], None]] = None,
        on_record: Optional[Callable[[Optional[Dict[str, Any]]], None]] = None,
        clock_interval: float = 0.2,
        card_interval: float = 1.0,
        clock: Callable[[], float] = wall_clock,
    ):
        self.feed = feed
        self.on_clock = on_clock
        self.on_cards = on_cards
        self.on_record = on_record
        self.clock_interval = clock_interval
        self.card_interval = card_interval
        self.clock = clock
        self.replica: Optional[MatchReplica] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._tasks: List[PeriodicTask] = []

    @property
    def match_id(self) -> Optional[str]:
        return self.replica.match_id if self.replica else None

    def open(self, match_id: str) -> 'MatchView':
        if self.replica is not None:
            if self.replica.match_id == match_id:
                return self
            self.close()
        self.replica = MatchReplica(match_id)
        self._unsubscribe = self.feed.subscribe(match_id, self._handle_snapshot, self._handle_change)
        self._tasks = [
            PeriodicTask(self.feed, self.clock_interval, self.redraw_clock),
            PeriodicTask(self.feed, self.card_interval, self.redraw_cards),
        ]
        for task in self._tasks:
            task.start()
        logger.info("view opened match=%s", match_id)
        return self

    switch = open

    def close(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.stop()
        for task in tasks:
            task.join()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self.replica is not None:
            logger.info("view closed match=%s", self.replica.match_id)
        self.replica = None

    def __enter__(self) -> 'MatchView':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _handle_snapshot(self, record: Optional[Dict[str, Any]]) -> None:
        if self.replica is not None and self.replica.apply_snapshot(record):
            self._notify()

    def _handle_change(self, event: Dict[str, Any]) -> None:
        if self.replica is not None and self.replica.apply_change(event):
            self._notify()

    def _notify(self) -> None:
        if self.on_record is not None:
            self.on_record(self.replica.record)
        self.redraw_clock()
        self.redraw_cards()

    def remaining(self) -> Optional[int]:
        state = self.replica.state if self.replica else None
        if state is None:
            return None
        return displayed_remaining(state.timer_remaining_sec, state.is_timer_running, state.timer_started_at, self.clock())

    def redraw_clock(self) -> None:
        remaining = self.remaining()
        if remaining is not None and self.on_clock is not None:
            self.on_clock(format_clock(remaining), remaining)

    def redraw_cards(self) -> None:
        state = self.replica.state if self.replica else None
        if state is None or self.on_cards is None:
            return
        at = self.clock()
        self.on_cards({
            'home': active_cards(state.home_team.cards, at),
            'away': active_cards(state.away_team.cards, at),
        })

    def overlay(self) -> Optional[Dict[str, Any]]:
        state = self.replica.state if self.replica else None
        return build_overlay(state, self.clock()) if state else None
