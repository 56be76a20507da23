"""
Tickminder Simulated Host

An in-memory stand-in for the host application: a clock that advances when
told to, a quest book, and a sink that records notifications. Used by the
CLI and the test suite.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import schedule

from tickminder.errors import ReminderStoreError, SessionError
from tickminder.host import Clock, HostContext, NotificationClass, NotificationSink, Quest, QuestResolver, QuestState
from tickminder.scheduler.persistence import ReminderPersistence, ReminderStore
from tickminder.scheduler.pump import DEFAULT_PROCESSING_INTERVAL, TickPump
from tickminder.scheduler.registry import ReminderRegistry

logger = logging.getLogger(__name__)


class SimulatedClock(Clock):
    """Clock advanced explicitly by the simulation."""

    def __init__(self, tick: int = 0):
        self.tick = tick

    def current_tick(self) -> int:
        return self.tick

    def advance(self, ticks: int) -> int:
        if ticks < 0:
            raise ValueError("The clock cannot run backwards")
        self.tick += ticks
        return self.tick


class QuestBook(QuestResolver):
    """Quest registry owned by the simulated host."""

    def __init__(self, quests: Optional[list[Quest]] = None):
        self._quests: dict[int, Quest] = {q.id: q for q in quests or []}

    def __len__(self) -> int:
        return len(self._quests)

    @property
    def quests(self) -> list[Quest]:
        return list(self._quests.values())

    def find_quest(self, quest_id: int) -> Optional[Quest]:
        return self._quests.get(quest_id)

    def add(self, quest: Quest) -> Quest:
        self._quests[quest.id] = quest
        logger.debug(f"Quest offered: {quest.name} (ID: {quest.id}, expires at {quest.expiry_tick})")
        return quest

    def next_id(self) -> int:
        return max(self._quests, default=0) + 1

    def remove(self, quest_id: int) -> bool:
        return self._quests.pop(quest_id, None) is not None

    def set_state(self, quest_id: int, state: QuestState) -> Optional[Quest]:
        quest = self._quests.get(quest_id)
        if quest is None:
            return None
        self._quests[quest_id] = quest.with_state(state)
        return self._quests[quest_id]

    def expire_due(self, now: int) -> list[Quest]:
        """Expire offers whose deadline has passed."""
        expired = []
        for quest in list(self._quests.values()):
            if quest.awaiting_decision and quest.expiry_tick <= now:
                expired.append(self.set_state(quest.id, QuestState.EXPIRED))
        return expired


@dataclass
class Notification:
    """A notification as delivered to the simulated player."""
    tick: int
    title: str
    text: str
    notification_class: NotificationClass
    quest_id: Optional[int] = None


class RecordingSink(NotificationSink):
    """Keeps every notification and pause request."""

    def __init__(self, clock: Clock, on_notify: Optional[Callable[[Notification], None]] = None):
        self.clock = clock
        self.on_notify = on_notify
        self.notifications: list[Notification] = []
        self.pause_requests = 0

    def send(self, title, text, notification_class, quest_ref=None) -> None:
        notification = Notification(
            tick=self.clock.current_tick(),
            title=title,
            text=text,
            notification_class=notification_class,
            quest_id=quest_ref.id if quest_ref is not None else None,
        )
        self.notifications.append(notification)
        if self.on_notify is not None:
            self.on_notify(notification)

    def request_pause(self) -> None:
        self.pause_requests += 1


@dataclass
class AdvanceResult:
    """Outcome of SimulatedHost.advance."""
    ticks_advanced: int = 0
    fired: list[int] = field(default_factory=list)
    expired_quests: list[int] = field(default_factory=list)
    paused: bool = False


class SimulatedHost:
    """Composition root wiring a registry to an in-memory host."""

    def __init__(
        self,
        start_tick: int = 0,
        quests: Optional[list[Quest]] = None,
        processing_interval: int = DEFAULT_PROCESSING_INTERVAL,
        auto_processing: bool = True,
        on_notify: Optional[Callable[[Notification], None]] = None,
    ):
        self.clock = SimulatedClock(start_tick)
        self.quests = QuestBook(quests)
        self.sink = RecordingSink(self.clock, on_notify)
        self.ctx = HostContext(clock=self.clock, quests=self.quests, sink=self.sink)
        self.persistence = ReminderPersistence(self.ctx)
        self.registry = ReminderRegistry(self.ctx)
        self.pump = TickPump(self.registry, interval=processing_interval, enabled=auto_processing)

    @property
    def now(self) -> int:
        return self.clock.current_tick()

    def advance(self, ticks: int, stop_on_pause: bool = True) -> AdvanceResult:
        """Run the host forward, calling the pump on every tick.

        Ticks between processing cycles are skipped in one step since the
        pump would ignore them. Stops early when a notification asks to
        pause and stop_on_pause is set.
        """
        result = AdvanceResult()
        pauses_before = self.sink.pause_requests

        while result.ticks_advanced < ticks:
            step = min(ticks - result.ticks_advanced, self._ticks_until_next_cycle())
            self.clock.advance(step)
            result.ticks_advanced += step

            result.expired_quests.extend(q.id for q in self.quests.expire_due(self.now))
            result.fired.extend(self.pump.on_tick())

            if stop_on_pause and self.sink.pause_requests > pauses_before:
                result.paused = True
                logger.info(f"Simulation paused at tick {self.now}")
                break

        return result

    def _ticks_until_next_cycle(self) -> int:
        candidates = [max(1, q.expiry_tick - self.now) for q in self.quests.quests if q.awaiting_decision]
        if self.pump.enabled:
            candidates.append(self.pump.ticks_until_due())
        return min(candidates, default=1 << 62)

    def offer_quest(self, name: str, expires_in_ticks: int) -> Quest:
        return self.quests.add(Quest(id=self.quests.next_id(), name=name, expiry_tick=self.now + expires_in_ticks))

    def accept_quest(self, quest_id: int) -> list[int]:
        """Accept a quest and complete the reminders watching it."""
        if self.quests.set_state(quest_id, QuestState.ACCEPTED) is None:
            logger.warning(f"Quest {quest_id} not found")
            return []
        return self.registry.complete_quest_reminders(quest_id)

    def decline_quest(self, quest_id: int) -> bool:
        return self.quests.set_state(quest_id, QuestState.DECLINED) is not None

    def save(self) -> dict:
        return SimulationState(
            tick=self.now,
            quests=self.quests.quests,
            snapshot=self.persistence.save(self.registry),
        ).to_dict()

    @classmethod
    def from_state(cls, state: "SimulationState", **kwargs) -> "SimulatedHost":
        host = cls(start_tick=state.tick, quests=state.quests, **kwargs)
        host.registry = host.persistence.load(state.snapshot)
        host.pump.registry = host.registry
        return host


@dataclass
class SimulationState:
    """Saved simulation session: host tick, quests and the reminder snapshot."""
    tick: int = 0
    quests: list[Quest] = field(default_factory=list)
    snapshot: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "tick": self.tick,
            "quests": [
                {"id": q.id, "name": q.name, "expiry_tick": q.expiry_tick, "state": q.state.value}
                for q in self.quests
            ],
            "snapshot": self.snapshot,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SimulationState":
        """Deserialize a session.

        Raises:
            SessionError: If the session is malformed
        """
        try:
            quests = [
                Quest(
                    id=int(q["id"]),
                    name=str(q["name"]),
                    expiry_tick=int(q["expiry_tick"]),
                    state=QuestState(q.get("state", QuestState.AWAITING_DECISION.value)),
                )
                for q in data.get("quests", [])
            ]
            return cls(tick=int(data.get("tick", 0)), quests=quests, snapshot=data.get("snapshot") or {})
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SessionError(f"Malformed session: {e}") from e


def load_session(path: Path, backup_corrupt: bool = True) -> SimulationState:
    """Read a session file.

    A file that is not valid JSON is moved aside to '<name>.json.bak' by
    the store (when backup_corrupt is set) and reported as corrupt.

    Raises:
        SessionError: If the file is missing, corrupt or malformed
    """
    store = ReminderStore(path, backup_corrupt=backup_corrupt)
    if not store.exists():
        raise SessionError(f"No session at {store.path}")
    try:
        data = store.read()
    except ReminderStoreError as e:
        raise SessionError(str(e)) from e
    if data is None:
        raise SessionError(f"Session {store.path} is corrupt")
    if not isinstance(data, dict):
        raise SessionError(f"Session root in {store.path} must be a mapping")
    return SimulationState.from_dict(data)


def save_session(path: Path, host: SimulatedHost) -> None:
    """Write a session file atomically.

    Raises:
        ReminderStoreError: If the file cannot be written
    """
    ReminderStore(path).write(host.save())


class RealtimeDriver:
    """Advances a simulated host at a fixed speed in real time.

    Uses the 'schedule' library to tick once per second.
    """

    def __init__(self, host: SimulatedHost, ticks_per_second: int = 60):
        self.host = host
        self.ticks_per_second = ticks_per_second
        self._scheduler = schedule.Scheduler()
        self._running = False
        self._lock = threading.Lock()
        self.paused = False

    def _step(self) -> None:
        with self._lock:
            result = self.host.advance(self.ticks_per_second)
        if result.paused:
            self.paused = True
            self.stop()

    def run(self, duration_seconds: Optional[float] = None) -> None:
        """Run until stopped, paused by a notification, or the duration elapses."""
        self._scheduler.every(1).seconds.do(self._step)
        self._running = True
        started = time.monotonic()
        logger.info(f"Realtime driver started at {self.ticks_per_second} ticks/s")

        try:
            while self._running:
                self._scheduler.run_pending()
                if duration_seconds is not None and time.monotonic() - started >= duration_seconds:
                    break
                time.sleep(0.1)
        finally:
            self._scheduler.clear()
            self._running = False
            logger.info(f"Realtime driver stopped at tick {self.host.now}")

    def stop(self) -> None:
        self._running = False
