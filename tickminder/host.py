"""
Tickminder Host Boundary

Narrow contracts through which the scheduling core sees the host:
- Clock: the host's simulated tick counter (read only)
- QuestResolver: weak, by-id lookup into the host's quest registry
- NotificationSink: fire-and-forget letters and pause requests

The core never owns anything behind these interfaces. Quests in particular
are looked up by id every time they are needed and may vanish between two
lookups.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class QuestState(Enum):
    """Decision state of a host quest."""
    AWAITING_DECISION = "awaiting_decision"  # Offered, not yet accepted or declined
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"
    ENDED = "ended"


class NotificationClass(Enum):
    """Letter classes understood by the notification sink, mildest first."""
    POSITIVE = "positive"          # Informational
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    THREAT_SMALL = "threat_small"
    THREAT_BIG = "threat_big"      # Critical, interrupting


@dataclass(frozen=True)
class Quest:
    """Read-only view of a host quest at lookup time."""
    id: int
    name: str
    expiry_tick: int
    state: QuestState = QuestState.AWAITING_DECISION

    @property
    def awaiting_decision(self) -> bool:
        return self.state == QuestState.AWAITING_DECISION

    def with_state(self, state: QuestState) -> "Quest":
        return replace(self, state=state)


class Clock(ABC):
    """Monotonically non-decreasing tick source."""

    @abstractmethod
    def current_tick(self) -> int:
        """Return the host's current tick."""
        pass


class QuestResolver(ABC):
    """By-id access to quests owned by the host."""

    @abstractmethod
    def find_quest(self, quest_id: int) -> Optional[Quest]:
        """Return the quest with this id, or None if it no longer exists."""
        pass


class NotificationSink(ABC):
    """Delivers notifications to the player."""

    @abstractmethod
    def send(
        self,
        title: str,
        text: str,
        notification_class: NotificationClass,
        quest_ref: Optional[Quest] = None,
    ) -> None:
        """Emit a notification, linking to quest_ref when given."""
        pass

    @abstractmethod
    def request_pause(self) -> None:
        """Ask the host to pause the simulation."""
        pass


class FrozenClock(Clock):
    """A clock pinned to a single tick."""

    def __init__(self, tick: int):
        self._tick = tick

    def current_tick(self) -> int:
        return self._tick


class NoQuests(QuestResolver):
    """Resolver for hosts without quests."""

    def find_quest(self, quest_id: int) -> Optional[Quest]:
        return None


class LoggingSink(NotificationSink):
    """Sink that only writes notifications to the log."""

    def send(self, title, text, notification_class, quest_ref=None) -> None:
        suffix = f" [quest: {quest_ref.name}]" if quest_ref else ""
        logger.info(f"[{notification_class.value}] {title}: {text}{suffix}")

    def request_pause(self) -> None:
        logger.info("Pause requested")


@dataclass
class HostContext:
    """Everything a trigger or action needs from the host.

    Built once by the host's composition root and handed to the registry,
    the persistence adapter and the pump.
    """
    clock: Clock
    quests: QuestResolver
    sink: NotificationSink

    def now(self) -> int:
        return self.clock.current_tick()

    def find_quest(self, quest_id: int) -> Optional[Quest]:
        return self.quests.find_quest(quest_id)

    def pinned(self) -> "HostContext":
        """Copy of this context whose clock is frozen at the current tick."""
        return replace(self, clock=FrozenClock(self.now()))
