"""
Tickminder Trigger System

Triggers decide when a reminder fires. The set of trigger kinds is closed:
- Time: fire at an absolute tick, or a fixed offset from when it was armed
- Quest deadline: fire a lead time before a host quest's offer expires

Every trigger fires at most once per reset cycle. Evaluation is cheap and
never raises for a missing or already-decided quest; such triggers retire
(mark themselves triggered without firing).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional

from tickminder.host import HostContext, Quest
from tickminder.ticks import TICKS_PER_DAY, TICKS_PER_HOUR, TimeUnit, format_duration, format_tick_date

logger = logging.getLogger(__name__)

# A quest trigger is never scheduled closer than this to the tick it was
# computed on: one default processing interval.
QUEST_CLAMP_FLOOR_TICKS = 60


class TriggerKind(Enum):
    """Wire tags of the trigger variants."""
    TIME = "time"
    QUEST_DEADLINE = "quest-deadline"


def _current_tick(ctx: HostContext) -> Optional[int]:
    try:
        return ctx.now()
    except Exception as e:
        logger.warning(f"Clock unavailable, skipping evaluation: {e}")
        return None


@dataclass
class Trigger(ABC):
    """A fireable condition owned by exactly one reminder."""

    kind: ClassVar[TriggerKind]

    is_triggered: bool = False

    @abstractmethod
    def evaluate(self, ctx: HostContext) -> bool:
        """Return True exactly once when the condition is met."""
        pass

    @abstractmethod
    def reset(self, ctx: HostContext) -> None:
        """Re-arm the trigger, recomputing derived targets from now."""
        pass

    @abstractmethod
    def refresh(self, ctx: HostContext) -> None:
        """Compute derived targets that are still at their zero sentinel."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    @abstractmethod
    def next_fire_tick(self) -> int:
        """Tick this trigger is scheduled for, 0 when not yet known."""
        pass

    @abstractmethod
    def to_dict(self) -> dict:
        pass

    def ticks_remaining(self, now: int) -> int:
        target = self.next_fire_tick
        if target <= 0:
            return 0
        return max(0, target - now)

    def time_remaining_description(self, now: int) -> str:
        return format_duration(self.ticks_remaining(now))


@dataclass
class TimeTrigger(Trigger):
    """Fires once the clock reaches target_tick.

    Relative triggers remember the requested offset so that a reset (for a
    repeating reminder) schedules the next occurrence from the current tick.
    A target of 0 on a relative trigger means "not armed yet" and is filled
    in lazily on first evaluation.
    """

    kind: ClassVar[TriggerKind] = TriggerKind.TIME

    target_tick: int = 0
    is_relative: bool = True
    relative_magnitude: int = 1
    relative_unit: TimeUnit = TimeUnit.DAYS

    @classmethod
    def relative(cls, magnitude: int, unit: TimeUnit = TimeUnit.DAYS, now: Optional[int] = None) -> "TimeTrigger":
        """Create a trigger `magnitude` units after `now` (or after first evaluation)."""
        trigger = cls(is_relative=True, relative_magnitude=magnitude, relative_unit=unit)
        if now is not None:
            trigger.target_tick = now + trigger.offset_ticks
        return trigger

    @classmethod
    def in_ticks(cls, ticks: int, now: Optional[int] = None) -> "TimeTrigger":
        return cls.relative(ticks, TimeUnit.TICKS, now)

    @classmethod
    def in_hours(cls, hours: int, now: Optional[int] = None) -> "TimeTrigger":
        return cls.relative(hours, TimeUnit.HOURS, now)

    @classmethod
    def in_days(cls, days: int, now: Optional[int] = None) -> "TimeTrigger":
        return cls.relative(days, TimeUnit.DAYS, now)

    @classmethod
    def at_tick(cls, tick: int, now: Optional[int] = None) -> "TimeTrigger":
        """Create an absolute trigger for a specific tick."""
        days = max(0, tick - now) // TICKS_PER_DAY if now is not None else 0
        return cls(target_tick=tick, is_relative=False, relative_magnitude=days, relative_unit=TimeUnit.DAYS)

    @property
    def offset_ticks(self) -> int:
        return self.relative_unit.to_ticks(self.relative_magnitude)

    @property
    def next_fire_tick(self) -> int:
        return self.target_tick

    @property
    def description(self) -> str:
        if self.is_relative:
            return f"In {self.relative_unit.label(self.relative_magnitude)}"
        return f"On {format_tick_date(self.target_tick)}"

    def evaluate(self, ctx: HostContext) -> bool:
        if self.is_triggered:
            return False

        now = _current_tick(ctx)
        if now is None:
            return False

        if self.is_relative and self.target_tick == 0:
            self.target_tick = now + self.offset_ticks

        if now >= self.target_tick:
            self.is_triggered = True
            return True
        return False

    def reset(self, ctx: HostContext) -> None:
        self.is_triggered = False
        if self.is_relative:
            now = _current_tick(ctx)
            # Unknown time falls back to lazy arming on the next evaluation
            self.target_tick = now + self.offset_ticks if now is not None else 0

    def refresh(self, ctx: HostContext) -> None:
        if self.is_relative and self.target_tick == 0 and not self.is_triggered:
            now = _current_tick(ctx)
            if now is not None:
                self.target_tick = now + self.offset_ticks

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "is_triggered": self.is_triggered,
            "target_tick": self.target_tick,
            "is_relative": self.is_relative,
            "relative_magnitude": self.relative_magnitude,
            "relative_unit": self.relative_unit.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TimeTrigger":
        return cls(
            is_triggered=bool(data.get("is_triggered", False)),
            target_tick=int(data.get("target_tick", 0)),
            is_relative=bool(data.get("is_relative", True)),
            relative_magnitude=int(data.get("relative_magnitude", 1)),
            relative_unit=TimeUnit(data.get("relative_unit", TimeUnit.DAYS.value)),
        )


@dataclass
class QuestDeadlineTrigger(Trigger):
    """Fires lead_ticks before a quest's offer expires.

    The quest is referenced by id only. The computed target is derived from
    the quest's expiry the last time it was observed and is recomputed when
    it is zero or when the quest's expiry has moved since.
    """

    kind: ClassVar[TriggerKind] = TriggerKind.QUEST_DEADLINE

    quest_id: int = 0
    lead_ticks: int = 24 * TICKS_PER_HOUR
    computed_target_tick: int = 0
    observed_expiry_tick: int = 0
    quest_name: str = ""  # Last seen quest name, for descriptions only

    @classmethod
    def hours_before(cls, quest_id: int, hours: int, ctx: Optional[HostContext] = None) -> "QuestDeadlineTrigger":
        trigger = cls(quest_id=quest_id, lead_ticks=hours * TICKS_PER_HOUR)
        if ctx is not None:
            trigger.refresh(ctx)
        return trigger

    @property
    def lead_hours(self) -> int:
        return self.lead_ticks // TICKS_PER_HOUR

    @property
    def next_fire_tick(self) -> int:
        return self.computed_target_tick

    @property
    def description(self) -> str:
        if self.quest_name:
            return f"{self.lead_hours}h before '{self.quest_name}' expires"
        return f"{self.lead_hours}h before quest expires"

    def detailed_description(self, ctx: HostContext) -> str:
        """Trigger date and remaining time, when the quest still resolves."""
        quest = self._resolve(ctx)
        now = _current_tick(ctx)
        if quest is None or now is None:
            return "Quest deadline trigger"
        if self.computed_target_tick == 0:
            self._compute(quest, now)
        date = format_tick_date(self.computed_target_tick)
        return f"Triggers on: {date} (in {self.time_remaining_description(now)})"

    def _resolve(self, ctx: HostContext) -> Optional[Quest]:
        if self.quest_id == 0:
            return None
        return ctx.find_quest(self.quest_id)

    def _compute(self, quest: Quest, now: int) -> None:
        target = quest.expiry_tick - self.lead_ticks
        self.computed_target_tick = max(target, now + QUEST_CLAMP_FLOOR_TICKS)
        self.observed_expiry_tick = quest.expiry_tick
        self.quest_name = quest.name

    def _retire(self, reason: str) -> None:
        self.is_triggered = True
        logger.info(f"Quest deadline trigger for quest {self.quest_id} retired: {reason}")

    def evaluate(self, ctx: HostContext) -> bool:
        if self.is_triggered:
            return False

        try:
            quest = self._resolve(ctx)
        except Exception as e:
            logger.warning(f"Quest lookup failed for quest {self.quest_id}, will retry: {e}")
            return False

        if quest is None:
            self._retire("quest no longer exists")
            return False

        if not quest.awaiting_decision:
            self._retire(f"quest is {quest.state.value}")
            return False

        now = _current_tick(ctx)
        if now is None:
            return False

        if self.computed_target_tick == 0 or self.observed_expiry_tick != quest.expiry_tick:
            self._compute(quest, now)

        if now >= self.computed_target_tick:
            self.is_triggered = True
            return True
        return False

    def reset(self, ctx: HostContext) -> None:
        self.is_triggered = False
        self.computed_target_tick = 0
        self.refresh(ctx)

    def refresh(self, ctx: HostContext) -> None:
        if self.computed_target_tick != 0 or self.is_triggered:
            return
        try:
            quest = self._resolve(ctx)
        except Exception as e:
            logger.warning(f"Quest lookup failed for quest {self.quest_id}: {e}")
            return
        now = _current_tick(ctx)
        if quest is not None and quest.awaiting_decision and now is not None:
            self._compute(quest, now)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "is_triggered": self.is_triggered,
            "quest_id": self.quest_id,
            "lead_ticks": self.lead_ticks,
            "computed_target_tick": self.computed_target_tick,
            "observed_expiry_tick": self.observed_expiry_tick,
            "quest_name": self.quest_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QuestDeadlineTrigger":
        return cls(
            is_triggered=bool(data.get("is_triggered", False)),
            quest_id=int(data["quest_id"]),
            lead_ticks=int(data.get("lead_ticks", 24 * TICKS_PER_HOUR)),
            computed_target_tick=int(data.get("computed_target_tick", 0)),
            observed_expiry_tick=int(data.get("observed_expiry_tick", 0)),
            quest_name=str(data.get("quest_name") or ""),
        )


TRIGGER_TYPES: dict[str, type] = {
    TriggerKind.TIME.value: TimeTrigger,
    TriggerKind.QUEST_DEADLINE.value: QuestDeadlineTrigger,
}


def trigger_from_dict(data: dict) -> Trigger:
    """Decode a tagged trigger table.

    Raises:
        ValueError: unknown kind or malformed fields
    """
    if not isinstance(data, dict):
        raise ValueError(f"Trigger record must be a mapping, got {type(data).__name__}")
    kind = data.get("kind")
    trigger_cls = TRIGGER_TYPES.get(kind)
    if trigger_cls is None:
        raise ValueError(f"Unknown trigger kind: {kind!r}")
    try:
        return trigger_cls.from_dict(data)
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed {kind} trigger: {e}") from e
