"""
Tickminder Reminder Model

A reminder binds one trigger to an ordered list of actions, plus the text
and bookkeeping the player sees.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from tickminder.host import HostContext, Quest
from tickminder.scheduler.actions import Action, NotificationAction, action_from_dict
from tickminder.scheduler.severity import Severity
from tickminder.scheduler.triggers import QuestDeadlineTrigger, TimeTrigger, Trigger, trigger_from_dict

logger = logging.getLogger(__name__)


@dataclass
class Reminder:
    """A single reminder.

    The id is 0 until the registry admits the reminder. last_triggered_at is
    only ever written by firing.
    """
    title: str
    description: str = ""
    severity: Severity = Severity.MEDIUM
    trigger: Optional[Trigger] = None
    actions: list[Action] = field(default_factory=list)

    is_active: bool = True
    is_repeating: bool = False

    id: int = 0
    created_at: int = 0
    last_triggered_at: int = 0

    @property
    def has_valid_title(self) -> bool:
        return isinstance(self.title, str) and bool(self.title.strip())

    @property
    def is_completed(self) -> bool:
        return not self.is_active

    @property
    def status_label(self) -> str:
        return "Active" if self.is_active else "Completed"

    def should_trigger(self, ctx: HostContext) -> bool:
        return self.is_active and self.trigger is not None and self.trigger.evaluate(ctx)

    def fire(self, ctx: HostContext) -> int:
        """Run every action in order, then update repeat/activity state.

        A failing action is logged and the remaining actions still run; the
        reminder counts as fired either way.

        Returns:
            Number of actions that failed
        """
        failures = 0
        for action in list(self.actions):
            if not action.run(self, ctx):
                failures += 1

        self.last_triggered_at = ctx.now()

        if self.is_repeating:
            if self.trigger is not None:
                self.trigger.reset(ctx)
        else:
            self.is_active = False

        if failures:
            logger.warning(f"Reminder '{self.title}' fired with {failures} failed action(s)")
        return failures

    def complete(self, now: int) -> None:
        """Mark completed without running actions (e.g. its quest was accepted)."""
        self.is_active = False
        self.last_triggered_at = now

    def to_dict(self) -> dict:
        """Serialize to a self-contained record."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.name.lower(),
            "is_active": self.is_active,
            "is_repeating": self.is_repeating,
            "created_at": self.created_at,
            "last_triggered_at": self.last_triggered_at,
            "trigger": self.trigger.to_dict() if self.trigger is not None else None,
            "actions": [action.to_dict() for action in self.actions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Reminder":
        """Deserialize a record.

        Identity and text are mandatory. A trigger that cannot be decoded
        leaves the reminder without one; undecodable actions are dropped.

        Raises:
            ValueError: if the record has no usable id or title
        """
        if not isinstance(data, dict):
            raise ValueError(f"Reminder record must be a mapping, got {type(data).__name__}")

        reminder_id = data.get("id")
        if isinstance(reminder_id, bool) or not isinstance(reminder_id, int) or reminder_id <= 0:
            raise ValueError(f"Invalid reminder id: {reminder_id!r}")

        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            raise ValueError(f"Reminder {reminder_id} has an empty title")

        try:
            severity = Severity.parse(data.get("severity", Severity.MEDIUM.name))
        except ValueError as e:
            logger.warning(f"Reminder {reminder_id}: {e}, using Medium")
            severity = Severity.MEDIUM

        trigger = None
        if data.get("trigger") is not None:
            try:
                trigger = trigger_from_dict(data["trigger"])
            except ValueError as e:
                logger.warning(f"Reminder {reminder_id} loaded without trigger: {e}")

        actions = []
        for raw_action in data.get("actions") or []:
            try:
                actions.append(action_from_dict(raw_action))
            except ValueError as e:
                logger.warning(f"Reminder {reminder_id}: dropped action: {e}")

        return cls(
            id=reminder_id,
            title=title,
            description=str(data.get("description") or ""),
            severity=severity,
            trigger=trigger,
            actions=actions,
            is_active=_bool_field(data, "is_active", True, reminder_id),
            is_repeating=_bool_field(data, "is_repeating", False, reminder_id),
            created_at=_tick_field(data, "created_at", reminder_id),
            last_triggered_at=_tick_field(data, "last_triggered_at", reminder_id),
        )


def _bool_field(data: dict, key: str, default: bool, reminder_id: int) -> bool:
    value = data.get(key, default)
    if isinstance(value, bool):
        return value
    logger.warning(f"Reminder {reminder_id}: invalid {key} {value!r}, using {default}")
    return default


def _tick_field(data: dict, key: str, reminder_id: int) -> int:
    value = data.get(key, 0)
    if isinstance(value, bool):
        value = None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Reminder {reminder_id}: invalid {key} {value!r}, using 0")
        return 0


def create_time_reminder(
    title: str,
    trigger: TimeTrigger,
    description: str = "",
    severity: Severity = Severity.MEDIUM,
    repeating: bool = False,
    pause_on_fire: bool = False,
) -> Reminder:
    """Factory for a time reminder that notifies when it fires."""
    return Reminder(
        title=title,
        description=description,
        severity=severity,
        trigger=trigger,
        actions=[NotificationAction(pause_on_fire=pause_on_fire)],
        is_repeating=repeating,
    )


def create_quest_reminder(
    quest: Quest,
    lead_hours: int = 24,
    ctx: Optional[HostContext] = None,
    severity: Severity = Severity.HIGH,
    pause_on_fire: bool = False,
) -> Reminder:
    """Factory for a reminder that warns before a quest offer expires.

    Args:
        quest: The quest as currently seen by the host
        lead_hours: How long before expiry to fire
        ctx: When given, the trigger target is computed right away
        severity: Defaults to High
        pause_on_fire: Pause the host when the letter arrives
    """
    trigger = QuestDeadlineTrigger.hours_before(quest.id, lead_hours, ctx)
    trigger.quest_name = trigger.quest_name or quest.name
    return Reminder(
        title=f"Quest: {quest.name}",
        description=f"Quest deadline reminder for: {quest.name}",
        severity=severity,
        trigger=trigger,
        actions=[NotificationAction(pause_on_fire=pause_on_fire)],
    )
