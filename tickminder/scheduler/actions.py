"""
Tickminder Actions

Effects executed when a reminder fires. The set of action kinds is closed;
the only kind is a notification handed to the host's letter sink.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional

from tickminder.host import HostContext, NotificationClass, Quest
from tickminder.scheduler.severity import Severity
from tickminder.scheduler.triggers import QuestDeadlineTrigger

if TYPE_CHECKING:
    from tickminder.scheduler.reminder import Reminder

logger = logging.getLogger(__name__)


class ActionKind(Enum):
    """Wire tags of the action variants."""
    NOTIFICATION = "notification"


SEVERITY_NOTIFICATION_CLASSES = {
    Severity.LOW: NotificationClass.POSITIVE,
    Severity.MEDIUM: NotificationClass.NEUTRAL,
    Severity.HIGH: NotificationClass.NEGATIVE,
    Severity.CRITICAL: NotificationClass.THREAT_SMALL,
    Severity.URGENT: NotificationClass.THREAT_BIG,
}


@dataclass
class Action(ABC):
    """An effect owned by exactly one reminder."""

    kind: ClassVar[ActionKind]

    @abstractmethod
    def execute(self, reminder: "Reminder", ctx: HostContext) -> None:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @abstractmethod
    def to_dict(self) -> dict:
        pass

    def run(self, reminder: "Reminder", ctx: HostContext) -> bool:
        """Execute, logging instead of raising.

        Returns:
            True if the action completed
        """
        try:
            self.execute(reminder, ctx)
            return True
        except Exception as e:
            title = reminder.title if reminder is not None else "<none>"
            logger.exception(f"Action '{self.description}' failed for reminder '{title}': {e}")
            return False


@dataclass
class NotificationAction(Action):
    """Send a letter for the reminder, optionally pausing the host.

    Title and text default to the reminder's own. The notification class
    defaults to one derived from the reminder's severity. Critical and
    urgent reminders always pause.
    """

    kind: ClassVar[ActionKind] = ActionKind.NOTIFICATION

    custom_title: str = ""
    custom_text: str = ""
    pause_on_fire: bool = False
    notification_class: Optional[NotificationClass] = None

    @property
    def description(self) -> str:
        return f"Show notification{' and pause' if self.pause_on_fire else ''}"

    def resolve_class(self, severity: Severity) -> NotificationClass:
        if self.notification_class is not None:
            return self.notification_class
        return SEVERITY_NOTIFICATION_CLASSES.get(severity, NotificationClass.NEUTRAL)

    def _related_quest(self, reminder: "Reminder", ctx: HostContext) -> Optional[Quest]:
        trigger = reminder.trigger
        if not isinstance(trigger, QuestDeadlineTrigger):
            return None
        try:
            return ctx.find_quest(trigger.quest_id)
        except Exception as e:
            logger.warning(f"Could not resolve quest {trigger.quest_id} for notification link: {e}")
            return None

    def execute(self, reminder: "Reminder", ctx: HostContext) -> None:
        if reminder is None:
            logger.warning("NotificationAction: cannot execute with no reminder")
            return

        title = self.custom_title or reminder.title
        text = self.custom_text or reminder.description or ""
        notification_class = self.resolve_class(reminder.severity)
        quest = self._related_quest(reminder, ctx)

        ctx.sink.send(title, text, notification_class, quest)

        if self.pause_on_fire or reminder.severity >= Severity.CRITICAL:
            ctx.sink.request_pause()

        logger.info(
            f"Notification sent: {title}"
            + (f" (with quest link: {quest.name})" if quest is not None else "")
        )

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "custom_title": self.custom_title,
            "custom_text": self.custom_text,
            "pause_on_fire": self.pause_on_fire,
            "notification_class": self.notification_class.value if self.notification_class else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "NotificationAction":
        raw_class = data.get("notification_class")
        return cls(
            custom_title=str(data.get("custom_title") or ""),
            custom_text=str(data.get("custom_text") or ""),
            pause_on_fire=bool(data.get("pause_on_fire", False)),
            notification_class=NotificationClass(raw_class) if raw_class else None,
        )


ACTION_TYPES: dict[str, type] = {
    ActionKind.NOTIFICATION.value: NotificationAction,
}


def action_from_dict(data: dict) -> Action:
    """Decode a tagged action table.

    Raises:
        ValueError: unknown kind or malformed fields
    """
    if not isinstance(data, dict):
        raise ValueError(f"Action record must be a mapping, got {type(data).__name__}")
    kind = data.get("kind")
    action_cls = ACTION_TYPES.get(kind)
    if action_cls is None:
        raise ValueError(f"Unknown action kind: {kind!r}")
    try:
        return action_cls.from_dict(data)
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed {kind} action: {e}") from e
