"""
Tickminder Scheduler System

The scheduling core:
- Reminders binding one trigger to an ordered list of actions
- Time and quest-deadline triggers evaluated against the host clock
- A registry that owns reminders and runs the evaluation loop
- Versioned snapshots for the host's save data
"""

from tickminder.scheduler.actions import Action, NotificationAction
from tickminder.scheduler.persistence import SCHEMA_VERSION, ReminderPersistence, ReminderStore
from tickminder.scheduler.pump import TickPump
from tickminder.scheduler.registry import ReminderRegistry
from tickminder.scheduler.reminder import Reminder, create_quest_reminder, create_time_reminder
from tickminder.scheduler.severity import Severity
from tickminder.scheduler.triggers import QuestDeadlineTrigger, TimeTrigger, Trigger
from tickminder.scheduler.views import ReminderStatistics, SortMode

__all__ = [
    "Action",
    "NotificationAction",
    "QuestDeadlineTrigger",
    "Reminder",
    "ReminderPersistence",
    "ReminderRegistry",
    "ReminderStatistics",
    "ReminderStore",
    "SCHEMA_VERSION",
    "Severity",
    "SortMode",
    "TickPump",
    "TimeTrigger",
    "Trigger",
    "create_quest_reminder",
    "create_time_reminder",
]
