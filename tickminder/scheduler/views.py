"""
Read-only views over a registry: statistics, urgency and sorted listings.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from tickminder.scheduler.reminder import Reminder
from tickminder.scheduler.severity import Severity
from tickminder.scheduler.triggers import TimeTrigger
from tickminder.ticks import TICKS_PER_DAY

DEFAULT_URGENT_WINDOW_TICKS = TICKS_PER_DAY


class SortMode(Enum):
    """Orderings for reminder listings."""
    TRIGGER_TIME = "trigger_time"
    CREATED = "created"
    SEVERITY = "severity"
    STATUS = "status"
    TITLE = "title"


def is_urgent(reminder: Reminder, now: int, window_ticks: int = DEFAULT_URGENT_WINDOW_TICKS) -> bool:
    """Time reminders due within the window, or any other reminder of High severity or above."""
    if not reminder.is_active:
        return False
    if isinstance(reminder.trigger, TimeTrigger):
        trigger = reminder.trigger
        if trigger.is_relative and trigger.target_tick <= 0:
            # Not armed yet
            return False
        return trigger.target_tick - now <= window_ticks
    return reminder.severity >= Severity.HIGH


def _trigger_time(reminder: Reminder) -> int:
    # Non-time triggers sort by creation time
    if isinstance(reminder.trigger, TimeTrigger):
        return reminder.trigger.target_tick
    return reminder.created_at


def sort_reminders(reminders: Iterable[Reminder], mode: SortMode = SortMode.TRIGGER_TIME) -> list[Reminder]:
    reminders = list(reminders)
    if mode == SortMode.CREATED:
        return sorted(reminders, key=lambda r: r.created_at, reverse=True)
    if mode == SortMode.SEVERITY:
        return sorted(reminders, key=lambda r: (-int(r.severity), _trigger_time(r)))
    if mode == SortMode.STATUS:
        return sorted(reminders, key=lambda r: (0 if r.is_active else 1, _trigger_time(r)))
    if mode == SortMode.TITLE:
        return sorted(reminders, key=lambda r: r.title)
    return sorted(reminders, key=_trigger_time)


def filtered_reminders(
    reminders: Iterable[Reminder],
    show_completed: bool = True,
    mode: SortMode = SortMode.TRIGGER_TIME,
) -> list[Reminder]:
    if not show_completed:
        reminders = [r for r in reminders if r.is_active]
    return sort_reminders(reminders, mode)


@dataclass
class ReminderStatistics:
    """Reminder counts by state and severity."""
    total_count: int = 0
    active_count: int = 0
    completed_count: int = 0
    urgent_count: int = 0
    severity_counts: dict[Severity, int] = field(default_factory=lambda: {s: 0 for s in Severity})

    @classmethod
    def collect(
        cls,
        reminders: Iterable[Reminder],
        now: int,
        window_ticks: int = DEFAULT_URGENT_WINDOW_TICKS,
    ) -> "ReminderStatistics":
        stats = cls()
        for reminder in reminders:
            stats.total_count += 1
            if reminder.is_active:
                stats.active_count += 1
            else:
                stats.completed_count += 1
            if is_urgent(reminder, now, window_ticks):
                stats.urgent_count += 1
            stats.severity_counts[reminder.severity] += 1
        return stats

    def summary(self) -> str:
        return f"Active: {self.active_count} | Urgent: {self.urgent_count} | Total: {self.total_count}"

    def to_dict(self) -> dict:
        return {
            "total": self.total_count,
            "active": self.active_count,
            "completed": self.completed_count,
            "urgent": self.urgent_count,
            "by_severity": {s.name.lower(): n for s, n in self.severity_counts.items()},
        }
