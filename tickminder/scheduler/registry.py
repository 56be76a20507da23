"""
Tickminder Reminder Registry

Owns the authoritative collection of reminders: assigns ids, provides CRUD,
and runs the evaluation loop the host pump calls on a fixed cadence.

The registry is constructed by the host's composition root with a
HostContext and passed explicitly to whoever needs it. One re-entrant lock
guards every public operation, so a host may call CRUD, evaluation and save
from different threads.
"""

import logging
import threading
from typing import Iterator, Optional

from tickminder.host import HostContext
from tickminder.scheduler.reminder import Reminder
from tickminder.scheduler.triggers import QuestDeadlineTrigger

logger = logging.getLogger(__name__)


class ReminderRegistry:
    """Manages reminders and evaluates their triggers."""

    def __init__(self, ctx: HostContext):
        """Initialize an empty registry.

        Args:
            ctx: Host clock, quest resolver and notification sink
        """
        self.ctx = ctx
        self._reminders: list[Reminder] = []
        self._next_id = 1
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._reminders)

    def __iter__(self) -> Iterator[Reminder]:
        return iter(self.all_reminders)

    @property
    def next_id(self) -> int:
        return self._next_id

    @property
    def all_reminders(self) -> list[Reminder]:
        with self._lock:
            return list(self._reminders)

    @property
    def active_reminders(self) -> list[Reminder]:
        with self._lock:
            return [r for r in self._reminders if r.is_active]

    @property
    def completed_reminders(self) -> list[Reminder]:
        with self._lock:
            return [r for r in self._reminders if not r.is_active]

    def add_reminder(self, reminder: Optional[Reminder]) -> Optional[int]:
        """Admit a reminder and assign it the next id.

        Returns:
            The new id, or None if the reminder was rejected
        """
        if reminder is None:
            logger.warning("Attempted to add null reminder")
            return None

        if not reminder.has_valid_title:
            logger.warning("Attempted to add reminder with empty title - ignoring")
            return None

        with self._lock:
            if any(r is reminder for r in self._reminders):
                logger.warning(f"Reminder '{reminder.title}' is already registered (ID: {reminder.id})")
                return None

            reminder.id = self._next_id
            self._next_id += 1
            if reminder.created_at == 0:
                reminder.created_at = self.ctx.now()
            self._reminders.append(reminder)

        logger.info(f"Added reminder: {reminder.title} (ID: {reminder.id})")
        return reminder.id

    def update_reminder(self, reminder: Optional[Reminder]) -> bool:
        """Replace the stored reminder that has the same id."""
        if reminder is None:
            logger.warning("Attempted to update null reminder")
            return False

        if not reminder.has_valid_title:
            logger.warning(f"Attempted to update reminder {reminder.id} with empty title - ignoring")
            return False

        with self._lock:
            for index, existing in enumerate(self._reminders):
                if existing.id == reminder.id:
                    self._reminders[index] = reminder
                    break
            else:
                logger.warning(f"Reminder with ID {reminder.id} not found for update")
                return False

        logger.info(f"Updated reminder: {reminder.title} (ID: {reminder.id})")
        return True

    def remove_reminder(self, reminder_id: int) -> bool:
        """Remove a reminder by id."""
        with self._lock:
            reminder = self._find(reminder_id)
            if reminder is None:
                logger.warning(f"Reminder with ID {reminder_id} not found for removal")
                return False
            self._reminders.remove(reminder)

        logger.info(f"Removed reminder: {reminder.title} (ID: {reminder_id})")
        return True

    def get_reminder(self, reminder_id: int) -> Optional[Reminder]:
        with self._lock:
            return self._find(reminder_id)

    def _find(self, reminder_id: int) -> Optional[Reminder]:
        for reminder in self._reminders:
            if reminder.id == reminder_id:
                return reminder
        return None

    def process_triggers(self) -> list[int]:
        """Evaluate every active reminder and fire the ones that are due.

        Works on a snapshot of the active reminders taken up front, with the
        clock pinned to the tick the cycle started on. All fire/no-fire
        decisions are made before any reminder fires, so one reminder's
        actions cannot change another's decision within the same cycle.
        A failure in one reminder is logged and the rest of the batch
        continues.

        Returns:
            Ids of the reminders that fired
        """
        with self._lock:
            batch = [r for r in self._reminders if r.is_active]
            if not batch:
                return []

            try:
                cycle_ctx = self.ctx.pinned()
            except Exception as e:
                logger.error(f"Clock unavailable, skipping trigger processing: {e}")
                return []

            due = []
            for reminder in batch:
                try:
                    if reminder.should_trigger(cycle_ctx):
                        due.append(reminder)
                except Exception as e:
                    logger.exception(f"Error evaluating reminder {reminder.title}: {e}")

            fired = []
            for reminder in due:
                try:
                    logger.info(f"Triggering reminder: {reminder.title}")
                    reminder.fire(cycle_ctx)
                    fired.append(reminder.id)
                    if not reminder.is_active:
                        logger.info(f"Reminder completed: {reminder.title}")
                except Exception as e:
                    logger.exception(f"Error processing reminder {reminder.title}: {e}")

        logger.debug(f"Processed {len(batch)} active reminders, fired {len(fired)}")
        return fired

    def complete_quest_reminders(self, quest_id: int) -> list[int]:
        """Complete active reminders watching a quest the player just accepted.

        Returns:
            Ids of the reminders that were completed
        """
        with self._lock:
            matching = [
                r for r in self._reminders
                if r.is_active and isinstance(r.trigger, QuestDeadlineTrigger) and r.trigger.quest_id == quest_id
            ]
            if not matching:
                return []

            now = self.ctx.now()
            for reminder in matching:
                reminder.complete(now)

        logger.info(f"Marked {len(matching)} quest reminders as completed for quest {quest_id}")
        return [r.id for r in matching]

    def clear_completed_reminders(self) -> int:
        """Drop every inactive reminder."""
        with self._lock:
            before = len(self._reminders)
            self._reminders = [r for r in self._reminders if r.is_active]
            count = before - len(self._reminders)

        logger.info(f"Cleared {count} completed reminders")
        return count

    def clear_all_reminders(self) -> int:
        with self._lock:
            count = len(self._reminders)
            self._reminders.clear()

        logger.info(f"Cleared {count} reminders")
        return count

    def restore(self, reminders: list[Reminder]) -> int:
        """Insert already-identified reminders, keeping their ids.

        Used when loading a save. Reminders with an empty title, a missing
        id or an id that is already taken are skipped. The id counter
        continues from the highest id seen.

        Returns:
            Number of reminders restored
        """
        restored = 0
        with self._lock:
            taken = {r.id for r in self._reminders}
            for reminder in reminders:
                if not reminder.has_valid_title:
                    logger.warning(f"Skipped loading empty reminder with ID: {reminder.id}")
                    continue
                if reminder.id <= 0 or reminder.id in taken:
                    logger.warning(f"Skipped reminder '{reminder.title}' with unusable ID: {reminder.id}")
                    continue
                self._reminders.append(reminder)
                taken.add(reminder.id)
                restored += 1

            if taken:
                self._next_id = max(self._next_id, max(taken) + 1)

        return restored

    def get_status(self) -> dict:
        """Summary of the registry for status displays."""
        with self._lock:
            return {
                "total": len(self._reminders),
                "active": sum(1 for r in self._reminders if r.is_active),
                "completed": sum(1 for r in self._reminders if not r.is_active),
                "next_id": self._next_id,
            }
