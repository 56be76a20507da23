"""
Tests for ReminderRegistry: CRUD, id assignment and the evaluation loop.
"""

from dataclasses import dataclass
from typing import Callable, ClassVar

import pytest

from tickminder.scheduler.actions import Action, ActionKind, NotificationAction
from tickminder.scheduler.reminder import Reminder, create_quest_reminder, create_time_reminder
from tickminder.scheduler.triggers import TimeTrigger
from tickminder.ticks import TICKS_PER_HOUR


@dataclass
class CallbackAction(Action):
    """Runs an arbitrary callback when fired."""

    kind: ClassVar[ActionKind] = ActionKind.NOTIFICATION

    callback: Callable = None

    @property
    def description(self) -> str:
        return "Callback"

    def execute(self, reminder, ctx) -> None:
        self.callback()

    def to_dict(self) -> dict:
        return {"kind": "callback"}


class RaisingTrigger(TimeTrigger):
    def evaluate(self, ctx) -> bool:
        raise RuntimeError("corrupt trigger")


def due(title: str) -> Reminder:
    return create_time_reminder(title, TimeTrigger.at_tick(0))


class TestRegistryCrud:
    """Test adding, updating and removing reminders."""

    def test_ids_are_sequential(self, registry):
        """Test ids are assigned in order."""
        assert registry.add_reminder(due("A")) == 1
        assert registry.add_reminder(due("B")) == 2
        assert registry.next_id == 3
        assert len(registry) == 2

    def test_add_stamps_creation_tick(self, registry):
        """Test add stamps the creation tick."""
        reminder = due("A")
        registry.add_reminder(reminder)
        assert reminder.created_at == 1000

    def test_add_keeps_explicit_creation_tick(self, registry):
        """Test an explicit creation tick is kept."""
        reminder = Reminder(title="A", created_at=42)
        registry.add_reminder(reminder)
        assert reminder.created_at == 42

    @pytest.mark.parametrize("title", ["", "  "])
    def test_add_rejects_blank_title(self, registry, title):
        """Test blank titles are rejected."""
        assert registry.add_reminder(Reminder(title=title)) is None
        assert len(registry) == 0
        assert registry.next_id == 1

    def test_add_rejects_none(self, registry):
        """Test None is rejected."""
        assert registry.add_reminder(None) is None

    def test_add_rejects_same_object_twice(self, registry):
        """Test a reminder cannot be added twice."""
        reminder = due("A")
        registry.add_reminder(reminder)
        assert registry.add_reminder(reminder) is None
        assert len(registry) == 1

    def test_update(self, registry):
        """Test updating a reminder."""
        registry.add_reminder(due("A"))
        replacement = Reminder(id=1, title="A2")

        assert registry.update_reminder(replacement) is True
        assert registry.get_reminder(1) is replacement

    def test_update_unknown_or_blank(self, registry):
        """Test updates of unknown ids or blank titles fail."""
        registry.add_reminder(due("A"))
        assert registry.update_reminder(Reminder(id=9, title="X")) is False
        assert registry.update_reminder(Reminder(id=1, title=" ")) is False
        assert registry.update_reminder(None) is False
        assert registry.get_reminder(1).title == "A"

    def test_remove(self, registry):
        """Test removing a reminder."""
        registry.add_reminder(due("A"))
        assert registry.remove_reminder(1) is True
        assert registry.get_reminder(1) is None
        assert registry.remove_reminder(1) is False

    def test_ids_not_reused_after_removal(self, registry):
        """Test removed ids are never reused."""
        registry.add_reminder(due("A"))
        registry.remove_reminder(1)
        assert registry.add_reminder(due("B")) == 2

    def test_views(self, registry):
        """Test active and completed views."""
        registry.add_reminder(due("A"))
        done = due("B")
        done.is_active = False
        registry.add_reminder(done)

        assert [r.title for r in registry.active_reminders] == ["A"]
        assert [r.title for r in registry.completed_reminders] == ["B"]
        assert [r.title for r in registry] == ["A", "B"]

    def test_clear_completed(self, registry):
        """Test clearing completed reminders."""
        registry.add_reminder(due("A"))
        done = due("B")
        done.is_active = False
        registry.add_reminder(done)

        assert registry.clear_completed_reminders() == 1
        assert [r.title for r in registry] == ["A"]

    def test_clear_all(self, registry):
        """Test clearing everything."""
        registry.add_reminder(due("A"))
        registry.add_reminder(due("B"))
        assert registry.clear_all_reminders() == 2
        assert len(registry) == 0
        assert registry.next_id == 3

    def test_get_status(self, registry):
        """Test status reporting."""
        registry.add_reminder(due("A"))
        status = registry.get_status()
        assert status == {"total": 1, "active": 1, "completed": 0, "next_id": 2}


class TestRegistryRestore:
    """Test restoring identified reminders."""

    def test_keeps_ids_and_continues_after_max(self, registry):
        """Test restore keeps ids and continues after the max."""
        restored = registry.restore([Reminder(id=i, title=f"R{i}") for i in (3, 7, 12)])

        assert restored == 3
        assert registry.get_reminder(7).title == "R7"
        assert registry.add_reminder(due("New")) == 13

    def test_skips_unusable(self, registry):
        """Test restore skips unusable reminders."""
        restored = registry.restore([
            Reminder(id=1, title="ok"),
            Reminder(id=1, title="duplicate"),
            Reminder(id=0, title="no id"),
            Reminder(id=2, title="  "),
        ])

        assert restored == 1
        assert registry.get_reminder(1).title == "ok"
        assert registry.next_id == 2


class TestProcessTriggers:
    """Test the evaluation loop."""

    def test_fires_due_reminders_once(self, host, registry):
        """Test due reminders fire exactly once."""
        registry.add_reminder(due("Now"))
        registry.add_reminder(create_time_reminder("Later", TimeTrigger.in_hours(1, now=1000)))

        assert registry.process_triggers() == [1]
        assert registry.process_triggers() == []
        assert len(host.sink.notifications) == 1
        assert not registry.get_reminder(1).is_active
        assert registry.get_reminder(2).is_active

    def test_empty_registry(self, registry):
        """Test processing an empty registry."""
        assert registry.process_triggers() == []

    def test_repeating_stays_active(self, host, registry):
        """Test repeating reminders stay active."""
        registry.add_reminder(create_time_reminder("Feed", TimeTrigger.in_ticks(100, now=1000), repeating=True))

        host.clock.tick = 1100
        assert registry.process_triggers() == [1]
        host.clock.tick = 1199
        assert registry.process_triggers() == []
        host.clock.tick = 1200
        assert registry.process_triggers() == [1]
        assert len(host.sink.notifications) == 2

    def test_decisions_use_cycle_start_tick(self, host, registry):
        """An action that moves the clock cannot make a later reminder due."""
        registry.add_reminder(Reminder(
            title="Time skip",
            trigger=TimeTrigger.at_tick(0),
            actions=[CallbackAction(callback=lambda: host.clock.advance(10 ** 6))],
        ))
        registry.add_reminder(create_time_reminder("Far future", TimeTrigger.at_tick(500_000)))

        assert registry.process_triggers() == [1]
        assert registry.get_reminder(2).is_active

    def test_reminders_added_during_cycle_wait(self, host, registry):
        """Test a reminder added by an action is not evaluated in the same cycle."""
        registry.add_reminder(Reminder(
            title="Spawner",
            trigger=TimeTrigger.at_tick(0),
            actions=[CallbackAction(callback=lambda: registry.add_reminder(due("Spawned")))],
        ))

        assert registry.process_triggers() == [1]
        assert registry.get_reminder(2).is_active
        assert registry.process_triggers() == [2]

    def test_failed_action_still_fires(self, host, registry, exploding_action):
        """Test a failed action does not stop firing."""
        registry.add_reminder(Reminder(
            title="Partial",
            trigger=TimeTrigger.at_tick(0),
            actions=[exploding_action, NotificationAction()],
        ))
        registry.add_reminder(due("Other"))

        assert registry.process_triggers() == [1, 2]
        assert len(host.sink.notifications) == 2
        assert not registry.get_reminder(1).is_active

    def test_evaluation_error_isolated(self, host, registry):
        """Test one failing trigger does not block the others."""
        registry.add_reminder(Reminder(title="Broken", trigger=RaisingTrigger()))
        registry.add_reminder(due("Healthy"))

        assert registry.process_triggers() == [2]
        assert registry.get_reminder(1).is_active


class TestCompleteQuestReminders:
    """Test completing reminders when a quest is accepted."""

    def test_completes_matching_only(self, host, registry):
        """Test only reminders for the quest are completed."""
        raid = host.offer_quest("Raid", 72 * TICKS_PER_HOUR)
        caravan = host.offer_quest("Caravan", 72 * TICKS_PER_HOUR)
        registry.add_reminder(create_quest_reminder(raid, 24, host.ctx))
        registry.add_reminder(create_quest_reminder(raid, 6, host.ctx))
        registry.add_reminder(create_quest_reminder(caravan, 24, host.ctx))

        completed = registry.complete_quest_reminders(raid.id)

        assert completed == [1, 2]
        assert not registry.get_reminder(1).is_active
        assert registry.get_reminder(1).last_triggered_at == 1000
        assert registry.get_reminder(3).is_active
        assert host.sink.notifications == []

    def test_no_match(self, registry):
        """Test an unknown quest completes nothing."""
        assert registry.complete_quest_reminders(99) == []
