"""
Tests for the Reminder model and its factories.
"""

import pytest

from tickminder.scheduler.actions import NotificationAction
from tickminder.scheduler.reminder import Reminder, create_quest_reminder, create_time_reminder
from tickminder.scheduler.severity import Severity
from tickminder.scheduler.triggers import QuestDeadlineTrigger, TimeTrigger
from tickminder.ticks import TICKS_PER_HOUR


class TestSeverity:
    """Test Severity parsing."""

    def test_ordering(self):
        """Test severity ordering."""
        assert Severity.LOW < Severity.MEDIUM < Severity.HIGH < Severity.CRITICAL < Severity.URGENT

    def test_parse(self):
        """Test parsing names, numbers and members."""
        assert Severity.parse("High") == Severity.HIGH
        assert Severity.parse(" urgent ") == Severity.URGENT
        assert Severity.parse(0) == Severity.LOW
        assert Severity.parse(Severity.CRITICAL) == Severity.CRITICAL

    @pytest.mark.parametrize("value", ["extreme", 9, None])
    def test_parse_rejects(self, value):
        """Test unknown values are rejected."""
        with pytest.raises(ValueError):
            Severity.parse(value)


class TestReminder:
    """Test Reminder behavior."""

    def test_defaults(self):
        """Test default field values."""
        reminder = Reminder(title="Harvest")
        assert reminder.id == 0
        assert reminder.severity == Severity.MEDIUM
        assert reminder.is_active
        assert not reminder.is_repeating
        assert reminder.actions == []
        assert reminder.status_label == "Active"

    @pytest.mark.parametrize("title", ["", "   ", None])
    def test_invalid_titles(self, title):
        """Test blank titles are invalid."""
        assert Reminder(title=title).has_valid_title is False

    def test_should_trigger_requires_active_and_trigger(self, ctx):
        """Test only active reminders with a trigger fire."""
        assert Reminder(title="No trigger").should_trigger(ctx) is False

        done = Reminder(title="Done", trigger=TimeTrigger.at_tick(0), is_active=False)
        assert done.should_trigger(ctx) is False

        due = Reminder(title="Due", trigger=TimeTrigger.at_tick(0))
        assert due.should_trigger(ctx) is True

    def test_fire_one_shot_completes(self, host, ctx):
        """Test a one-shot reminder completes when fired."""
        reminder = create_time_reminder("Harvest", TimeTrigger.at_tick(0))

        failures = reminder.fire(ctx)

        assert failures == 0
        assert not reminder.is_active
        assert reminder.is_completed
        assert reminder.last_triggered_at == 1000
        assert len(host.sink.notifications) == 1

    def test_fire_repeating_rearms_from_fire_time(self, host, ctx):
        """Test the next occurrence is measured from when it fired."""
        reminder = create_time_reminder("Feed", TimeTrigger.in_ticks(100, now=1000), repeating=True)
        host.clock.tick = 1130
        assert reminder.should_trigger(ctx)

        reminder.fire(ctx)

        assert reminder.is_active
        assert reminder.trigger.is_triggered is False
        assert reminder.trigger.target_tick == 1230
        assert reminder.last_triggered_at == 1130

    def test_fire_runs_remaining_actions_after_failure(self, host, ctx, exploding_action):
        """Test later actions run after a failure."""
        reminder = Reminder(
            title="Harvest",
            trigger=TimeTrigger.at_tick(0),
            actions=[exploding_action, NotificationAction()],
        )

        failures = reminder.fire(ctx)

        assert failures == 1
        assert len(host.sink.notifications) == 1
        assert not reminder.is_active

    def test_complete(self):
        """Test completing without firing."""
        reminder = Reminder(title="Quest")
        reminder.complete(now=500)
        assert not reminder.is_active
        assert reminder.last_triggered_at == 500
        assert reminder.status_label == "Completed"


class TestReminderSerialization:
    """Test Reminder.to_dict/from_dict."""

    def test_round_trip(self):
        """Test serialization round trip."""
        reminder = Reminder(
            id=5,
            title="Harvest",
            description="Rice",
            severity=Severity.CRITICAL,
            trigger=TimeTrigger.in_hours(3, now=100),
            actions=[NotificationAction(pause_on_fire=True)],
            is_repeating=True,
            created_at=100,
            last_triggered_at=50,
        )

        data = reminder.to_dict()

        assert data["severity"] == "critical"
        assert Reminder.from_dict(data) == reminder

    @pytest.mark.parametrize("record", [
        {"title": "No id"},
        {"id": 0, "title": "Zero"},
        {"id": -3, "title": "Negative"},
        {"id": "7", "title": "String id"},
        {"id": True, "title": "Bool id"},
        {"id": 4, "title": "   "},
        {"id": 4},
        "not a mapping",
    ])
    def test_rejects_missing_identity(self, record):
        """Test records without id or title are rejected."""
        with pytest.raises(ValueError):
            Reminder.from_dict(record)

    def test_bad_severity_falls_back_to_medium(self):
        """Test an unknown severity becomes Medium."""
        reminder = Reminder.from_dict({"id": 1, "title": "x", "severity": "apocalyptic"})
        assert reminder.severity == Severity.MEDIUM

    def test_bad_trigger_leaves_reminder_without_one(self):
        """Test an unknown trigger is dropped."""
        reminder = Reminder.from_dict({"id": 1, "title": "x", "trigger": {"kind": "teleport"}})
        assert reminder.trigger is None

    def test_bad_actions_are_dropped(self):
        """Test unknown actions are dropped."""
        reminder = Reminder.from_dict({
            "id": 1,
            "title": "x",
            "actions": [{"kind": "explode"}, {"kind": "notification"}, 12],
        })
        assert reminder.actions == [NotificationAction()]


class TestFactories:
    """Test reminder factories."""

    def test_create_time_reminder(self):
        """Test the time reminder factory."""
        reminder = create_time_reminder(
            "Harvest",
            TimeTrigger.in_days(2),
            severity=Severity.LOW,
            repeating=True,
            pause_on_fire=True,
        )
        assert reminder.is_repeating
        assert reminder.severity == Severity.LOW
        assert reminder.actions == [NotificationAction(pause_on_fire=True)]

    def test_create_quest_reminder(self, host, ctx):
        """Test the quest reminder factory."""
        quest = host.offer_quest("Raid", 72 * TICKS_PER_HOUR)

        reminder = create_quest_reminder(quest, lead_hours=12, ctx=ctx)

        assert reminder.title == "Quest: Raid"
        assert reminder.severity == Severity.HIGH
        assert isinstance(reminder.trigger, QuestDeadlineTrigger)
        assert reminder.trigger.quest_id == quest.id
        assert reminder.trigger.computed_target_tick == quest.expiry_tick - 12 * TICKS_PER_HOUR

    def test_create_quest_reminder_without_ctx(self, host):
        """Test the quest factory defers the target without a context."""
        quest = host.offer_quest("Raid", 72 * TICKS_PER_HOUR)

        reminder = create_quest_reminder(quest)

        assert reminder.trigger.computed_target_tick == 0
        assert reminder.trigger.quest_name == "Raid"
