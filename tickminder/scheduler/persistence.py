"""
Tickminder Persistence

Converts the registry to and from a snapshot the host stores in its save
data, and optionally writes that snapshot to a JSON file.

Snapshot layout (schema version 2):

    {
        "schemaVersion": 2,
        "reminders": [
            {
                "id": 3, "title": "...", "severity": "high", ...,
                "trigger": {"kind": "time" | "quest-deadline", ...},
                "actions": [{"kind": "notification", ...}]
            }
        ]
    }

Schema history:
- 1: legacy camelCase layout ("createdTick", trigger "type": "Time"/"Quest",
  "daysFromNow", "hoursBeforeExpiry", action "letterType"). Snapshots
  without a version are version 1.
- 2: snake_case fields, triggers and actions tagged by "kind", relative
  time offsets carry their unit, quest lead time stored in ticks.

Loading never fails as a whole: bad records are skipped, an undecodable
trigger leaves its reminder without one, and undecodable actions are
dropped.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from tickminder.errors import ReminderStoreError
from tickminder.host import HostContext
from tickminder.scheduler.reminder import Reminder
from tickminder.scheduler.registry import ReminderRegistry
from tickminder.ticks import TICKS_PER_HOUR

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

_LEGACY_LETTER_CLASSES = {
    "PositiveEvent": "positive",
    "NegativeEvent": "negative",
    "ThreatSmall": "threat_small",
    "ThreatBig": "threat_big",
    # NeutralEvent was the legacy default and meant "derive from severity"
}


def _migrate_v1_trigger(trigger: Any) -> Optional[dict]:
    if not isinstance(trigger, dict):
        return None

    trigger_type = str(trigger.get("type", "")).lower()
    if trigger_type == "time":
        # Legacy relative offsets were always re-armed in days
        return {
            "kind": "time",
            "is_triggered": trigger.get("isTriggered", False),
            "target_tick": trigger.get("targetTick", 0),
            "is_relative": trigger.get("isRelativeTime", True),
            "relative_magnitude": trigger.get("daysFromNow", 1),
            "relative_unit": "days",
        }
    if trigger_type == "quest":
        return {
            "kind": "quest-deadline",
            "is_triggered": trigger.get("isTriggered", False),
            "quest_id": trigger.get("questId"),
            "lead_ticks": int(trigger.get("hoursBeforeExpiry", 24)) * TICKS_PER_HOUR,
            "computed_target_tick": trigger.get("calculatedTriggerTick", 0),
        }

    logger.warning(f"Unknown legacy trigger type: {trigger.get('type')!r}")
    return None


def _migrate_v1_action(action: Any) -> Optional[dict]:
    if not isinstance(action, dict) or str(action.get("type", "")).lower() != "notification":
        logger.warning(f"Dropping unknown legacy action: {action!r}")
        return None
    return {
        "kind": "notification",
        "custom_title": action.get("customTitle", ""),
        "custom_text": action.get("customText", ""),
        "pause_on_fire": action.get("pauseGame", False),
        "notification_class": _LEGACY_LETTER_CLASSES.get(action.get("letterType")),
    }


def migrate_v1_to_v2(record: dict) -> dict:
    """Rewrite a legacy record in the version 2 layout.

    A trigger that cannot be migrated is dropped; identity and text are kept.
    """
    try:
        trigger = _migrate_v1_trigger(record.get("trigger"))
    except (TypeError, ValueError) as e:
        logger.warning(f"Reminder {record.get('id')}: legacy trigger dropped: {e}")
        trigger = None

    actions = [a for a in (_migrate_v1_action(a) for a in record.get("actions") or []) if a is not None]

    return {
        "id": record.get("id"),
        "title": record.get("title"),
        "description": record.get("description", ""),
        "severity": record.get("severity", "Medium"),
        "is_active": record.get("isActive", True),
        "is_repeating": record.get("isRepeating", False),
        "created_at": record.get("createdTick", 0),
        "last_triggered_at": record.get("lastTriggeredTick", 0),
        "trigger": trigger,
        "actions": actions,
    }


# version -> migration to version + 1
MIGRATIONS: dict[int, Callable[[dict], dict]] = {
    1: migrate_v1_to_v2,
}


def migrate_record(record: dict, version: int) -> dict:
    """Bring a record from `version` up to SCHEMA_VERSION.

    Records newer than SCHEMA_VERSION are returned unchanged and read
    best-effort as the current layout.
    """
    if not isinstance(record, dict):
        raise ValueError(f"Reminder record must be a mapping, got {type(record).__name__}")
    while version < SCHEMA_VERSION:
        migration = MIGRATIONS.get(version)
        if migration is None:
            raise ValueError(f"No migration from schema version {version}")
        record = migration(record)
        version += 1
    return record


class ReminderPersistence:
    """Saves a registry to a snapshot and loads a snapshot into a new registry."""

    def __init__(self, ctx: HostContext):
        """Initialize the adapter.

        Args:
            ctx: Host context handed to loaded registries and used to
                recompute derived trigger targets right after load
        """
        self.ctx = ctx

    def save(self, registry: ReminderRegistry) -> dict:
        """Capture every reminder, active and completed."""
        reminders = registry.all_reminders
        snapshot = {
            "schemaVersion": SCHEMA_VERSION,
            "reminders": [reminder.to_dict() for reminder in reminders],
        }
        logger.info(f"Saved {len(reminders)} reminders (schema v{SCHEMA_VERSION})")
        return snapshot

    def load(self, snapshot: Any) -> ReminderRegistry:
        """Build a fresh registry from a snapshot."""
        registry = ReminderRegistry(self.ctx)

        if not isinstance(snapshot, dict):
            logger.error(f"Snapshot must be a mapping, got {type(snapshot).__name__}; starting empty")
            return registry

        version = self._schema_version(snapshot)
        if version > SCHEMA_VERSION:
            logger.warning(
                f"Snapshot schema v{version} is newer than v{SCHEMA_VERSION}; loading best-effort"
            )

        records = snapshot.get("reminders") or []
        if not isinstance(records, list):
            logger.error("Snapshot 'reminders' is not a list; starting empty")
            return registry

        reminders = []
        skipped = 0
        for index, record in enumerate(records):
            try:
                reminders.append(Reminder.from_dict(migrate_record(record, version)))
            except (ValueError, TypeError, KeyError) as e:
                skipped += 1
                logger.warning(f"Skipping invalid reminder record #{index}: {e}")

        restored = registry.restore(reminders)
        skipped += len(reminders) - restored

        for reminder in registry.all_reminders:
            if reminder.trigger is None:
                continue
            try:
                reminder.trigger.refresh(self.ctx)
            except Exception as e:
                logger.warning(f"Could not recompute trigger for reminder {reminder.id}: {e}")

        logger.info(
            f"Loaded {restored} reminders from save"
            + (f", skipped {skipped} invalid records" if skipped else "")
        )
        return registry

    @staticmethod
    def _schema_version(snapshot: dict) -> int:
        raw = snapshot.get("schemaVersion", 1)
        if isinstance(raw, bool) or not isinstance(raw, int) or raw < 1:
            logger.warning(f"Invalid schema version {raw!r}, assuming v1")
            return 1
        return raw


class ReminderStore:
    """JSON file transport for snapshots.

    Writes go to a temporary file that replaces the target, so a crash never
    leaves a half-written save. A file that is not valid JSON is moved aside
    to '<name>.json.bak' and treated as empty.
    """

    def __init__(self, path: Path, backup_corrupt: bool = True):
        self.path = Path(path)
        self.backup_corrupt = backup_corrupt

    def exists(self) -> bool:
        return self.path.exists()

    def write(self, snapshot: dict) -> None:
        """Write a snapshot atomically.

        Raises:
            ReminderStoreError: If the file cannot be written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self.path.with_suffix(".tmp")
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2)
            temp_path.replace(self.path)
            logger.debug(f"Wrote snapshot to {self.path}")
        except OSError as e:
            logger.error(f"Failed to write snapshot: {e}", exc_info=True)
            raise ReminderStoreError(f"Cannot write {self.path}: {e}") from e

    def read(self) -> Optional[dict]:
        """Read a snapshot.

        Returns:
            The snapshot, or None if the file is missing or was corrupt

        Raises:
            ReminderStoreError: If the file exists but cannot be read
        """
        if not self.path.exists():
            logger.info(f"No snapshot at {self.path}, starting fresh")
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Corrupted snapshot in {self.path}: {e}")
            self._backup()
            return None
        except OSError as e:
            logger.error(f"Failed to read snapshot: {e}", exc_info=True)
            raise ReminderStoreError(f"Cannot read {self.path}: {e}") from e

    def _backup(self) -> None:
        if not self.backup_corrupt:
            return
        backup_path = self.path.with_suffix(".json.bak")
        try:
            self.path.replace(backup_path)
            logger.warning(f"Backed up corrupted snapshot to: {backup_path}")
        except OSError as e:
            logger.error(f"Failed to back up corrupted snapshot: {e}")
