"""
Tickminder Tick Pump

Host-side adapter that turns the host's per-tick callback into a coarser
trigger-processing cadence. The registry never owns a clock; the pump is
what the host hooks into its tick loop.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from tickminder.scheduler.registry import ReminderRegistry

logger = logging.getLogger(__name__)

MIN_PROCESSING_INTERVAL = 1
MAX_PROCESSING_INTERVAL = 1000
DEFAULT_PROCESSING_INTERVAL = 60


def clamp_interval(interval: int) -> int:
    return max(MIN_PROCESSING_INTERVAL, min(MAX_PROCESSING_INTERVAL, int(interval)))


@dataclass
class PumpStatus:
    """Counters for status displays."""
    cycles: int = 0
    fired: int = 0
    errors: int = 0
    last_process_tick: Optional[int] = None


class TickPump:
    """Calls ReminderRegistry.process_triggers every `interval` ticks."""

    def __init__(
        self,
        registry: ReminderRegistry,
        interval: int = DEFAULT_PROCESSING_INTERVAL,
        enabled: bool = True,
    ):
        """Initialize the pump.

        Args:
            registry: Registry to drive
            interval: Ticks between processing cycles (clamped to 1..1000)
            enabled: When False, on_tick does nothing
        """
        self.registry = registry
        self.enabled = enabled
        self.status = PumpStatus()
        self._interval = DEFAULT_PROCESSING_INTERVAL
        self._last_process_tick = 0
        self.interval = interval

    @property
    def interval(self) -> int:
        return self._interval

    @interval.setter
    def interval(self, value: int) -> None:
        clamped = clamp_interval(value)
        if clamped != value:
            logger.warning(f"Processing interval {value} out of range, using {clamped}")
        self._interval = clamped

    def on_tick(self) -> list[int]:
        """Host tick hook.

        Returns:
            Ids fired by this tick's processing cycle, if one ran
        """
        if not self.enabled:
            return []

        try:
            current_tick = self.registry.ctx.now()
            if current_tick - self._last_process_tick < self._interval:
                return []
            self._last_process_tick = current_tick
            return self.run_cycle()
        except Exception as e:
            self.status.errors += 1
            logger.error(f"Error in tick pump: {e}")
            return []

    def ticks_until_due(self) -> int:
        """Ticks until on_tick would next run a cycle (at least 1)."""
        return max(1, self._last_process_tick + self._interval - self.registry.ctx.now())

    def run_cycle(self) -> list[int]:
        """Process triggers now, regardless of cadence."""
        fired = self.registry.process_triggers()
        self.status.cycles += 1
        self.status.fired += len(fired)
        self.status.last_process_tick = self.registry.ctx.now()
        return fired

    def get_status(self) -> dict:
        return {
            "enabled": self.enabled,
            "interval": self._interval,
            "cycles": self.status.cycles,
            "fired": self.status.fired,
            "errors": self.status.errors,
            "last_process_tick": self.status.last_process_tick,
        }
