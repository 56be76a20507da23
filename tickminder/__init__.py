"""
Tickminder: player-defined reminders for a tick-driven simulation host.

Reminders fire at an in-game time or ahead of a quest offer's deadline and
deliver a letter to the player through the host. The core holds no clock
or quest data of its own; the host supplies them through small interfaces
and stores the reminder snapshot in its save file.
"""

__version__ = "0.1.0"

from tickminder.config import TickminderConfig

__all__ = ["TickminderConfig", "__version__"]
