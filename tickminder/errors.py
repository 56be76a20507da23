"""
Tickminder exceptions.

The scheduling core itself never raises to its callers; these cover the
edges where a caller has to know something went wrong (file transport,
configuration files).
"""


class TickminderError(Exception):
    """Base exception for Tickminder."""
    pass


class ReminderStoreError(TickminderError):
    """A snapshot file could not be read or written."""
    pass


class ConfigError(TickminderError):
    """The configuration file is malformed."""
    pass


class SessionError(TickminderError):
    """A simulation session file is missing or malformed."""
    pass
