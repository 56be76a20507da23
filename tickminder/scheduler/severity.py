"""
Reminder severity levels.
"""

from enum import IntEnum
from typing import Union


class Severity(IntEnum):
    """How important a reminder is. Ordered: LOW < ... < URGENT."""
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3
    URGENT = 4

    @classmethod
    def parse(cls, value: Union[str, int, "Severity"]) -> "Severity":
        """Accept a member, its name in any case, or its integer value.

        Raises:
            ValueError: if the value names no severity
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            if key in cls.__members__:
                return cls[key]
            raise ValueError(f"Unknown severity: {value!r}")
        try:
            return cls(int(value))
        except TypeError as e:
            raise ValueError(f"Unknown severity: {value!r}") from e

    @property
    def label(self) -> str:
        return self.name.capitalize()
