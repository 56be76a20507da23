"""
Shared fixtures: an in-memory host starting at tick 1000.
"""

from dataclasses import dataclass
from typing import ClassVar

import pytest

from tickminder.scheduler.actions import Action, ActionKind
from tickminder.simulation import SimulatedHost


@dataclass
class ExplodingAction(Action):
    """Action that always raises."""

    kind: ClassVar[ActionKind] = ActionKind.NOTIFICATION

    @property
    def description(self) -> str:
        return "Explode"

    def execute(self, reminder, ctx) -> None:
        raise RuntimeError("boom")

    def to_dict(self) -> dict:
        return {"kind": "exploding"}


@pytest.fixture
def host():
    """Simulated host at tick 1000 with the default 60 tick cadence."""
    return SimulatedHost(start_tick=1000)


@pytest.fixture
def ctx(host):
    return host.ctx


@pytest.fixture
def registry(host):
    return host.registry


@pytest.fixture
def exploding_action():
    return ExplodingAction()
