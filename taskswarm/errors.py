"""Exceptions raised by the swarm engine."""

from __future__ import annotations


class SwarmError(Exception):
    """Base class for all taskswarm errors."""


class CycleError(SwarmError):
    """The dependency graph cannot be ordered because it contains a cycle."""

    def __init__(self, unordered: list[str] | None = None) -> None:
        super().__init__("Dependency graph contains a cycle")
        self.unordered = unordered or []


class InvalidStateError(SwarmError, ValueError):
    """Serialized swarm data failed validation."""


class InvalidPlanError(SwarmError, ValueError):
    """A plan failed dependency validation and cannot be executed."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("Invalid swarm plan: " + "; ".join(errors))
        self.errors = errors


class SwarmStateNotFoundError(SwarmError, LookupError):
    """No loadable state exists for the named swarm."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Swarm state not found for: {name}")
        self.name = name


class SwarmIncompleteError(SwarmError):
    """A run ended while tasks were still in progress elsewhere.

    The swarm is left active on disk so it can be resumed.
    """

    def __init__(self, name: str, in_progress: list[str]) -> None:
        super().__init__(
            f"Swarm {name} still has tasks in progress: {', '.join(in_progress)}"
        )
        self.name = name
        self.in_progress = in_progress
