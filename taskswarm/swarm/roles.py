"""Catalog of worker agent roles available to swarm plans."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from taskswarm.swarm.types import ModelTier


@dataclass
class AgentRole:
    """A worker agent type that tasks can be assigned to."""

    name: str
    description: str
    default_model: ModelTier
    domains: list[str]
    lightweight: bool = False  # eligible for haiku on simple work


AGENT_ROLES: dict[str, AgentRole] = {
    "explore": AgentRole(
        name="explore",
        description="Fast codebase search and file discovery",
        default_model=ModelTier.HAIKU,
        domains=["general", "documentation"],
        lightweight=True,
    ),
    "executor": AgentRole(
        name="executor",
        description="Standard feature implementation and bug fixes",
        default_model=ModelTier.OPUS,
        domains=["general", "backend", "frontend", "testing"],
    ),
    "executor-low": AgentRole(
        name="executor-low",
        description="Simple boilerplate and trivial changes",
        default_model=ModelTier.HAIKU,
        domains=["general", "documentation"],
        lightweight=True,
    ),
    "architect": AgentRole(
        name="architect",
        description="Deep analysis, debugging, and architectural decisions",
        default_model=ModelTier.OPUS,
        domains=["general", "backend", "frontend", "database", "devops"],
    ),
    "designer": AgentRole(
        name="designer",
        description="UI/UX design, component creation, and styling",
        default_model=ModelTier.OPUS,
        domains=["frontend"],
    ),
    "qa-tester": AgentRole(
        name="qa-tester",
        description="Test writing, TDD workflow, and quality checks",
        default_model=ModelTier.OPUS,
        domains=["testing", "general"],
    ),
    "security": AgentRole(
        name="security",
        description="Security audits and vulnerability analysis",
        default_model=ModelTier.OPUS,
        domains=["security", "backend", "devops"],
    ),
    "researcher": AgentRole(
        name="researcher",
        description="External research and documentation analysis",
        default_model=ModelTier.OPUS,
        domains=["documentation", "general"],
    ),
    "writer": AgentRole(
        name="writer",
        description="Documentation writing and maintenance",
        default_model=ModelTier.HAIKU,
        domains=["documentation"],
        lightweight=True,
    ),
    "planner": AgentRole(
        name="planner",
        description="Strategic planning and task breakdown",
        default_model=ModelTier.OPUS,
        domains=["general"],
    ),
    "critic": AgentRole(
        name="critic",
        description="Plan review and critical analysis",
        default_model=ModelTier.OPUS,
        domains=["general"],
    ),
}


def get_role(name: str) -> AgentRole | None:
    """Get an agent role by name."""
    return AGENT_ROLES.get(name.lower())


def list_roles() -> list[str]:
    """List available role names."""
    return list(AGENT_ROLES.keys())


def lightweight_roles() -> frozenset[str]:
    """Names of roles cheap enough to run on haiku for simple work."""
    return frozenset(role.name for role in AGENT_ROLES.values() if role.lightweight)


def get_all_roles_info() -> list[dict[str, Any]]:
    """Get info about all roles for display purposes."""
    return [
        {
            "name": role.name,
            "description": role.description,
            "default_model": str(role.default_model),
            "domains": role.domains,
        }
        for role in AGENT_ROLES.values()
    ]
