"""Intent classification record consumed by the planner.

The classifier itself lives outside this package; these types describe the
record it hands over.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from taskswarm.swarm.types import ModelTier


class IntentType(StrEnum):
    RESEARCH = "research"
    IMPLEMENTATION = "implementation"
    DEBUGGING = "debugging"
    REVIEW = "review"
    PLANNING = "planning"
    REFACTORING = "refactoring"
    MAINTENANCE = "maintenance"
    CONVERSATION = "conversation"


class Complexity(StrEnum):
    TRIVIAL = "trivial"
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"
    ARCHITECTURAL = "architectural"


class Domain(StrEnum):
    FRONTEND = "frontend"
    BACKEND = "backend"
    DATABASE = "database"
    DEVOPS = "devops"
    SECURITY = "security"
    TESTING = "testing"
    DOCUMENTATION = "documentation"
    GENERAL = "general"


@dataclass
class UserSignals:
    """Behavioural hints detected in the user's request."""

    wants_persistence: bool = False
    wants_speed: bool = False
    wants_autonomy: bool = False
    wants_planning: bool = False
    wants_verification: bool = False
    wants_thorough: bool = False


@dataclass
class AgentRecommendation:
    """The classifier's suggestion for which agents to run and how."""

    agents: list[str] = field(default_factory=lambda: ["executor"])
    parallelism: str = "sequential"  # sequential | parallel | swarm
    model_tier: ModelTier = ModelTier.SONNET
    verification: bool = False


@dataclass
class IntentClassification:
    """A classified user request."""

    type: str
    complexity: str
    domains: list[str] = field(default_factory=list)
    signals: UserSignals = field(default_factory=UserSignals)
    recommendation: AgentRecommendation = field(default_factory=AgentRecommendation)
    confidence: float = 1.0
    reasoning: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IntentClassification:
        """Build a classification from the classifier's JSON output.

        Accepts both camelCase (``wantsThorough``) and snake_case keys.
        Missing or malformed sections fall back to their defaults, and a bare
        string where a list is expected is taken as a one-item list.
        """
        raw_signals = _section(data, "signals")
        signals = UserSignals(
            **{
                name: bool(_pick(raw_signals, name, False))
                for name in UserSignals.__dataclass_fields__
            }
        )

        raw_rec = _section(data, "recommendation")
        tier = _pick(raw_rec, "model_tier", ModelTier.SONNET)
        if tier not in ModelTier._value2member_map_:
            tier = ModelTier.SONNET
        recommendation = AgentRecommendation(
            agents=_str_list(raw_rec.get("agents")) or ["executor"],
            parallelism=str(raw_rec.get("parallelism", "sequential")),
            model_tier=ModelTier(tier),
            verification=bool(raw_rec.get("verification", False)),
        )

        return cls(
            type=str(data.get("type", IntentType.IMPLEMENTATION)),
            complexity=str(data.get("complexity", Complexity.MODERATE)),
            domains=_str_list(data.get("domains")),
            signals=signals,
            recommendation=recommendation,
            confidence=float(data.get("confidence", 1.0)),
            reasoning=data.get("reasoning"),
        )


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return []


def _pick(data: dict[str, Any], snake_name: str, default: Any) -> Any:
    """Look up *snake_name* or its camelCase spelling in *data*."""
    if snake_name in data:
        return data[snake_name]
    head, *rest = snake_name.split("_")
    camel = head + "".join(part.capitalize() for part in rest)
    return data.get(camel, default)
