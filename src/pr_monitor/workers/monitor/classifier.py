"""Failure classification.

Maps the name of a failed workflow run to the kind of fixing agent that
should handle it. Rules are evaluated in order and the first match wins, so
"API Integration Tests" is an integration failure and "E2E Lint Check" an
E2E one.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum


class AgentCategory(str, Enum):
    """Specialised fixing agents."""

    E2E = "e2e-fix"
    LINT = "lint-fix"
    TYPE = "type-fix"
    BUILD = "build-fix"
    INTEGRATION = "integration-fix"
    UNIT_TEST = "unit-test-fix"
    API = "api-fix"
    GENERAL = "general-fix"

    @property
    def description(self) -> str:
        """Human-readable agent description."""
        return _DESCRIPTIONS[self]


_DESCRIPTIONS: dict[AgentCategory, str] = {
    AgentCategory.E2E: (
        "E2E Test Fixing Agent (reads E2E docs, fixes tests, ensures all checks pass)"
    ),
    AgentCategory.LINT: "Linting Agent (fixes code style issues)",
    AgentCategory.TYPE: "TypeScript Type Fixing Agent (resolves type errors)",
    AgentCategory.BUILD: "Build Fixing Agent (resolves build failures)",
    AgentCategory.INTEGRATION: (
        "Integration Test Fixing Agent (fixes integration test failures)"
    ),
    AgentCategory.UNIT_TEST: "Unit Test Fixing Agent (fixes unit test failures)",
    AgentCategory.API: "API Compatibility Fixing Agent (ensures API compliance)",
    AgentCategory.GENERAL: (
        "General Code Fixing Agent (investigates and fixes code issues)"
    ),
}


@dataclass(frozen=True)
class ClassificationRule:
    """Matches a run name containing any of the keywords (case-insensitive)."""

    category: AgentCategory
    keywords: tuple[str, ...]

    def matches(self, run_name: str) -> bool:
        name = run_name.lower()
        return any(keyword in name for keyword in self.keywords)


DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(AgentCategory.E2E, ("e2e",)),
    ClassificationRule(AgentCategory.LINT, ("lint",)),
    ClassificationRule(AgentCategory.TYPE, ("type",)),
    ClassificationRule(AgentCategory.BUILD, ("build",)),
    ClassificationRule(AgentCategory.INTEGRATION, ("integration",)),
    ClassificationRule(AgentCategory.UNIT_TEST, ("test", "unit")),
    ClassificationRule(AgentCategory.API, ("api", "compatibility")),
)


class FailureClassifier:
    """Ordered, first-match-wins rule list."""

    def __init__(
        self,
        rules: Sequence[ClassificationRule] = DEFAULT_RULES,
        default: AgentCategory = AgentCategory.GENERAL,
    ):
        self.rules = tuple(rules)
        self.default = default

    def classify(self, run_name: str) -> AgentCategory:
        """Pick the agent category for a failed run."""
        for rule in self.rules:
            if rule.matches(run_name):
                return rule.category
        return self.default


def classify(run_name: str) -> AgentCategory:
    """Classify with the default rules."""
    return FailureClassifier().classify(run_name)
