"""Prompt templates for fixing agents and failure analysis.

Templates are ``str.format`` strings with ``pr_number`` and
``failure_context`` placeholders. Every agent creates a local commit and
must not push.
"""

from .classifier import AgentCategory

FAILURE_ANALYSIS_PROMPT = (
    "Analyze this workflow failure in the context of the PR changes. Suggest "
    "what might be causing the failure and how to fix it. Be specific and concise."
)

COMMENT_ANALYSIS_PROMPT = (
    "Analyze this PR review comment and provide insights on what changes might "
    "be needed. Be concise."
)

E2E_TEMPLATE = """\
You are a specialized E2E Test Fixing Agent for PR #{pr_number}.

**Your Task:**
Fix the failing E2E tests in this PR. The tests are failing with the following context:

{failure_context}

**Important Instructions:**
1. First, read ALL E2E testing documentation in this repository (look for files like CLAUDE.md, E2E-TESTING.md, .claude/memories/e2e-testing.md, etc.)
2. Understand the project's E2E testing best practices and patterns
3. Investigate the failing tests and identify the root cause
4. Fix the issues following the project's conventions
5. Run ALL quality checks to ensure everything passes (lint, typecheck, build, unit tests, E2E tests)
6. Create a commit with a clear message explaining what was fixed
7. DO NOT PUSH - only create the commit locally

**Output Requirements:**
- Log every step you take so the user can see your progress in real-time
- If you find documentation, quote relevant sections
- Show all command outputs
- Explain your reasoning for each fix
- Confirm all checks pass before committing

Begin your work now. Be thorough and methodical.
"""

LINT_TEMPLATE = """\
You are a specialized Linting Agent for PR #{pr_number}.

**Your Task:**
Fix all linting issues in this PR.

{failure_context}

**Instructions:**
1. Run the project's lint command to see all issues
2. Fix issues following project conventions (check CLAUDE.md and the linter configuration)
3. Use the linter's auto-fix mode if available
4. Verify all checks pass: lint, typecheck, build
5. Create a commit: "fix: resolve linting issues"
6. DO NOT PUSH

Log all steps clearly.
"""

TYPE_TEMPLATE = """\
You are a specialized Type Fixing Agent for PR #{pr_number}.

**Your Task:**
Fix type errors in this PR.

{failure_context}

**Instructions:**
1. Run the project's type checker to identify all type errors
2. Read the project's type checking configuration and type patterns
3. Fix type errors systematically
4. Ensure no `any` types (or blanket ignores) are introduced
5. Verify all checks pass
6. Create a commit: "fix: resolve type errors"
7. DO NOT PUSH

Log all steps clearly.
"""

BUILD_TEMPLATE = """\
You are a specialized Build Fixing Agent for PR #{pr_number}.

**Your Task:**
Fix build failures in this PR.

{failure_context}

**Instructions:**
1. Run the project's build to reproduce the failure
2. Investigate the root cause (missing dependencies, import errors, etc.)
3. Fix the build issues
4. Verify the build completes successfully
5. Run all other checks (lint, typecheck, test)
6. Create a commit: "fix: resolve build failures"
7. DO NOT PUSH

Log all steps clearly.
"""

GENERIC_TEMPLATE = """\
You are a specialized Code Fixing Agent for PR #{pr_number}.

**Your Task:**
Investigate and fix the failing checks in this PR.

{failure_context}

**Instructions:**
1. Read project documentation to understand conventions
2. Investigate the failure
3. Fix the issues following project patterns
4. Run all quality checks
5. Create a commit with a clear message
6. DO NOT PUSH

Log all steps clearly.
"""

TEMPLATES: dict[AgentCategory, str] = {
    AgentCategory.E2E: E2E_TEMPLATE,
    AgentCategory.LINT: LINT_TEMPLATE,
    AgentCategory.TYPE: TYPE_TEMPLATE,
    AgentCategory.BUILD: BUILD_TEMPLATE,
}


def build_agent_prompt(
    category: AgentCategory, pr_number: int, failure_context: str
) -> str:
    """Render the prompt for a fixing agent."""
    template = TEMPLATES.get(category, GENERIC_TEMPLATE)
    return template.format(pr_number=pr_number, failure_context=failure_context)


def build_analysis_prompt(context: str, instruction: str) -> str:
    """Context followed by the analysis instruction."""
    return f"{context}\n\n{instruction}"
