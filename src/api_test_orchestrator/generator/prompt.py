"""Prompt builder — turns an analyzed endpoint into the LLM system + user prompts."""

import json
from pathlib import Path

from api_test_orchestrator.parser.base import ApiEndpoint
from api_test_orchestrator.skills.loader import select_skills, load_skill_content

PROMPTS_DIR = Path(__file__).parent.parent / "prompts"


class PromptBuilder:
    """Builds deterministic prompts for one analyzed endpoint.

    The example payload is the one synthesized during analysis, so prompts
    never depend on the clock at build time.
    """

    def __init__(self):
        self._template = (PROMPTS_DIR / "testcase.md").read_text(encoding="utf-8")

    def build(self, endpoint: ApiEndpoint) -> tuple[str, str]:
        """Return ``(system_prompt, user_prompt)``."""
        skill_content = load_skill_content(select_skills(endpoint))
        system_prompt = f"{skill_content}\n\n---\n\n{self._template}"

        sections = [
            f"Endpoint: {endpoint.method.value} {endpoint.path}",
            f"Resource type: {endpoint.resource_type or 'unknown'}",
            f"Authentication required: {'yes' if endpoint.auth_required else 'no'}",
            f"Complexity: {endpoint.complexity_level.value} ({endpoint.complexity_score})",
            "",
            "```json",
            endpoint.model_dump_json(
                indent=2,
                exclude={"complexity_score", "complexity_level"},
                exclude_none=True,
            ),
            "```",
        ]

        if endpoint.request_body is not None:
            example = endpoint.request_body.example
            payload = example if example is not None else {}
            sections += [
                "",
                "Example payload:",
                "```json",
                json.dumps(payload, indent=2, ensure_ascii=False, default=str),
                "```",
            ]

        return system_prompt, "\n".join(sections)
