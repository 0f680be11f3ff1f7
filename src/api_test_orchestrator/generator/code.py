"""Renders generated or fallback bodies into pytest test functions."""

import re
import textwrap

from api_test_orchestrator.parser.base import ApiEndpoint

UNKNOWN_IDENTIFIER = "unknown"
INDENT = "    "

_IMPORT_LINE = re.compile(r"^\s*(?:import\s+[\w.]+(?:\s+as\s+\w+)?|from\s+[\w.]+\s+import\s+.+)\s*$")
_DECORATOR_LINE = re.compile(r"^\s*@[\w.]+.*$")
_TEST_DEF = re.compile(r"^(\s*)(?:async\s+)?def\s+test\w*\s*\(.*\)\s*(?:->\s*[^:]+)?:\s*$")


def sanitize_identifier(text: str | None) -> str:
    """Make ``text`` usable as (part of) a Python function name."""
    if not text:
        return UNKNOWN_IDENTIFIER
    result = re.sub(r"[^a-zA-Z0-9_]", "", text.replace("-", "_"))
    if result and result[0].isdigit():
        result = "_" + result
    return result or UNKNOWN_IDENTIFIER


def unique_identifier(text: str | None, taken: set[str]) -> str:
    """Sanitize ``text`` and suffix it until it is not in ``taken``; records it."""
    base = identifier = sanitize_identifier(text)
    n = 1
    while identifier in taken:
        n += 1
        identifier = f"{base}_{n}"
    taken.add(identifier)
    return identifier


def clean_response(response: str) -> str:
    """Reduce an LLM reply to a bare function body.

    Takes the fenced python block if there is one, drops imports and
    decorators, and unwraps the first ``def test...`` function.
    """
    match = re.search(r"```(?:python|py)?\s*\n(.*?)```", response, re.DOTALL)
    code = match.group(1) if match else response.replace("```", "")

    lines = [
        line for line in code.splitlines()
        if not _IMPORT_LINE.match(line) and not _DECORATOR_LINE.match(line)
    ]

    for index, line in enumerate(lines):
        header = _TEST_DEF.match(line)
        if header:
            lines = _function_body(lines[index + 1:], len(header.group(1)))
            break

    return textwrap.dedent("\n".join(lines)).strip()


def _function_body(lines: list[str], def_indent: int) -> list[str]:
    body = []
    for line in lines:
        if line.strip() and len(line) - len(line.lstrip()) <= def_indent:
            break
        body.append(line)
    return body


class TestBlockRenderer:
    """Wraps a function body into a documented pytest test function."""

    __test__ = False  # not a pytest test class

    def __init__(self, fixtures: tuple[str, ...] = ("base_url", "auth_headers")):
        self.fixtures = fixtures

    def function_name(self, identifier: str, fallback: bool = False) -> str:
        prefix = "test_fallback_" if fallback else "test_"
        return prefix + sanitize_identifier(identifier)

    def render(self, endpoint: ApiEndpoint, identifier: str, body: str, fallback: bool = False) -> str:
        title = "Fallback test" if fallback else "Generated test"
        doc = [
            f'{INDENT}"""{title}: {endpoint.method.value} {_doc_safe(endpoint.path)}',
            "",
            f"{INDENT}Operation: {_doc_safe(endpoint.operation_id) or UNKNOWN_IDENTIFIER}",
        ]
        if endpoint.summary:
            doc.append(f"{INDENT}Summary: {_doc_safe(endpoint.summary)}")
        doc.append(f'{INDENT}"""')

        body = body.strip() or "pass"
        signature = f"def {self.function_name(identifier, fallback)}({', '.join(self.fixtures)}):"
        return "\n".join([signature, *doc, textwrap.indent(body, INDENT)])


def _doc_safe(text: str) -> str:
    return " ".join(text.split()).replace("\\", "\\\\").replace('"""', "'''")


def render_module_header(title: str) -> str:
    """Module preamble: imports and the fixtures every generated test uses."""
    return f'''"""{_doc_safe(title)}

Generated by api-test-orchestrator.
"""

import os

import pytest
import requests


@pytest.fixture
def base_url():
    return os.getenv("API_BASE_URL", "http://localhost:8080")


@pytest.fixture
def auth_headers():
    token = os.getenv("API_TOKEN", "")
    return {{"Authorization": f"Bearer {{token}}"}} if token else {{}}'''


def render_module_footer() -> str:
    return "# End of generated tests"


def assemble(header: str, blocks: list[str], footer: str) -> str:
    """Join header, blocks and footer with blank-line separation."""
    parts = [header, *blocks, footer]
    return "\n\n\n".join(p.strip("\n") for p in parts if p) + "\n"
