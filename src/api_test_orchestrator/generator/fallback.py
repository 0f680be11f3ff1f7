"""Rule-based fallback test bodies.

Used when the LLM is exhausted or disabled. The output is a pytest + requests
function body that expects ``base_url`` and ``auth_headers`` fixtures. Never
calls the LLM and never raises.
"""

import json
import pprint
import re
from urllib.parse import quote

from api_test_orchestrator.parser.base import ApiEndpoint, HttpMethod

from .values import ValueSynthesizer

MISSING_ID = "999999999"
REQUEST_TIMEOUT = 30

EXPECTED_STATUS = {
    HttpMethod.GET: (200,),
    HttpMethod.POST: (200, 201, 204),
    HttpMethod.PUT: (200, 204),
    HttpMethod.PATCH: (200, 204),
    HttpMethod.DELETE: (200, 202, 204),
}
UNAUTHORIZED_STATUS = (401, 403)
NOT_FOUND_PROBE_METHODS = {HttpMethod.GET, HttpMethod.PUT, HttpMethod.PATCH, HttpMethod.DELETE}
BODY_METHODS = {HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH}

PATH_PARAM = re.compile(r"\{([^}]+)\}")


class FallbackTemplateEngine:
    """Emits a minimal but runnable test body per HTTP method."""

    def __init__(self, synthesizer: ValueSynthesizer | None = None):
        self.synthesizer = synthesizer or ValueSynthesizer()

    def render_body_for(self, path: str, method: str) -> str:
        """Fallback body for a bare path + method pair."""
        return self.render_body(ApiEndpoint(method=HttpMethod(method.upper()), path=path))

    def render_body(self, endpoint: ApiEndpoint, payload: dict | None = None) -> str:
        method = endpoint.method
        path_values = self._path_values(endpoint)
        query = self._required_query(endpoint)
        if payload is None and method in BODY_METHODS:
            constraints = endpoint.request_body.constraints if endpoint.request_body else None
            payload = self.synthesizer.example_payload(constraints)

        lines = [f"# Happy path: {method.value} {endpoint.path}"]
        if payload is not None:
            lines.append(_assign("payload", payload))
        if query:
            lines.append(_assign("params", query))
        lines.extend(
            _request(
                "response",
                method,
                _fill_path(endpoint.path, path_values),
                params=bool(query),
                json=payload is not None,
                auth=True,
            )
        )
        lines.append(_status_assertion("response", EXPECTED_STATUS.get(method, (200,))))

        if endpoint.is_templated and method in NOT_FOUND_PROBE_METHODS:
            last = PATH_PARAM.findall(endpoint.path)[-1]
            missing_values = {**path_values, last: MISSING_ID}
            lines.append("")
            lines.append("# Unknown identifier")
            lines.extend(
                _request(
                    "missing",
                    method,
                    _fill_path(endpoint.path, missing_values),
                    params=bool(query),
                    json=payload is not None,
                    auth=True,
                )
            )
            lines.append(_status_assertion("missing", (404,)))

        if endpoint.auth_required:
            lines.append("")
            lines.append("# Without credentials")
            lines.extend(
                _request(
                    "unauthorized",
                    method,
                    _fill_path(endpoint.path, path_values),
                    params=bool(query),
                    json=payload is not None,
                    auth=False,
                )
            )
            lines.append(_status_assertion("unauthorized", UNAUTHORIZED_STATUS))

        return "\n".join(lines)

    def _path_values(self, endpoint: ApiEndpoint) -> dict[str, str]:
        declared = {p.name: p for p in endpoint.parameters if p.location == "path"}
        values = {}
        for name in PATH_PARAM.findall(endpoint.path):
            param = declared.get(name)
            value = None
            if param is not None and param.constraints is not None:
                value = self.synthesizer.synthesize(param.constraints, name)
            values[name] = "1" if value is None else str(value)
        return values

    def _required_query(self, endpoint: ApiEndpoint) -> dict:
        query = {}
        for param in endpoint.parameters:
            if param.location != "query" or not param.required:
                continue
            value = None
            if param.constraints is not None:
                value = self.synthesizer.synthesize(param.constraints, param.name)
            query[param.name] = "test" if value is None else value
        return query


def _fill_path(path: str, values: dict[str, str]) -> str:
    return PATH_PARAM.sub(lambda m: quote(values.get(m.group(1), "1"), safe=""), path)


def _json_safe(value):
    """Plain JSON values only, so the emitted literal needs no imports."""
    return json.loads(json.dumps(value, default=str), parse_constant=str)


def _assign(name: str, value) -> str:
    prefix = f"{name} = "
    text = pprint.pformat(_json_safe(value), width=88, sort_dicts=False)
    return prefix + text.replace("\n", "\n" + " " * len(prefix))


def _request(var: str, method: HttpMethod, path: str, params: bool, json: bool, auth: bool) -> list[str]:
    lines = [
        f"{var} = requests.{method.value.lower()}(",
        f"    base_url + {path!r},",
    ]
    if params:
        lines.append("    params=params,")
    if json:
        lines.append("    json=payload,")
    if auth:
        lines.append("    headers=auth_headers,")
    lines.append(f"    timeout={REQUEST_TIMEOUT},")
    lines.append(")")
    return lines


def _status_assertion(var: str, codes: tuple[int, ...]) -> str:
    if len(codes) == 1:
        return f"assert {var}.status_code == {codes[0]}, {var}.text"
    return f"assert {var}.status_code in {codes!r}, {var}.text"
