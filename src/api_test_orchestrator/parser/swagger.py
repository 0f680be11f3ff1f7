"""OpenAPI / Swagger endpoint analyzer.

Walks the document's ``paths`` and produces one analyzed ApiEndpoint per
(path, method) pair.
"""

import logging
from collections import Counter
from pathlib import Path

from api_test_orchestrator.errors import DocumentStructureError
from api_test_orchestrator.generator.values import ValueSynthesizer

from .base import (
    ApiEndpoint,
    ComplexityLevel,
    HttpMethod,
    Param,
    RequestBodyInfo,
    ResponseInfo,
)
from .document import ApiDocument

logger = logging.getLogger(__name__)

HTTP_METHODS = {"get", "post", "put", "delete", "patch", "head", "options"}
IGNORED_SEGMENTS = {"api", "v1", "v2"}
METHOD_WEIGHTS = {
    HttpMethod.POST: 6,
    HttpMethod.PUT: 6,
    HttpMethod.PATCH: 5,
    HttpMethod.DELETE: 4,
    HttpMethod.GET: 2,
}


def parse_openapi(file_path: Path, synthesizer: ValueSynthesizer | None = None) -> list[ApiEndpoint]:
    """Parse an OpenAPI/Swagger file into a list of ApiEndpoint."""
    return analyze_endpoints(ApiDocument.from_file(file_path), synthesizer)


def analyze_endpoints(document: ApiDocument, synthesizer: ValueSynthesizer | None = None) -> list[ApiEndpoint]:
    """Produce the analyzed endpoints of a document, in document order.

    A document without a usable ``paths`` section yields no endpoints.
    """
    try:
        paths = document.require_paths()
    except DocumentStructureError as e:
        logger.warning("No endpoints to analyze: %s", e)
        return []

    synthesizer = synthesizer or ValueSynthesizer()
    endpoints = []
    for path, path_item in paths.items():
        path_item = document.resolve(path_item)
        if not isinstance(path_item, dict):
            continue
        for method, operation in path_item.items():
            if method.lower() not in HTTP_METHODS:
                continue
            if not isinstance(operation, dict):
                operation = {}
            endpoints.append(
                _analyze_operation(document, str(path), method, operation, synthesizer)
            )

    logger.info("Found %d endpoints.", len(endpoints))
    return endpoints


def _analyze_operation(
    document: ApiDocument,
    path: str,
    method: str,
    operation: dict,
    synthesizer: ValueSynthesizer,
) -> ApiEndpoint:
    http_method = HttpMethod(method.upper())
    tags = [str(t) for t in operation.get("tags") or []]
    security_schemes = _security_schemes(operation.get("security"))
    parameters = _parse_parameters(document, operation.get("parameters") or [])
    request_body = _parse_request_body(document, operation.get("requestBody"), synthesizer)
    responses = _parse_responses(document, operation.get("responses") or {})
    resource_type = _resource_type(tags, path)
    auth_required = bool(security_schemes)
    required_parameters = frozenset(p.name for p in parameters if p.required)

    score = complexity_score(
        parameter_count=len(parameters),
        required_count=len(required_parameters),
        request_body=request_body,
        response_count=len(responses),
        auth_required=auth_required,
        scheme_count=len(security_schemes),
        method=http_method,
    )

    return ApiEndpoint(
        method=http_method,
        path=path,
        operation_id=_operation_id(operation, http_method, path, tags),
        summary=str(operation.get("summary", "")),
        tags=tags,
        resource_type=resource_type,
        auth_required=auth_required,
        security_schemes=security_schemes,
        parameters=parameters,
        required_parameters=required_parameters,
        request_body=request_body,
        responses=responses,
        complexity_score=score,
        complexity_level=ComplexityLevel.from_score(score),
    )


def complexity_score(
    parameter_count: int,
    required_count: int,
    request_body: RequestBodyInfo | None,
    response_count: int,
    auth_required: bool,
    scheme_count: int,
    method: HttpMethod,
) -> int:
    score = parameter_count * 2 + required_count * 3
    if request_body is not None:
        score += 5
        if request_body.required:
            score += 3
    score += response_count * 2
    if auth_required:
        score += 4
    score += scheme_count * 2
    return score + METHOD_WEIGHTS.get(method, 0)


def summarize_complexity(endpoints: list[ApiEndpoint]) -> tuple[float, dict[ComplexityLevel, int]]:
    """Return the average complexity score and the level distribution."""
    if not endpoints:
        return 0.0, {}
    average = sum(ep.complexity_score for ep in endpoints) / len(endpoints)
    return average, dict(Counter(ep.complexity_level for ep in endpoints))


def _security_schemes(security) -> list[str]:
    """Scheme names of all non-empty security requirements, in order."""
    schemes: list[str] = []
    if not isinstance(security, list):
        return schemes
    for requirement in security:
        if not isinstance(requirement, dict):
            continue
        for name in requirement:
            if name not in schemes:
                schemes.append(name)
    return schemes


def _resource_type(tags: list[str], path: str) -> str | None:
    if tags:
        return tags[0]
    for part in path.split("/"):
        if part and not part.startswith("{") and part not in IGNORED_SEGMENTS:
            return part
    return None


def _parse_parameters(document: ApiDocument, params: list) -> list[Param]:
    result = []
    for p in params:
        p = document.resolve(p)
        if not isinstance(p, dict) or "name" not in p:
            continue
        schema = p.get("schema")
        constraints = document.constraints_for(schema, p["name"]) if schema is not None else None
        location = p.get("in", "query")
        result.append(
            Param(
                name=str(p["name"]),
                location=location,
                required=bool(p.get("required", False)),
                description=p.get("description", ""),
                constraints=constraints,
            )
        )
    return result


def _parse_request_body(
    document: ApiDocument, body, synthesizer: ValueSynthesizer
) -> RequestBodyInfo | None:
    body = document.resolve(body)
    if not isinstance(body, dict):
        return None

    content = body.get("content") or {}
    content_type = "application/json"
    schema = None
    for ct in ("application/json", "multipart/form-data"):
        if ct in content:
            content_type, schema = ct, (content[ct] or {}).get("schema")
            break
    else:
        # Fallback: first available schema
        for ct, ct_data in content.items():
            content_type, schema = ct, (ct_data or {}).get("schema")
            break

    constraints = document.constraints_for(schema, "requestBody") if schema is not None else None
    example = None
    if constraints is not None:
        try:
            example = synthesizer.synthesize(constraints, "requestBody")
        except (TypeError, ValueError) as e:
            logger.warning("Could not build example payload: %s", e)

    return RequestBodyInfo(
        required=bool(body.get("required", False)),
        content_type=content_type,
        constraints=constraints,
        example=example,
    )


def _parse_responses(document: ApiDocument, responses: dict) -> list[ResponseInfo]:
    result = []
    if not isinstance(responses, dict):
        return result
    for status_code, resp in responses.items():
        resp = document.resolve(resp)
        if not isinstance(resp, dict):
            resp = {}
        constraints = None
        json_content = (resp.get("content") or {}).get("application/json") or {}
        if "schema" in json_content:
            constraints = document.constraints_for(json_content["schema"], f"response_{status_code}")
        result.append(
            ResponseInfo(
                status_code=str(status_code),
                description=resp.get("description", ""),
                constraints=constraints,
            )
        )
    return result


def _operation_id(operation: dict, method: HttpMethod, path: str, tags: list[str]) -> str:
    """The declared operationId, or one built from resource, method and path."""
    if operation.get("operationId"):
        return str(operation["operationId"])

    if tags:
        resource = tags[0]
    else:
        parts = path.split("/")
        resource = parts[1].replace("{", "").replace("}", "") if len(parts) > 1 else ""

    endpoint_part = path.replace("/", "_").replace("{", "").replace("}", "").lstrip("_")
    return f"{resource}{method.value.capitalize()}_{endpoint_part}"
