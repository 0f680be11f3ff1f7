"""Unified data models for the analyzed API document.

The analyzer converts the raw OpenAPI document into these models. They are
built single-threaded before scheduling and are read-only afterwards.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class ComplexityLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"

    @classmethod
    def from_score(cls, score: int) -> "ComplexityLevel":
        if score <= 10:
            return cls.LOW
        if score <= 25:
            return cls.MEDIUM
        if score <= 40:
            return cls.HIGH
        return cls.VERY_HIGH


class DataConstraints(BaseModel):
    """Normalized bounds extracted from a schema node.

    Every bound is optional; ``None`` means unconstrained.
    """

    model_config = ConfigDict(frozen=True)

    type: str | None = None  # string / integer / number / boolean / array / object
    format: str | None = None
    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: bool = False
    exclusive_maximum: bool = False
    multiple_of: float | None = None
    min_items: int | None = None
    max_items: int | None = None
    unique_items: bool = False
    required_fields: list[str] = []
    min_properties: int | None = None
    max_properties: int | None = None
    enum_values: list = []  # first element is the canonical choice
    example: Any = None
    default: Any = None
    items: "DataConstraints | None" = None
    properties: dict[str, "DataConstraints"] = {}


class Param(BaseModel):
    """A single API parameter (query, path, header, or cookie)."""

    model_config = ConfigDict(frozen=True)

    name: str
    location: str  # query / path / header / cookie
    required: bool = False
    description: str = ""
    constraints: DataConstraints | None = None


class RequestBodyInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    required: bool = False
    content_type: str = "application/json"
    constraints: DataConstraints | None = None
    example: Any = None


class ResponseInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    status_code: str
    description: str = ""
    constraints: DataConstraints | None = None


class ApiEndpoint(BaseModel):
    """A single (path, method) operation with its analysis results."""

    model_config = ConfigDict(frozen=True)

    method: HttpMethod
    path: str  # /api/users/{id}
    operation_id: str = ""
    summary: str = ""
    tags: list[str] = []
    resource_type: str | None = None
    auth_required: bool = False
    security_schemes: list[str] = []
    parameters: list[Param] = []
    required_parameters: frozenset[str] = frozenset()
    request_body: RequestBodyInfo | None = None
    responses: list[ResponseInfo] = []
    complexity_score: int = 0
    complexity_level: ComplexityLevel = ComplexityLevel.LOW

    @field_serializer("required_parameters")
    def _serialize_required(self, value: frozenset[str]) -> list[str]:
        return sorted(value)

    @property
    def key(self) -> tuple[str, str]:
        return (self.path, self.method.value)

    @property
    def is_templated(self) -> bool:
        return "{" in self.path

    def __str__(self) -> str:
        return f"{self.method.value} {self.path}"


class EndpointDependency(BaseModel):
    """Advisory ordering metadata for one endpoint. Never blocks dispatch."""

    path: str
    method: HttpMethod
    priority: int = Field(default=5, ge=1, le=5)
    dependencies: list[tuple[str, str]] = []

    def add_dependency(self, key: tuple[str, str]) -> None:
        if key not in self.dependencies:
            self.dependencies.append(key)


DataConstraints.model_rebuild()
