import pytest
from pydantic import ValidationError

from api_test_orchestrator.parser.base import (
    ApiEndpoint,
    ComplexityLevel,
    DataConstraints,
    EndpointDependency,
    HttpMethod,
    Param,
)


class TestParam:
    def test_create_required_param(self):
        p = Param(name="id", location="path", required=True)
        assert p.name == "id"
        assert p.required is True
        assert p.description == ""
        assert p.constraints is None

    def test_create_param_with_constraints(self):
        p = Param(
            name="age",
            location="query",
            constraints=DataConstraints(type="integer", minimum=0, maximum=150),
        )
        assert p.constraints.minimum == 0
        assert p.constraints.maximum == 150


class TestApiEndpoint:
    def test_create_minimal_endpoint(self):
        ep = ApiEndpoint(method="GET", path="/api/users")
        assert ep.method is HttpMethod.GET
        assert ep.key == ("/api/users", "GET")
        assert ep.is_templated is False
        assert str(ep) == "GET /api/users"

    def test_templated_path(self):
        ep = ApiEndpoint(method="DELETE", path="/api/users/{id}")
        assert ep.is_templated is True

    def test_unknown_method_rejected(self):
        with pytest.raises(ValidationError):
            ApiEndpoint(method="TRACE", path="/x")

    def test_endpoint_is_immutable(self):
        ep = ApiEndpoint(method="GET", path="/pets")
        with pytest.raises(ValidationError):
            ep.path = "/other"

    def test_required_parameters_serialize_sorted(self):
        ep = ApiEndpoint(
            method="GET",
            path="/pets",
            required_parameters=frozenset({"zeta", "alpha", "mid"}),
        )
        assert ep.model_dump(mode="json")["required_parameters"] == ["alpha", "mid", "zeta"]


class TestComplexityLevel:
    @pytest.mark.parametrize(
        "score, level",
        [
            (0, ComplexityLevel.LOW),
            (10, ComplexityLevel.LOW),
            (11, ComplexityLevel.MEDIUM),
            (25, ComplexityLevel.MEDIUM),
            (26, ComplexityLevel.HIGH),
            (40, ComplexityLevel.HIGH),
            (41, ComplexityLevel.VERY_HIGH),
        ],
    )
    def test_buckets(self, score, level):
        assert ComplexityLevel.from_score(score) is level


class TestEndpointDependency:
    def test_add_dependency_is_idempotent(self):
        dep = EndpointDependency(path="/pets/{id}", method="PUT", priority=3)
        dep.add_dependency(("/pets", "POST"))
        dep.add_dependency(("/pets", "POST"))
        assert dep.dependencies == [("/pets", "POST")]
