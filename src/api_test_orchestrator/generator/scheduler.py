"""Priority / dependency scheduling of analyzed endpoints.

Dependencies are advisory: they document create-before-read-before-update
intent but never hold back dispatch. The schedule is a flat, stable sort.
"""

import logging
from dataclasses import dataclass, field

from api_test_orchestrator.parser.base import ApiEndpoint, EndpointDependency, HttpMethod

logger = logging.getLogger(__name__)

EndpointKey = tuple[str, str]

PRIORITIES = {
    HttpMethod.POST: 1,
    HttpMethod.GET: 2,
    HttpMethod.PUT: 3,
    HttpMethod.PATCH: 3,
    HttpMethod.DELETE: 4,
}
UNCLASSIFIED = 5
DEPENDS_ON_CREATE = {HttpMethod.PUT, HttpMethod.PATCH, HttpMethod.DELETE}


@dataclass
class Schedule:
    order: list[ApiEndpoint]
    dependencies: dict[EndpointKey, EndpointDependency] = field(default_factory=dict)

    def priority_of(self, endpoint: ApiEndpoint) -> int:
        dep = self.dependencies.get(endpoint.key)
        return dep.priority if dep else UNCLASSIFIED


def group_by_resource(endpoints: list[ApiEndpoint]) -> dict[str, list[ApiEndpoint]]:
    """Group endpoints by resource type. Endpoints without one are left out."""
    groups: dict[str, list[ApiEndpoint]] = {}
    for ep in endpoints:
        if ep.resource_type is not None:
            groups.setdefault(ep.resource_type, []).append(ep)
    return groups


def _find_create(group: list[ApiEndpoint]) -> ApiEndpoint | None:
    for ep in group:
        if ep.method == HttpMethod.POST and not ep.is_templated:
            return ep
    return None


def _find_list(group: list[ApiEndpoint]) -> ApiEndpoint | None:
    for ep in group:
        if ep.method == HttpMethod.GET and not ep.is_templated:
            return ep
    return None


def analyze_dependencies(endpoints: list[ApiEndpoint]) -> dict[EndpointKey, EndpointDependency]:
    groups = group_by_resource(endpoints)
    dependencies: dict[EndpointKey, EndpointDependency] = {}

    for ep in endpoints:
        dep = EndpointDependency(
            path=ep.path,
            method=ep.method,
            priority=PRIORITIES.get(ep.method, UNCLASSIFIED),
        )
        group = groups.get(ep.resource_type, []) if ep.resource_type is not None else []
        create = _find_create(group)

        if ep.method in DEPENDS_ON_CREATE and create is not None:
            dep.add_dependency(create.key)

        # Item endpoints follow the collection listing, or its creation
        # when the resource has no list endpoint.
        if ep.is_templated and ep.method != HttpMethod.POST and group:
            listing = _find_list(group)
            if listing is not None:
                dep.add_dependency(listing.key)
            elif create is not None:
                dep.add_dependency(create.key)

        dependencies[ep.key] = dep

    logger.info("Dependency analysis complete: %d endpoints.", len(dependencies))
    return dependencies


def schedule(endpoints: list[ApiEndpoint]) -> Schedule:
    """Order endpoints by (priority, complexity score), keeping document order on ties."""
    dependencies = analyze_dependencies(endpoints)
    order = sorted(
        endpoints,
        key=lambda ep: (dependencies[ep.key].priority, ep.complexity_score),
    )
    return Schedule(order=order, dependencies=dependencies)
