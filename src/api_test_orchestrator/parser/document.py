"""In-memory model of a parsed OpenAPI document.

The raw document is kept read-only. Component schemas are converted to
DataConstraints once at load time and reused while endpoints are analyzed.
"""

import logging
from pathlib import Path

import yaml

from api_test_orchestrator.errors import DocumentStructureError

from .base import DataConstraints

logger = logging.getLogger(__name__)

MAX_REF_DEPTH = 16


class ApiDocument:
    """A parsed API description with a constraint cache keyed by schema name."""

    def __init__(self, data):
        self.root_is_mapping = isinstance(data, dict)
        self.data = data if self.root_is_mapping else {}
        self._resolving: set[str] = set()
        self.constraint_cache: dict[str, DataConstraints] = {}
        self._build_constraint_cache()

    @classmethod
    def from_file(cls, file_path: Path) -> "ApiDocument":
        """Load a JSON or YAML document (YAML is a superset of JSON)."""
        text = file_path.read_text(encoding="utf-8")
        return cls.from_dict(yaml.safe_load(text))

    @classmethod
    def from_dict(cls, data) -> "ApiDocument":
        return cls(data)

    @property
    def schemas(self) -> dict:
        components = self.data.get("components") or {}
        schemas = components.get("schemas") if isinstance(components, dict) else None
        return schemas if isinstance(schemas, dict) else {}

    def require_paths(self) -> dict:
        """Return the ``paths`` mapping or raise DocumentStructureError."""
        if not self.root_is_mapping:
            raise DocumentStructureError("document root is not a mapping")
        paths = self.data.get("paths")
        if paths is None:
            raise DocumentStructureError("document has no 'paths' section")
        if not isinstance(paths, dict):
            raise DocumentStructureError(
                f"'paths' must be a mapping, got {type(paths).__name__}"
            )
        return paths

    # -- references -----------------------------------------------------------

    def resolve(self, node, depth: int = 0):
        """Follow local ``$ref`` pointers until a concrete node is reached."""
        while isinstance(node, dict) and "$ref" in node:
            if depth >= MAX_REF_DEPTH:
                logger.warning("Reference chain too deep at %s", node["$ref"])
                return {}
            node = self._lookup(node["$ref"])
            depth += 1
        return node

    def _lookup(self, ref: str):
        if not ref.startswith("#/"):
            logger.warning("External reference not supported: %s", ref)
            return {}
        node = self.data
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            if not isinstance(node, dict) or part not in node:
                logger.warning("Unresolvable reference: %s", ref)
                return {}
            node = node[part]
        return node

    # -- constraints ----------------------------------------------------------

    def _build_constraint_cache(self) -> None:
        for name, schema in self.schemas.items():
            self.constraint_cache[name] = self.constraints_for(schema, name)
        if self.constraint_cache:
            logger.info("%d schemas analyzed and cached.", len(self.constraint_cache))

    def constraints_for(self, schema, name: str = "") -> DataConstraints:
        """Convert a schema node into DataConstraints, resolving references."""
        if isinstance(schema, dict) and "$ref" in schema:
            ref = schema["$ref"]
            schema_name = ref.rsplit("/", 1)[-1]
            if ref.startswith("#/components/schemas/") and schema_name in self.constraint_cache:
                return self.constraint_cache[schema_name]
            if ref in self._resolving:
                # recursive schema: stop at an empty object
                return DataConstraints(type="object")
            self._resolving.add(ref)
            try:
                return self.constraints_for(self.resolve(schema), name)
            finally:
                self._resolving.discard(ref)

        if not isinstance(schema, dict):
            return DataConstraints()

        schema = _merge_all_of(self, schema)
        schema_type = schema.get("type")
        if isinstance(schema_type, list):
            # OpenAPI 3.1 style ["string", "null"]
            schema_type = next((t for t in schema_type if t != "null"), None)
        if schema_type is None:
            if "properties" in schema:
                schema_type = "object"
            elif "items" in schema:
                schema_type = "array"

        fields: dict = {"type": schema_type}
        for key, attr in (
            ("format", "format"),
            ("pattern", "pattern"),
            ("minLength", "min_length"),
            ("maxLength", "max_length"),
            ("multipleOf", "multiple_of"),
            ("minItems", "min_items"),
            ("maxItems", "max_items"),
            ("minProperties", "min_properties"),
            ("maxProperties", "max_properties"),
            ("default", "default"),
        ):
            if key in schema:
                fields[attr] = schema[key]

        fields.update(_numeric_bounds(schema))

        if schema.get("uniqueItems"):
            fields["unique_items"] = True
        if isinstance(schema.get("required"), list):
            fields["required_fields"] = [str(f) for f in schema["required"]]
        if isinstance(schema.get("enum"), list):
            fields["enum_values"] = list(schema["enum"])

        if "example" in schema:
            fields["example"] = schema["example"]
        elif isinstance(schema.get("examples"), list) and schema["examples"]:
            fields["example"] = schema["examples"][0]

        if "items" in schema:
            fields["items"] = self.constraints_for(schema["items"], f"{name}_item")
        if isinstance(schema.get("properties"), dict):
            fields["properties"] = {
                prop: self.constraints_for(prop_schema, prop)
                for prop, prop_schema in schema["properties"].items()
            }

        return DataConstraints(**fields)


def _numeric_bounds(schema: dict) -> dict:
    """Read minimum/maximum in both the 3.0 (boolean) and 3.1 (numeric) styles."""
    bounds: dict = {}
    if "minimum" in schema:
        bounds["minimum"] = schema["minimum"]
    if "maximum" in schema:
        bounds["maximum"] = schema["maximum"]

    exclusive_min = schema.get("exclusiveMinimum")
    if isinstance(exclusive_min, bool):
        bounds["exclusive_minimum"] = exclusive_min
    elif isinstance(exclusive_min, (int, float)):
        bounds["minimum"] = exclusive_min
        bounds["exclusive_minimum"] = True

    exclusive_max = schema.get("exclusiveMaximum")
    if isinstance(exclusive_max, bool):
        bounds["exclusive_maximum"] = exclusive_max
    elif isinstance(exclusive_max, (int, float)):
        bounds["maximum"] = exclusive_max
        bounds["exclusive_maximum"] = True
    return bounds


def _merge_all_of(document: ApiDocument, schema: dict) -> dict:
    if not isinstance(schema.get("allOf"), list):
        return schema
    merged: dict = {k: v for k, v in schema.items() if k != "allOf"}
    properties: dict = dict(merged.get("properties") or {})
    required: list = list(merged.get("required") or [])
    for part in schema["allOf"]:
        part = document.resolve(part)
        if not isinstance(part, dict):
            continue
        part = _merge_all_of(document, part)
        properties.update(part.get("properties") or {})
        required.extend(r for r in part.get("required") or [] if r not in required)
        for key, value in part.items():
            if key not in ("properties", "required"):
                merged.setdefault(key, value)
    if properties:
        merged["properties"] = properties
    if required:
        merged["required"] = required
    return merged
