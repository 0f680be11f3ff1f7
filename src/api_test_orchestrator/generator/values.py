"""Constraint-aware example value synthesis.

Values are deterministic for a given clock and uuid source. The clock is the
only uniqueifier, so tests inject a fixed one to assert exact output.
"""

import math
import time
import uuid
from typing import Any, Callable

from api_test_orchestrator.parser.base import DataConstraints

DEFAULT_INTEGER = 42
DEFAULT_NUMBER = 42.5
DEFAULT_ARRAY_SIZE = 2

FORMAT_VALUES = {
    "date": "2024-12-01",
    "date-time": "2024-12-01T10:30:00Z",
    "password": "SecurePassword123!@#",
    "binary": "VGVzdCBiaW5hcnkgZGF0YQ==",
    "byte": "VGVzdCBiaW5hcnkgZGF0YQ==",
}

TRUTHY_NAMES = ("active", "enabled", "visible", "public")
FALSY_NAMES = ("deleted", "disabled", "hidden", "private")


def _epoch_millis() -> int:
    return int(time.time() * 1000)


def _random_uuid() -> str:
    return str(uuid.uuid4())


class ValueSynthesizer:
    """Builds one example value per schema node, honoring its declared bounds."""

    def __init__(
        self,
        clock: Callable[[], int] | None = None,
        uuid_factory: Callable[[], str] | None = None,
    ):
        self.clock = clock or _epoch_millis
        self.uuid_factory = uuid_factory or _random_uuid
        self._visitors: dict[str, Callable[[DataConstraints, str], Any]] = {
            "string": self.string_value,
            "integer": lambda c, _name: self.integer_value(c),
            "number": lambda c, _name: self.number_value(c),
            "boolean": self.boolean_value,
            "array": self.array_value,
            "object": self.object_value,
        }

    def synthesize(self, constraints: DataConstraints, field_name: str = "value") -> Any:
        """Return an example for ``constraints``; ``None`` when the type is unknown."""
        visitor = self._visitors.get(constraints.type or "")
        if visitor is None:
            return None
        return visitor(constraints, field_name)

    def example_payload(self, constraints: DataConstraints | None) -> dict:
        """A request payload: the synthesized object, or ``{}`` when there is none."""
        if constraints is None:
            return {}
        value = self.synthesize(constraints, "requestBody")
        return value if isinstance(value, dict) else {}

    # -- strings --------------------------------------------------------------

    def string_value(self, constraints: DataConstraints, field_name: str) -> str:
        if constraints.example is not None:
            return str(constraints.example)
        if constraints.enum_values:
            return str(constraints.enum_values[0])

        value = self._format_value(constraints.format)
        if value is None:
            value = self._pattern_value(constraints.pattern, field_name)
        if value is None:
            value = self.contextual_value(field_name)
        return _fit_length(value, constraints.min_length, constraints.max_length)

    def _format_value(self, fmt: str | None) -> str | None:
        if fmt is None:
            return None
        if fmt in FORMAT_VALUES:
            return FORMAT_VALUES[fmt]
        if fmt == "email":
            return f"test.user.{self.clock()}@example.com"
        if fmt == "uuid":
            return self.uuid_factory()
        if fmt in ("uri", "url"):
            return f"https://api.example.com/resource/{self.clock()}"
        return None

    @staticmethod
    def _pattern_value(pattern: str | None, field_name: str) -> str | None:
        if not pattern:
            return None
        if "^[A-Z]" in pattern:
            return f"TEST_{field_name.upper()}"
        if "[0-9]" in pattern:
            return f"{field_name}123"
        return None

    def contextual_value(self, field_name: str) -> str:
        """A readable value chosen by field name, made unique with the clock."""
        lower = field_name.lower()
        stamp = self.clock()

        if "name" in lower:
            return f"Test Name {stamp}"
        if "title" in lower:
            return f"Test Title {stamp}"
        if "description" in lower:
            return f"This is a test description for {field_name} field"
        if "email" in lower:
            return f"test{stamp}@example.com"
        if "phone" in lower:
            return "+1-555-0123"
        if "address" in lower:
            return "123 Test Street, Test City, TC 12345"
        if "url" in lower or "link" in lower:
            return f"https://example.com/test/{stamp}"
        if "code" in lower:
            return f"CODE_{stamp}"
        if "id" in lower:
            return f"id_{stamp}"
        return f"test_{lower}_{stamp}"

    # -- numbers --------------------------------------------------------------

    def integer_value(self, constraints: DataConstraints) -> int:
        if isinstance(constraints.example, int) and not isinstance(constraints.example, bool):
            return constraints.example
        example = _numeric_example(constraints.example)
        if example is not None and example.is_integer():
            return int(example)

        low = math.ceil(constraints.minimum) if constraints.minimum is not None else None
        high = math.floor(constraints.maximum) if constraints.maximum is not None else None
        if low is not None and constraints.exclusive_minimum and low == constraints.minimum:
            low += 1
        if high is not None and constraints.exclusive_maximum and high == constraints.maximum:
            high -= 1

        value = _clamp(DEFAULT_INTEGER, low, high)
        if constraints.multiple_of:
            value = int(_snap_to_multiple(value, constraints.multiple_of, low, high))
        return value

    def number_value(self, constraints: DataConstraints) -> float:
        example = _numeric_example(constraints.example)
        if example is not None:
            return example

        low = constraints.minimum
        high = constraints.maximum
        if low is not None and constraints.exclusive_minimum:
            low += 0.1
        if high is not None and constraints.exclusive_maximum:
            high -= 0.1

        value = _clamp(DEFAULT_NUMBER, low, high)
        if constraints.multiple_of:
            value = _snap_to_multiple(value, constraints.multiple_of, low, high)
        return round(value, 10)

    # -- booleans -------------------------------------------------------------

    def boolean_value(self, constraints: DataConstraints, field_name: str) -> bool:
        if constraints.example is not None:
            if isinstance(constraints.example, str):
                return constraints.example.strip().lower() == "true"
            return bool(constraints.example)

        lower = field_name.lower()
        if any(word in lower for word in TRUTHY_NAMES):
            return True
        if any(word in lower for word in FALSY_NAMES):
            return False
        return True

    # -- containers -----------------------------------------------------------

    def array_value(self, constraints: DataConstraints, field_name: str) -> list:
        if isinstance(constraints.example, list):
            return list(constraints.example)
        if constraints.items is None:
            return []

        count = DEFAULT_ARRAY_SIZE
        if constraints.min_items is not None:
            count = max(count, constraints.min_items)
        if constraints.max_items is not None:
            count = min(count, constraints.max_items)

        return [
            self.synthesize(constraints.items, f"{field_name}_item_{i}")
            for i in range(count)
        ]

    def object_value(self, constraints: DataConstraints, field_name: str) -> dict:
        if isinstance(constraints.example, dict):
            return dict(constraints.example)
        result = {}
        for name, prop in constraints.properties.items():
            if prop.type is None:
                continue
            result[name] = self.synthesize(prop, name)
        return result


def _numeric_example(example) -> float | None:
    """The example as a finite float, or None when it is not a usable number."""
    if example is None or isinstance(example, (bool, list, dict)):
        return None
    try:
        value = float(example)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _clamp(value, low, high):
    if high is not None:
        value = min(value, high)
    if low is not None:
        value = max(value, low)
    return value


def _snap_to_multiple(value, multiple, low, high):
    """Round to the nearest multiple, then step back inside [low, high]."""
    snapped = round(value / multiple) * multiple
    if high is not None and snapped > high:
        snapped = math.floor(high / multiple) * multiple
    if low is not None and snapped < low:
        candidate = math.ceil(low / multiple) * multiple
        if high is None or candidate <= high:
            snapped = candidate
    return snapped


def _fit_length(value: str, min_length: int | None, max_length: int | None) -> str:
    if min_length is not None and len(value) < min_length:
        value = value + "_" * (min_length - len(value))
    if max_length is not None and len(value) > max_length:
        value = value[:max_length]
    return value
