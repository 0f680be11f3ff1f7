import pytest

from api_test_orchestrator.generator.values import ValueSynthesizer
from api_test_orchestrator.parser.base import DataConstraints

NOW = 1700000000000
FIXED_UUID = "3f1c2a9e-0000-4000-8000-000000000001"


@pytest.fixture
def synth():
    return ValueSynthesizer(clock=lambda: NOW, uuid_factory=lambda: FIXED_UUID)


class TestStrings:
    def test_contextual_by_field_name(self, synth):
        c = DataConstraints(type="string")
        assert synth.synthesize(c, "name") == f"Test Name {NOW}"
        assert synth.synthesize(c, "email") == f"test{NOW}@example.com"
        assert synth.synthesize(c, "phone") == "+1-555-0123"
        assert synth.synthesize(c, "userId") == f"id_{NOW}"
        assert synth.synthesize(c, "color") == f"test_color_{NOW}"

    def test_formats(self, synth):
        assert synth.synthesize(DataConstraints(type="string", format="email")) == f"test.user.{NOW}@example.com"
        assert synth.synthesize(DataConstraints(type="string", format="uuid")) == FIXED_UUID
        assert synth.synthesize(DataConstraints(type="string", format="date")) == "2024-12-01"
        assert synth.synthesize(DataConstraints(type="string", format="date-time")) == "2024-12-01T10:30:00Z"
        assert synth.synthesize(DataConstraints(type="string", format="uri")) == f"https://api.example.com/resource/{NOW}"

    def test_example_and_enum_come_first(self, synth):
        assert synth.synthesize(DataConstraints(type="string", example="given", format="email")) == "given"
        assert synth.synthesize(DataConstraints(type="string", enum_values=["b", "a"])) == "b"

    def test_pattern_heuristics(self, synth):
        assert synth.synthesize(DataConstraints(type="string", pattern="^[A-Z]{3}$"), "code") == "TEST_CODE"
        assert synth.synthesize(DataConstraints(type="string", pattern="[0-9]+"), "ref") == "ref123"

    def test_min_length_is_padded(self, synth):
        value = synth.synthesize(DataConstraints(type="string", min_length=20), "code")
        assert len(value) == 20
        assert value.startswith(f"CODE_{NOW}")

    def test_max_length_is_truncated(self, synth):
        value = synth.synthesize(DataConstraints(type="string", max_length=5), "title")
        assert value == "Test "

    def test_length_bounds_hold(self, synth):
        for low, high in [(0, 1), (3, 3), (10, 40), (50, None), (None, 2)]:
            c = DataConstraints(type="string", min_length=low, max_length=high)
            value = synth.synthesize(c, "description")
            if low is not None:
                assert len(value) >= low
            if high is not None:
                assert len(value) <= high


class TestNumbers:
    def test_default_integer(self, synth):
        assert synth.synthesize(DataConstraints(type="integer")) == 42

    def test_exclusive_maximum(self, synth):
        c = DataConstraints(type="integer", minimum=5, maximum=10, exclusive_maximum=True)
        assert synth.synthesize(c) == 9

    def test_exclusive_minimum(self, synth):
        c = DataConstraints(type="integer", minimum=50, exclusive_minimum=True)
        assert synth.synthesize(c) == 51

    def test_integer_within_bounds(self, synth):
        assert synth.synthesize(DataConstraints(type="integer", minimum=1, maximum=10)) == 10
        assert synth.synthesize(DataConstraints(type="integer", minimum=100)) == 100

    def test_multiple_of(self, synth):
        assert synth.synthesize(DataConstraints(type="integer", multiple_of=5, minimum=1, maximum=12)) == 10
        assert synth.synthesize(DataConstraints(type="integer", multiple_of=7)) == 42
        assert synth.synthesize(DataConstraints(type="integer", multiple_of=20, minimum=45)) == 60

    def test_integer_example(self, synth):
        assert synth.synthesize(DataConstraints(type="integer", example=7, maximum=5)) == 7

    def test_integer_example_given_as_string(self, synth):
        assert synth.synthesize(DataConstraints(type="integer", example="1e3")) == 1000
        assert synth.synthesize(DataConstraints(type="integer", example=" 12 ")) == 12

    def test_large_integer_example_is_exact(self, synth):
        assert synth.synthesize(DataConstraints(type="integer", example=2**63 - 1)) == 2**63 - 1

    @pytest.mark.parametrize("example", ["oops", [1, 2], {"v": 1}, "nan", 2.5, True])
    def test_unusable_integer_example_uses_bounds(self, synth, example):
        c = DataConstraints(type="integer", example=example, minimum=1, maximum=10)
        assert synth.synthesize(c) == 10

    def test_number_example_given_as_string(self, synth):
        assert synth.synthesize(DataConstraints(type="number", example="2.5")) == 2.5

    @pytest.mark.parametrize("example", ["x", [1.0], "inf"])
    def test_unusable_number_example_uses_default(self, synth, example):
        assert synth.synthesize(DataConstraints(type="number", example=example)) == 42.5

    def test_number_default_and_bounds(self, synth):
        assert synth.synthesize(DataConstraints(type="number")) == 42.5
        assert synth.synthesize(DataConstraints(type="number", minimum=0, maximum=1)) == 1.0
        assert synth.synthesize(
            DataConstraints(type="number", minimum=0, maximum=1, exclusive_maximum=True)
        ) == pytest.approx(0.9)


class TestBooleans:
    @pytest.mark.parametrize(
        "field, expected",
        [
            ("is_active", True),
            ("enabled", True),
            ("deleted", False),
            ("isHidden", False),
            ("flag", True),
        ],
    )
    def test_name_heuristics(self, synth, field, expected):
        assert synth.synthesize(DataConstraints(type="boolean"), field) is expected

    def test_example_string(self, synth):
        assert synth.synthesize(DataConstraints(type="boolean", example="false"), "active") is False


class TestContainers:
    def test_array_default_size(self, synth):
        c = DataConstraints(type="array", items=DataConstraints(type="integer"))
        assert synth.synthesize(c, "ids") == [42, 42]

    def test_array_item_bounds(self, synth):
        items = DataConstraints(type="integer")
        assert len(synth.synthesize(DataConstraints(type="array", items=items, min_items=3))) == 3
        assert len(synth.synthesize(DataConstraints(type="array", items=items, max_items=1))) == 1

    def test_array_without_items(self, synth):
        assert synth.synthesize(DataConstraints(type="array")) == []

    def test_object_skips_untyped_properties(self, synth):
        c = DataConstraints(
            type="object",
            properties={
                "name": DataConstraints(type="string"),
                "size": DataConstraints(type="integer", maximum=10),
                "blob": DataConstraints(),
            },
        )
        assert synth.synthesize(c) == {"name": f"Test Name {NOW}", "size": 10}

    def test_unknown_type(self, synth):
        assert synth.synthesize(DataConstraints(type="file")) is None
        assert synth.synthesize(DataConstraints()) is None

    def test_example_payload(self, synth):
        assert synth.example_payload(None) == {}
        assert synth.example_payload(DataConstraints(type="string")) == {}


class TestDeterminism:
    def test_same_clock_same_output(self):
        c = DataConstraints(
            type="object",
            properties={
                "email": DataConstraints(type="string", format="email"),
                "id": DataConstraints(type="string", format="uuid"),
                "tags": DataConstraints(type="array", items=DataConstraints(type="string")),
            },
        )
        first = ValueSynthesizer(clock=lambda: NOW, uuid_factory=lambda: FIXED_UUID)
        second = ValueSynthesizer(clock=lambda: NOW, uuid_factory=lambda: FIXED_UUID)
        assert first.synthesize(c, "body") == second.synthesize(c, "body")
        assert first.synthesize(c, "body") == first.synthesize(c, "body")
