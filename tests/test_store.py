"""Unit tests for the type registry and typed config store."""

import re
from datetime import date, datetime, timedelta, timezone

import pytest

from twcli.descriptor import CALLABLE, REQUIRED, Model
from twcli.recovery import ConfigError
from twcli.serializers import PATTERN, TypeSerializer
from twcli.store import Config, TypeRegistry


class Task(Model):
    descriptor = {
        "id": (int, REQUIRED),
        "title": (str, REQUIRED),
    }


class Customer(Model):
    descriptor = {
        "id": (int, REQUIRED),
        "name": str,
    }


def _identity(value):
    return value


class Order(Model):
    descriptor = {
        "number": (int, REQUIRED),
        "customer": Customer,
        "items": Customer,
        "placed": (_identity, CALLABLE),
    }


class SampleModel:
    def __init__(self, data):
        assert "className" not in data
        self.foo = data["foo"]
        self.bar = data["bar"]

    def __eq__(self, other):
        return type(other) is SampleModel and vars(self) == vars(other)


class ExampleModel:
    def __init__(self, data):
        assert all(isinstance(item, SampleModel) for item in data["items"])
        self.root = data["root"]
        self.items = data["items"]
        self.boof = "foobar"
        self.boot = data["boot"]

    def describe(self):
        return "not packed"

    def __eq__(self, other):
        return type(other) is ExampleModel and vars(self) == vars(other)


class Foobar:
    def __eq__(self, other):
        return type(other) is Foobar


FOOBAR = TypeSerializer(Foobar, lambda value: {"foo": "bar"}, lambda plain: Foobar())


@pytest.fixture
def registry():
    registry = TypeRegistry.with_builtins()
    registry.register({
        "Task": Task,
        "Customer": Customer,
        "Order": Order,
        "SampleModel": SampleModel,
        "ExampleModel": ExampleModel,
        "Foobar": FOOBAR,
    })
    return registry


@pytest.fixture
def config(registry):
    return Config(registry)


class TestTypeRegistry:
    """Test registration rules."""

    def test_register_single_and_mapping(self):
        registry = TypeRegistry()
        registry.register("Task", Task)
        registry.register({"Customer": Customer, "Order": Order})
        assert registry.resolve("Task") is Task
        assert registry.resolve("Customer") is Customer
        assert set(registry) == {"Task", "Customer", "Order"}

    def test_register_function(self):
        registry = TypeRegistry()
        registry.register("upper", lambda data: {key: str(value).upper() for key, value in data.items()})
        assert "upper" in registry
        assert not registry.is_serializer("upper")

    def test_serializer_missing_function(self):
        """Serializers need both halves, checked at registration time."""
        class HalfSerializer:
            def serialize(self, value):
                return value

        with pytest.raises(ConfigError, match="serialize and deserialize"):
            TypeRegistry().register("Half", HalfSerializer())

    def test_register_non_callable(self):
        with pytest.raises(ConfigError):
            TypeRegistry().register("Number", 42)
        with pytest.raises(ConfigError):
            TypeRegistry().register("Nothing", None)

    def test_register_bad_name(self):
        with pytest.raises(ConfigError):
            TypeRegistry().register("", Task)

    def test_unknown_type(self):
        with pytest.raises(ConfigError, match='Unknown type "Missing"'):
            TypeRegistry().resolve("Missing")

    def test_builtins(self):
        registry = TypeRegistry.with_builtins()
        for name in ("datetime", "date", "timedelta", "Pattern"):
            assert registry.is_serializer(name)

    def test_name_of(self, registry):
        assert registry.name_of(Task({"id": 1, "title": "x"})) == "Task"
        assert registry.name_of(re.compile("x")) == "Pattern"
        assert registry.name_of(datetime.now()) == "datetime"

    def test_explicit_type_name(self):
        class Tagged:
            __type_name__ = "tagged.v1"

        assert TypeRegistry().name_of(Tagged()) == "tagged.v1"

    def test_serializer_registered_under_other_name(self):
        registry = TypeRegistry()
        registry.register("regex", PATTERN)
        assert registry.name_of(re.compile("a")) == "regex"


class TestConfigStore:
    """Test the key/value surface of the store."""

    def test_get_and_set(self, config):
        assert config.get("missing") is None
        assert config.get("missing", 3) == 3
        config.set("project", {"id": 1})
        assert config.get("project") == {"id": 1}

    def test_set_mapping(self, config):
        config.set({"a": 1, "b": [2]})
        assert config.get("a") == 1
        assert config.get("b") == [2]
        assert "a" in config
        assert set(config.keys()) == {"a", "b"}

    def test_delete_and_clear(self, config):
        config.set({"a": 1, "b": 2})
        config.delete("a")
        config.delete("not there")
        assert "a" not in config
        config.clear()
        assert list(config.keys()) == []

    def test_non_string_key(self, config):
        with pytest.raises(ConfigError):
            config.set(1, "one")

    def test_construct_from_packed(self, registry):
        config = Config(registry, {"current": {"className": "Task", "id": 5, "title": "Fix bug"}})
        assert config.get("current") == Task({"id": 5, "title": "Fix bug"})

    def test_default_registry_has_builtins(self):
        config = Config()
        moment = datetime(2024, 1, 2, 3, 4, 5)
        assert config.unpack(config.pack(moment)) == moment


class TestPack:
    """Test conversion of object graphs into tagged trees."""

    def test_primitives(self, config):
        for value in (None, True, 0, 1.5, "text"):
            assert config.pack(value) == value

    def test_plain_containers(self, config):
        assert config.pack({"a": [1, {"b": (2, 3)}]}) == {"a": [1, {"b": [2, 3]}]}

    def test_model_instance(self, config):
        """Scenario: the current task is stored as a tagged record."""
        packed = config.pack({"current": Task({"id": 5, "title": "Fix bug"})})
        assert packed == {"current": {"className": "Task", "id": 5, "title": "Fix bug"}}

    def test_model_extra_attributes_not_packed(self, config):
        task = Task({"id": 5, "title": "Fix bug"})
        task.cached = "scratch"
        assert "cached" not in config.pack(task)

    def test_model_function_fields_not_packed(self, config):
        """Function-valued model fields are skipped like plain instance callbacks."""
        order = Order({"number": 1, "placed": _identity})
        assert config.pack(order) == {"className": "Order", "number": 1, "customer": None, "items": None}

    def test_plain_instance(self, config):
        """Plain objects are packed from their attributes, skipping callables."""
        example = ExampleModel({
            "root": SampleModel({"foo": 1, "bar": 2}),
            "items": [SampleModel({"foo": 1, "bar": 2}), SampleModel({"foo": 1, "bar": 2})],
            "boot": Foobar(),
        })
        example.callback = lambda: None

        assert config.pack(example) == {
            "className": "ExampleModel",
            "root": {"className": "SampleModel", "foo": 1, "bar": 2},
            "items": [
                {"className": "SampleModel", "foo": 1, "bar": 2},
                {"className": "SampleModel", "foo": 1, "bar": 2},
            ],
            "boof": "foobar",
            "boot": {"className": "Foobar", "serialized": {"foo": "bar"}},
        }

    def test_serializer_values(self, config):
        packed = config.pack({"when": datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)})
        assert packed == {"when": {"className": "datetime", "serialized": "2024-05-01T12:30:00+00:00"}}

    def test_unpackable_value(self, config):
        """Values without attributes or a serializer cannot be packed."""
        with pytest.raises(ConfigError, match="frozenset"):
            config.pack(frozenset([1]))

    def test_non_string_keys(self, config):
        with pytest.raises(ConfigError):
            config.pack({1: "one"})

    def test_to_json(self, config):
        config.set("current", Task({"id": 5, "title": "Fix bug"}))
        config.set("count", 2)
        assert config.to_json() == {
            "current": {"className": "Task", "id": 5, "title": "Fix bug"},
            "count": 2,
        }


class TestUnpack:
    """Test rebuilding object graphs from tagged trees."""

    def test_model_instance(self, config):
        unpacked = config.unpack({"current": {"className": "Task", "id": 5, "title": "Fix bug"}})
        assert isinstance(unpacked["current"], Task)
        assert unpacked["current"].id == 5
        assert unpacked["current"].title == "Fix bug"

    def test_unknown_class_name(self, config):
        with pytest.raises(ConfigError, match="NotRegistered"):
            config.unpack({"className": "NotRegistered", "x": 1})

    def test_unknown_nested_class_name(self, config):
        with pytest.raises(ConfigError):
            config.unpack({"a": [{"b": {"className": "NotRegistered"}}]})

    def test_tag_stripped_before_construction(self, config):
        unpacked = config.unpack({"className": "SampleModel", "foo": 1, "bar": 2})
        assert vars(unpacked) == {"foo": 1, "bar": 2}

    def test_function_entry(self, registry):
        registry.register("pair", lambda data: (data["a"], data["b"]))
        assert Config(registry).unpack({"className": "pair", "a": 1, "b": 2}) == (1, 2)

    def test_input_not_mutated(self, config):
        tree = {"current": {"className": "Task", "id": 5, "title": "Fix bug"}}
        config.unpack(tree)
        assert tree["current"]["className"] == "Task"

    def test_missing_serialized_payload(self, config):
        with pytest.raises(ConfigError):
            config.unpack({"className": "datetime"})

    def test_bad_constructor_signature(self, registry):
        class NoArgs:
            def __init__(self):
                pass

        registry.register("NoArgs", NoArgs)
        with pytest.raises(ConfigError, match="NoArgs"):
            Config(registry).unpack({"className": "NoArgs"})


class TestRoundTrip:
    """unpack(pack(value)) gives back an equal value."""

    def test_model(self, config):
        task = Task({"id": 5, "title": "Fix bug"})
        assert config.unpack(config.pack(task)) == task

    def test_nested_models(self, config):
        placed = datetime(2024, 2, 29, 8, 0, tzinfo=timezone.utc)
        order = Order({
            "number": 1,
            "customer": {"id": 2, "name": "Grace"},
            "items": [{"id": 3}, {"id": 4, "name": "Linus"}],
            "placed": placed,
        })
        unpacked = config.unpack(config.pack(order))
        assert unpacked == order
        assert isinstance(unpacked.customer, Customer)
        assert all(isinstance(item, Customer) for item in unpacked.items)
        assert unpacked.placed == placed

    def test_plain_instances(self, config):
        example = ExampleModel({
            "root": SampleModel({"foo": 1, "bar": 2}),
            "items": [SampleModel({"foo": 1, "bar": 2}), SampleModel({"foo": 3, "bar": 4})],
            "boot": Foobar(),
        })
        assert config.unpack(config.pack(example)) == example

    def test_datetime(self, config):
        moment = datetime.now(timezone.utc)
        unpacked = config.unpack(config.pack({"foo": moment}))
        assert isinstance(unpacked["foo"], datetime)
        assert unpacked["foo"] == moment

    def test_date_and_timedelta(self, config):
        tree = {"day": date(2024, 1, 31), "spent": timedelta(hours=1, minutes=30)}
        assert config.unpack(config.pack(tree)) == tree

    def test_large_timedelta_keeps_microseconds(self, config):
        delta = timedelta(days=10**6, microseconds=1)
        packed = config.pack(delta)
        assert packed == {"className": "timedelta",
                          "serialized": {"days": 1000000, "seconds": 0, "microseconds": 1}}
        assert config.unpack(packed) == delta

    def test_negative_timedelta(self, config):
        delta = -timedelta(hours=2, microseconds=5)
        assert config.unpack(config.pack(delta)) == delta

    def test_pattern(self, config):
        unpacked = config.unpack(config.pack({"foo": re.compile("12345"), "bar": re.compile("12456", re.I)}))
        assert isinstance(unpacked["foo"], re.Pattern)
        assert unpacked["foo"].pattern == "12345"
        assert unpacked["bar"].pattern == "12456"
        assert unpacked["bar"].flags & re.I

    def test_whole_store(self, registry):
        config = Config(registry)
        config.set({"task": Task({"id": 5, "title": "Fix bug"}), "recent": [1, 2], "name": None})
        restored = Config.from_json(registry, config.to_json())
        assert restored.get("task") == config.get("task")
        assert restored.get("recent") == [1, 2]
        assert "name" in restored
