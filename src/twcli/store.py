"""
Typed config store.

The store is a flat key/value mapping whose values can be arbitrary object
graphs. ``pack`` turns such a graph into a JSON-safe tree, tagging every
instance with the name it was registered under; ``unpack`` walks the tree back
and rebuilds the instances through the type registry:

    >>> registry = TypeRegistry.with_builtins()
    >>> registry.register("Task", Task)
    >>> config = Config(registry)
    >>> config.pack({"current": Task({"id": 5, "title": "Fix bug"})})
    {'current': {'className': 'Task', 'id': 5, 'title': 'Fix bug'}}
"""

from typing import Any, Dict, Iterator, Mapping, Optional, Union

from .recovery import ConfigError

CLASS_KEY = "className"
SERIALIZED_KEY = "serialized"

PRIMITIVES = (str, int, float, bool)


def _is_serializer(entry: Any) -> bool:
    return (callable(getattr(entry, "serialize", None))
            and callable(getattr(entry, "deserialize", None)))


class TypeRegistry:
    """Maps type names to a class, a plain function or a serializer pair."""

    def __init__(self, entries: Optional[Mapping[str, Any]] = None):
        self._entries: Dict[str, Any] = {}
        self._names: Dict[type, str] = {}
        if entries:
            self.register(entries)

    @classmethod
    def with_builtins(cls) -> 'TypeRegistry':
        from .serializers import BUILTINS
        return cls(BUILTINS)

    def register(self, name_or_map: Union[str, Mapping[str, Any]], entry: Any = None):
        """Register one ``name, entry`` pair or every pair of a mapping."""
        if isinstance(name_or_map, Mapping):
            if entry is not None:
                raise ConfigError("Cannot register a mapping and an entry at the same time.")
            for name, value in name_or_map.items():
                self.register(name, value)
            return

        name = name_or_map
        if not isinstance(name, str) or not name:
            raise ConfigError(f"Type names must be non-empty strings, got {name!r}.")

        if _is_serializer(entry):
            handled = getattr(entry, "type", None)
            if isinstance(entry, type):
                handled = entry
        elif isinstance(entry, type):
            handled = entry
        elif hasattr(entry, "serialize") or hasattr(entry, "deserialize"):
            raise ConfigError(f"Serializer for \"{name}\" needs both serialize and deserialize functions.")
        elif callable(entry):
            handled = None
        else:
            raise ConfigError(f"Cannot register \"{name}\": expected a class, a function "
                              f"or a serializer, got {entry!r}.")

        self._entries[name] = entry
        if isinstance(handled, type):
            self._names[handled] = name

    def resolve(self, name: str) -> Any:
        try:
            return self._entries[name]
        except (KeyError, TypeError):
            raise ConfigError(f"Unknown type \"{name}\".") from None

    def is_serializer(self, name: str) -> bool:
        return _is_serializer(self.resolve(name))

    def name_of(self, value: Any) -> str:
        """The name a value is tagged with when packed."""
        cls = type(value)
        explicit = getattr(cls, "__type_name__", None)
        if explicit:
            return explicit
        return self._names.get(cls, cls.__name__)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)


class Config:
    """In-memory key/value store that packs to and unpacks from a tagged tree."""

    def __init__(self, registry: Optional[TypeRegistry] = None, packed: Optional[Mapping[str, Any]] = None):
        self.registry = registry if registry is not None else TypeRegistry.with_builtins()
        self._data: Dict[str, Any] = {}
        if packed:
            self.set(self.unpack(packed))

    @classmethod
    def from_json(cls, registry: TypeRegistry, packed: Optional[Mapping[str, Any]]) -> 'Config':
        return cls(registry, packed)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: Union[str, Mapping[str, Any]], value: Any = None):
        if isinstance(key, Mapping):
            for name, item in key.items():
                self.set(name, item)
            return
        if not isinstance(key, str):
            raise ConfigError(f"Config keys must be strings, got {key!r}.")
        self._data[key] = value

    def delete(self, key: str):
        self._data.pop(key, None)

    def clear(self):
        self._data.clear()

    def keys(self):
        return self._data.keys()

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def to_json(self) -> Dict[str, Any]:
        """The whole store in packed form."""
        return self.pack(self._data)

    def pack(self, tree: Any) -> Any:
        if tree is None or isinstance(tree, PRIMITIVES):
            return tree

        if isinstance(tree, (list, tuple)):
            return [self.pack(item) for item in tree]

        if isinstance(tree, dict):
            return self._pack_fields(tree)

        name = self.registry.name_of(tree)
        if name in self.registry and self.registry.is_serializer(name):
            serializer = self.registry.resolve(name)
            return {CLASS_KEY: name, SERIALIZED_KEY: serializer.serialize(tree)}

        if callable(getattr(tree, "to_json", None)):
            fields = tree.to_json()
        elif hasattr(tree, "__dict__"):
            fields = vars(tree)
        else:
            raise ConfigError(f"Cannot pack a value of type \"{name}\"; register a serializer for it.")
        fields = {key: value for key, value in fields.items() if not callable(value)}

        packed = {CLASS_KEY: name}
        packed.update(self._pack_fields(fields))
        return packed

    def _pack_fields(self, fields: Mapping[Any, Any]) -> Dict[str, Any]:
        packed = {}
        for key, value in fields.items():
            if not isinstance(key, str):
                raise ConfigError(f"Cannot pack non-string key {key!r}.")
            packed[key] = self.pack(value)
        return packed

    def unpack(self, tree: Any) -> Any:
        if isinstance(tree, list):
            return [self.unpack(item) for item in tree]

        if not isinstance(tree, dict):
            return tree

        if CLASS_KEY not in tree:
            return {key: self.unpack(value) for key, value in tree.items()}

        name = tree[CLASS_KEY]
        staging = {key: value for key, value in tree.items() if key != CLASS_KEY}
        entry = self.registry.resolve(name)

        if _is_serializer(entry):
            if SERIALIZED_KEY not in staging:
                raise ConfigError(f"Packed \"{name}\" value has no serialized form.")
            return entry.deserialize(staging[SERIALIZED_KEY])

        staging = {key: self.unpack(value) for key, value in staging.items()}
        try:
            return entry(staging)
        except TypeError as e:
            raise ConfigError(f"Cannot rebuild \"{name}\": {e}") from e
