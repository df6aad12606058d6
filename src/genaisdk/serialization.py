"""
Mapping between the dataclasses in ``genaisdk.types`` and wire JSON.

Keys are written in snake_case (the dataclass field names) and fields set to
``None`` are left out. When reading, each field is looked up by its
snake_case name first and by its camelCase spelling second, because the
live API answers in camelCase.
"""

from __future__ import annotations

import functools
import types
from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any, TypeVar, Union, get_args, get_origin, get_type_hints

T = TypeVar("T")

_UNION_TYPES = (Union, types.UnionType)


def to_wire(obj: Any) -> Any:
    """Convert a dataclass tree into JSON-ready values, omitting ``None`` fields."""
    if is_dataclass(obj) and not isinstance(obj, type):
        result: dict[str, Any] = {}
        for f in fields(obj):
            if not f.metadata.get("wire", True):
                continue
            value = getattr(obj, f.name)
            if value is None:
                continue
            result[f.name] = to_wire(value)
        return result
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [to_wire(item) for item in obj]
    if isinstance(obj, Mapping):
        return {key: to_wire(value) for key, value in obj.items()}
    return obj


def from_wire(cls: type[T], data: Any) -> T:
    """Build ``cls`` from a decoded JSON object.

    Raises:
        TypeError: If ``data`` (or a nested value) has the wrong JSON type.
        ValueError: If a scalar cannot be converted.
    """
    if not isinstance(data, Mapping):
        raise TypeError(f"Expected a JSON object for {cls.__name__}, got {type(data).__name__}")

    hints = _field_types(cls)
    kwargs: dict[str, Any] = {}
    for name, field_type in hints.items():
        key = _lookup_key(data, name)
        if key is None:
            continue
        value = data[key]
        if value is None:
            continue
        kwargs[name] = _decode(field_type, value)
    return cls(**kwargs)


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(word[:1].upper() + word[1:] for word in rest)


def _lookup_key(data: Mapping[str, Any], name: str) -> str | None:
    if name in data:
        return name
    camel = _camel_case(name)
    if camel in data:
        return camel
    return None


@functools.lru_cache(maxsize=None)
def _field_types(cls: type) -> dict[str, Any]:
    hints = get_type_hints(cls)
    return {f.name: hints[f.name] for f in fields(cls) if f.init and f.metadata.get("wire", True)}


def _decode(field_type: Any, value: Any) -> Any:
    if field_type is Any:
        return value

    origin = get_origin(field_type)
    args = get_args(field_type)

    if origin in _UNION_TYPES:
        candidates = [arg for arg in args if arg is not type(None)]
        for candidate in candidates:
            try:
                return _decode(candidate, value)
            except (TypeError, ValueError):
                continue
        raise TypeError(f"Value {value!r} does not match {field_type}")

    if is_dataclass(field_type):
        return from_wire(field_type, value)

    if origin in (list, tuple):
        if not isinstance(value, list):
            raise TypeError(f"Expected a JSON array, got {type(value).__name__}")
        item_type = args[0] if args else Any
        items = [_decode(item_type, item) for item in value]
        return tuple(items) if origin is tuple else items

    if origin is dict or field_type is dict:
        if not isinstance(value, Mapping):
            raise TypeError(f"Expected a JSON object, got {type(value).__name__}")
        return dict(value)

    if isinstance(field_type, type) and issubclass(field_type, Enum):
        return field_type(value)

    if field_type is bool:
        if not isinstance(value, bool):
            raise TypeError(f"Expected a boolean, got {type(value).__name__}")
        return value

    if field_type is int:
        # int64 fields arrive as JSON strings
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise TypeError(f"Expected an integer, got {type(value).__name__}")
        return int(value)

    if field_type is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Expected a number, got {type(value).__name__}")
        return float(value)

    if field_type is str:
        if not isinstance(value, str):
            raise TypeError(f"Expected a string, got {type(value).__name__}")
        return value

    return value
