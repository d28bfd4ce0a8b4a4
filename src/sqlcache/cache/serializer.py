# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Value serialisation for the ``cachevalue`` column.

The engine treats payloads as opaque text.  :class:`JsonSerializer` is
the default and uses pydantic so that models, dataclasses, datetimes and
plain containers round-trip into whatever type the caller asks for.
"""

from __future__ import annotations

import functools
from typing import Any, Protocol

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_json

from sqlcache.core.exceptions import SerializationError


class Serializer(Protocol):
    """Encode values for storage and decode them back."""

    def encode(self, value: Any) -> str: ...

    def decode(self, payload: str, target_type: Any = Any) -> Any: ...


@functools.lru_cache(maxsize=256)
def _adapter(target_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target_type)


class JsonSerializer:
    """JSON serializer built on :mod:`pydantic`."""

    name = "json"

    def encode(self, value: Any) -> str:
        try:
            return to_json(value).decode("utf-8")
        except (PydanticSerializationError, TypeError, ValueError) as exc:
            msg = f"Cannot encode value of type {type(value).__name__}: {exc}"
            raise SerializationError(msg) from exc

    def decode(self, payload: str, target_type: Any = Any) -> Any:
        try:
            return _adapter(target_type).validate_json(payload)
        except ValidationError as exc:
            msg = f"Cannot decode cached payload as {target_type!r}: {exc}"
            raise SerializationError(msg) from exc
        except TypeError as exc:
            # unhashable or unsupported target type
            msg = f"Unsupported target type {target_type!r}: {exc}"
            raise SerializationError(msg) from exc
