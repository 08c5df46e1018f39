"""Loosely-typed LIMS payloads and the explicit coercions applied to them.

LIMS REST responses are JSON objects whose shape is only partly guaranteed.
Rather than reaching into them reflectively, the pipeline wraps a request
payload in :class:`RequestRecord` and reads fields through small, testable
coercion helpers.
"""

from __future__ import annotations

from collections.abc import Mapping
import dataclasses
import typing

_TRUE_STRINGS = frozenset({"true", "1", "yes", "y"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "n", ""})


def coerce_bool(value: object, *, default: bool = False) -> bool:
    """Coerce a JSON scalar into a boolean.

    ``None`` yields ``default``. Strings are matched case-insensitively
    against the usual true/false spellings; unknown strings yield ``default``.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    return default


def coerce_mapping(value: object) -> dict[str, typing.Any]:
    """Convert a manifest element into a plain ``dict``.

    Accepts mappings and dataclass instances. Anything else raises
    ``TypeError`` so the caller can treat the sample as failed.
    """
    if isinstance(value, Mapping):
        return {str(k): v for k, v in value.items()}
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"cannot convert {type(value).__name__} to a mapping")


class RequestRecord(dict[str, typing.Any]):
    """Mutable request payload keyed by field name.

    A ``dict`` so it can be handed to downstream writers unchanged, with
    explicit accessors for the handful of operations the pipeline performs.
    """

    @classmethod
    def from_payload(cls, payload: object) -> RequestRecord:
        """Build a record from a decoded JSON object."""
        if isinstance(payload, RequestRecord):
            return payload
        if not isinstance(payload, Mapping):
            raise TypeError(
                f"request payload must be a JSON object, got {type(payload).__name__}"
            )
        return cls(coerce_mapping(payload))

    def has(self, field: str) -> bool:
        return field in self

    def get_or_default(self, field: str, default: typing.Any = None) -> typing.Any:
        return self.get(field, default)

    def get_bool(self, field: str, *, default: bool = False) -> bool:
        """Read ``field`` as a boolean, falling back to ``default`` when absent."""
        return coerce_bool(self.get(field), default=default)

    def insert(self, field: str, value: typing.Any) -> None:
        self[field] = value

    def remove(self, field: str) -> typing.Any:
        """Remove ``field`` if present and return its old value (or None)."""
        return self.pop(field, None)
