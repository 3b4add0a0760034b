"""
Tri-state field updates for PATCH bodies.

A field that is absent from the body is `Unchanged`, an explicit `null` is
`ClearToNull`, and anything else is `SetTo(value)`.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from callout.errors import BadRequest


class Unchanged:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNCHANGED"


class ClearToNull:
    __slots__ = ()

    def __repr__(self) -> str:
        return "CLEAR"


@dataclass(frozen=True, slots=True)
class SetTo:
    value: Any


UNCHANGED = Unchanged()
CLEAR = ClearToNull()

FieldUpdate = Unchanged | ClearToNull | SetTo


def parse_updates(
    body: Mapping[str, Any],
    *,
    nullable: Iterable[str],
    required: Iterable[str] = (),
) -> dict[str, FieldUpdate]:
    """
    Map every known field to its tri-state update. Unknown fields and
    nulls for non-nullable fields are rejected.
    """
    nullable = set(nullable)
    required = set(required)
    known = nullable | required

    unknown = sorted(set(body) - known)
    if unknown:
        raise BadRequest(f"Unknown fields: {', '.join(unknown)}")

    updates: dict[str, FieldUpdate] = {}
    for name in sorted(known):
        if name not in body:
            updates[name] = UNCHANGED
        elif body[name] is None:
            if name not in nullable:
                raise BadRequest(f"{name} cannot be null")
            updates[name] = CLEAR
        else:
            updates[name] = SetTo(body[name])
    return updates


def changed_values(updates: Mapping[str, FieldUpdate]) -> dict[str, Any]:
    """Collapse updates into a plain dict of the fields that change."""
    values: dict[str, Any] = {}
    for name, update in updates.items():
        match update:
            case SetTo(value=value):
                values[name] = value
            case ClearToNull():
                values[name] = None
            case Unchanged():
                pass
    return values
