"""Reserved pseudo-functions that lower directly to host primitives."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Intrinsic:
    name: str
    arity: int
    result: str | None  # built-in type name; None infers as unknown


INTRINSICS: dict[str, Intrinsic] = {
    i.name: i
    for i in [
        Intrinsic("__has", 2, "bool"),
        Intrinsic("__push", 2, None),
        Intrinsic("__substring", 3, "str"),
        Intrinsic("__read_file", 1, "str"),
        Intrinsic("__write", 1, None),
        Intrinsic("__die", 1, None),
    ]
}


def lookup_intrinsic(name: list[str]) -> Intrinsic | None:
    """Intrinsics are only ever referenced by a single unqualified name."""
    if len(name) != 1:
        return None
    return INTRINSICS.get(name[0])
