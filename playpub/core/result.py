"""Result type used for every fallible publisher operation.

Remote calls, local policy checks and collaborator lookups all return either
``Ok(value)`` or ``Err(error)``. Callers branch with ``isinstance`` (or a
``match`` statement) and forward the ``Err`` unchanged when they cannot act on
it, which keeps a failed step from silently continuing into the next one.

Usage:
    edit = EditSession.open(backend, "com.example.app")
    if isinstance(edit, Err):
        return edit
    session = edit.value
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Successful outcome carrying ``value``."""

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failed outcome carrying ``error``."""

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
