"""Outcome of a best-effort step: a value, or a reason to fall back."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Fallback:
    reason: str


Outcome = Ok[T] | Fallback
