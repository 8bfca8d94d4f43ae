"""Locators and ordered locator candidate sets.

A :class:`Locator` is a ``(strategy, expression)`` pair that renders to a
Playwright selector string. A :class:`LocatorSet` is an ordered list of
alternatives; the first one that resolves to at least one element wins.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Tuple, Union

STRATEGIES = ("css", "xpath", "text", "id", "test_id", "name")

_CONTAINS = re.compile(r""":contains\((['"])(.*?)\1\)""")


def css_contains(selector: str) -> str:
    """Rewrite jQuery-style ``:contains('X')`` into Playwright's ``:has-text('X')``."""
    return _CONTAINS.sub(lambda m: f":has-text({m.group(1)}{m.group(2)}{m.group(1)})", selector)


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


@dataclass(frozen=True)
class Locator:
    strategy: str
    expression: str

    def __post_init__(self) -> None:
        if self.strategy not in STRATEGIES:
            raise ValueError(f"Unknown locator strategy {self.strategy!r}; expected one of {STRATEGIES}")
        if not self.expression:
            raise ValueError("Locator expression must not be empty")

    @property
    def selector(self) -> str:
        """Playwright selector for this locator."""
        if self.strategy == "css":
            return "css=" + css_contains(self.expression)
        if self.strategy == "xpath":
            return "xpath=" + self.expression
        if self.strategy == "text":
            return "text=" + self.expression
        if self.strategy == "id":
            return f"css=[id={_quote(self.expression)}]"
        if self.strategy == "test_id":
            return f"css=[data-testid={_quote(self.expression)}]"
        return f"css=[name={_quote(self.expression)}]"

    def __str__(self) -> str:
        return f"{self.strategy}:{self.expression}"


def css(expression: str) -> Locator:
    return Locator("css", expression)


def xpath(expression: str) -> Locator:
    return Locator("xpath", expression)


def text(expression: str) -> Locator:
    return Locator("text", expression)


def by_id(expression: str) -> Locator:
    return Locator("id", expression)


def by_test_id(expression: str) -> Locator:
    return Locator("test_id", expression)


def by_name(expression: str) -> Locator:
    return Locator("name", expression)


class LocatorSet:
    """Ordered locator candidates tried first-match-wins."""

    def __init__(self, name: str, *candidates: Union[Locator, str]) -> None:
        if not candidates:
            raise ValueError(f"Locator set '{name}' needs at least one candidate")
        self.name = name
        self.candidates: Tuple[Locator, ...] = tuple(
            css(candidate) if isinstance(candidate, str) else candidate for candidate in candidates
        )

    def __iter__(self) -> Iterator[Locator]:
        return iter(self.candidates)

    def __len__(self) -> int:
        return len(self.candidates)

    def __repr__(self) -> str:
        return f"LocatorSet({self.name!r}, {', '.join(str(c) for c in self.candidates)})"


Target = Union[Locator, LocatorSet, str]


def as_locator_set(target: Target) -> LocatorSet:
    """Normalize a bare CSS string or single Locator into a one-candidate set."""
    if isinstance(target, LocatorSet):
        return target
    if isinstance(target, Locator):
        return LocatorSet(str(target), target)
    return LocatorSet(target, css(target))
