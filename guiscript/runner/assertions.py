from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from guiscript.errors import (
    AssertionFailures,
    CountMismatch,
    ElementNotFoundError,
    PropertyMismatch,
    ScriptFailure,
)
from guiscript.script.commands import AssertCount, AssertProperty


class DomQuery(Protocol):
    async def query_count(self, selector: str) -> int: ...

    async def get_properties(self, selector: str, names: list[str]) -> list[dict[str, str]]: ...


def compare_properties(
    selector: str,
    expected: Mapping[str, str],
    elements: list[dict[str, str]],
) -> list[PropertyMismatch]:
    """Every expected property of every element, in element then declaration order."""
    mismatches: list[PropertyMismatch] = []
    for index, actual in enumerate(elements):
        for name, value in expected.items():
            if actual.get(name) != value:
                mismatches.append(PropertyMismatch(selector, name, value, actual.get(name), index))
    return mismatches


def raise_collected(failures: list[ScriptFailure]) -> None:
    if len(failures) == 1:
        raise failures[0]
    if failures:
        raise AssertionFailures(failures)


async def assert_count(dom: DomQuery, command: AssertCount) -> None:
    actual = await dom.query_count(command.selector)
    if actual != command.count:
        raise CountMismatch(command.selector, command.count, actual)


async def assert_property(dom: DomQuery, command: AssertProperty) -> None:
    elements = await dom.get_properties(command.selector, list(command.properties))
    if not elements:
        raise ElementNotFoundError(command.selector)
    raise_collected(compare_properties(command.selector, command.properties, elements))
