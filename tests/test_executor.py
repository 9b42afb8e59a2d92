from __future__ import annotations

import asyncio

import pytest

from guiscript.errors import AssertionFailures, NavigationError
from guiscript.runner.executor import ScriptExecutor
from guiscript.script.commands import AssertCount, Navigate, SetTextVisible, SetViewport
from guiscript.script.parser import parse_script
from fakes import DOC_URL, FakeBrowser, docblock_page


def test_reference_script_drives_browser_in_declared_order(fixture_text: str, doc_variables: dict[str, str]) -> None:
    browser = FakeBrowser(docblock_page())
    executor = ScriptExecutor(browser)

    executed = asyncio.run(executor.run(parse_script(fixture_text, doc_variables)))

    assert executed == 6
    assert [call[0] for call in browser.calls] == [
        "open_url",
        "set_text_visible",
        "set_text_visible",
        "set_viewport",
        "query_count",
        "get_properties",
        "get_properties",
    ]
    assert browser.calls[1] == ("set_text_visible", False)
    assert browser.calls[2] == ("set_text_visible", True)
    assert browser.calls[3] == ("set_viewport", 1100, 800)


def test_scrolling_paragraphs_fail_at_their_line(fixture_text: str, doc_variables: dict[str, str]) -> None:
    executor = ScriptExecutor(FakeBrowser(docblock_page(rest=("64", "48"))))

    with pytest.raises(AssertionFailures) as excinfo:
        asyncio.run(executor.run(parse_script(fixture_text, doc_variables)))

    assert excinfo.value.line == 7
    assert excinfo.value.describe().startswith("line 7: 2 assertion(s) failed")
    assert executor.executed == 5


def test_unreachable_page_is_a_navigation_error() -> None:
    executor = ScriptExecutor(FakeBrowser())
    with pytest.raises(NavigationError) as excinfo:
        asyncio.run(executor.run([Navigate("file:///nowhere/index.html", line=1)]))
    assert excinfo.value.url == "file:///nowhere/index.html"
    assert executor.executed == 0


def test_assertion_before_navigation_fails() -> None:
    browser = FakeBrowser(docblock_page())
    with pytest.raises(NavigationError, match="no page loaded"):
        asyncio.run(ScriptExecutor(browser).run([AssertCount("p", 1, line=3)]))
    assert browser.calls == []


def test_text_visibility_survives_navigation() -> None:
    browser = FakeBrowser(docblock_page())
    commands = [SetTextVisible(True), Navigate(DOC_URL), Navigate(DOC_URL)]

    asyncio.run(ScriptExecutor(browser).run(commands))

    assert browser.calls == [("open_url", DOC_URL), ("open_url", DOC_URL)]


def test_hidden_text_is_reapplied_after_each_navigation() -> None:
    browser = FakeBrowser(docblock_page())
    commands = [Navigate(DOC_URL), SetViewport(800, 600), Navigate(DOC_URL)]

    asyncio.run(ScriptExecutor(browser).run(commands))

    assert browser.calls == [
        ("open_url", DOC_URL),
        ("set_text_visible", False),
        ("set_viewport", 800, 600),
        ("open_url", DOC_URL),
        ("set_text_visible", False),
    ]


def test_unknown_command_type_is_rejected() -> None:
    with pytest.raises(TypeError):
        asyncio.run(ScriptExecutor(FakeBrowser()).execute("goto: x"))
