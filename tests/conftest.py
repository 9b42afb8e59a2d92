from __future__ import annotations

import contextlib

import pytest

from fakes import FIXTURES, FakeBrowser


@pytest.fixture
def fixture_text() -> str:
    return (FIXTURES / "docblock_paragraphs.goml").read_text(encoding="utf-8")


@pytest.fixture
def doc_variables() -> dict[str, str]:
    return {"DOC_PATH": "/docs"}


@pytest.fixture
def fake_session_factory():
    """Session factory handing out FakeBrowser instances and recording them."""
    opened: list[FakeBrowser] = []

    def factory(pages: dict):
        @contextlib.asynccontextmanager
        async def session(config):
            browser = FakeBrowser(pages)
            opened.append(browser)
            try:
                yield browser
            finally:
                browser.closed = True

        return session

    factory.opened = opened
    return factory
