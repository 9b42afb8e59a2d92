from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from typing import Any, Protocol

from guiscript.errors import BrowserError, ElementNotFoundError, NavigationError


logger = logging.getLogger(__name__)

HIDE_TEXT_STYLE_ID = "guiscript-hide-text"
HIDE_TEXT_CSS = "* { color: transparent !important; caret-color: transparent !important; }"


class ToolCaller(Protocol):
    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any: ...


class DevToolsAdapter:
    """Browser operations a GUI script needs, on top of chrome-devtools-mcp tools."""

    def __init__(self, session: ToolCaller, page_ready_timeout_ms: int = 6000) -> None:
        self.session = session
        self.page_ready_timeout_ms = page_ready_timeout_ms

    async def _call(self, tool_name: str, params: dict[str, Any]) -> Any:
        raw = await self.session.call_tool(tool_name, params)
        if isinstance(raw, dict) and raw.get("isError") is True:
            raise BrowserError(tool_name, self._flatten_text(raw).strip() or "unknown error")
        return raw

    async def _evaluate(self, script: str) -> dict[str, Any]:
        raw = await self._call("evaluate_script", {"function": script})
        payload = self._extract_script_result_payload(raw) if isinstance(raw, dict) else None
        if payload is None:
            raise BrowserError("evaluate_script", f"unreadable result: {self._flatten_text(raw)[:200]}")
        return payload

    async def open_url(self, url: str) -> dict[str, Any]:
        try:
            await self._call("navigate_page", {"url": url})
        except BrowserError as exc:
            raise NavigationError(url, exc.reason) from exc

        state = await self.wait_until_page_ready(self.page_ready_timeout_ms)
        if not state.get("ok"):
            raise NavigationError(url, str(state.get("reason", "page did not become ready")))
        if str(state.get("href", "")).startswith("chrome-error://"):
            raise NavigationError(url, "browser showed an error page")
        logger.debug(f"Page ready: {state}")
        return state

    async def wait_until_page_ready(self, timeout_ms: int = 6000, poll_ms: int = 200) -> dict[str, Any]:
        script = (
            "() => {"
            "const readyState = document.readyState || 'loading';"
            "const hasBody = Boolean(document.body);"
            "const href = String(window.location && window.location.href || '');"
            "return {readyState, hasBody, href};"
            "}"
        )

        deadline = time.monotonic() + max(timeout_ms, 0) / 1000
        last_state: dict[str, Any] = {"readyState": "loading", "hasBody": False, "href": ""}

        while True:
            state = await self._evaluate(script)
            last_state = {
                "readyState": str(state.get("readyState", "loading")),
                "hasBody": bool(state.get("hasBody", False)),
                "href": str(state.get("href", "")),
            }
            if last_state["hasBody"] and last_state["readyState"] == "complete":
                return {"ok": True, **last_state}
            if time.monotonic() > deadline:
                break
            await asyncio.sleep(max(poll_ms, 50) / 1000)

        return {
            "ok": False,
            "reason": f"timed out after {timeout_ms}ms waiting for the page (readyState={last_state['readyState']})",
            **last_state,
        }

    async def set_viewport(self, width: int, height: int) -> None:
        await self._call("resize_page", {"width": width, "height": height})

    async def set_text_visible(self, visible: bool) -> None:
        style_id = json.dumps(HIDE_TEXT_STYLE_ID)
        css = json.dumps(HIDE_TEXT_CSS)
        script = (
            "() => {"
            f"const existing = document.getElementById({style_id});"
            f"if ({'true' if visible else 'false'}) {{ if (existing) existing.remove(); return {{ok:true}}; }}"
            "if (existing) return {ok:true};"
            "const style = document.createElement('style');"
            f"style.id = {style_id};"
            f"style.textContent = {css};"
            "(document.head || document.documentElement).appendChild(style);"
            "return {ok:true};"
            "}"
        )
        await self._evaluate(script)

    async def query_count(self, selector: str) -> int:
        payload = await self._query(selector, [])
        return int(payload.get("count", 0))

    async def get_properties(self, selector: str, names: list[str]) -> list[dict[str, str]]:
        payload = await self._query(selector, names)
        elements = payload.get("elements") or []
        return [{name: str(props.get(name)) for name in names} for props in elements]

    async def _query(self, selector: str, names: list[str]) -> dict[str, Any]:
        script = (
            "() => {"
            f"const selector = {json.dumps(selector)};"
            f"const names = {json.dumps(names)};"
            "let nodes;"
            "try { nodes = Array.from(document.querySelectorAll(selector)); }"
            "catch (err) { return {ok:false, reason: String(err && err.message || err)}; }"
            "const elements = names.length ? nodes.map((node) => {"
            "const props = {};"
            "for (const name of names) { props[name] = String(node[name]); }"
            "return props;"
            "}) : [];"
            "return {ok:true, count: nodes.length, elements};"
            "}"
        )
        payload = await self._evaluate(script)
        if payload.get("ok") is False:
            raise ElementNotFoundError(selector, f"invalid selector ({payload.get('reason', 'unknown')})")
        return payload

    async def list_page_ids(self) -> list[int]:
        raw = await self._call("list_pages", {})
        page_ids: list[int] = []
        for line in self._flatten_text(raw).splitlines():
            match = re.match(r"\s*(\d+)\s*:", line)
            if match:
                page_ids.append(int(match.group(1)))
        return page_ids

    async def close_all_pages(self) -> list[int]:
        """Close every page but the last one the browser insists on keeping."""
        closed: list[int] = []
        for page_id in sorted(await self.list_page_ids(), reverse=True):
            try:
                await self._call("close_page", {"pageId": page_id})
            except BrowserError as exc:
                logger.debug(f"Page {page_id} not closed: {exc.reason}")
                continue
            closed.append(page_id)
        return closed

    @classmethod
    def _extract_script_result_payload(cls, raw: dict[str, Any]) -> dict[str, Any] | None:
        result = raw.get("result")
        if isinstance(result, dict):
            return result
        structured = raw.get("structuredContent")
        if isinstance(structured, dict) and isinstance(structured.get("result"), dict):
            return structured["result"]
        return cls._extract_json_object(cls._flatten_text(raw))

    @staticmethod
    def _extract_json_object(text: str) -> dict[str, Any] | None:
        if not text:
            return None

        candidates: list[str] = []
        fenced = re.search(r"```json\s*(\{.*?\})\s*```", text, flags=re.DOTALL | re.IGNORECASE)
        if fenced:
            candidates.append(fenced.group(1))
        loose = re.search(r"(\{.*\})", text, flags=re.DOTALL)
        if loose:
            candidates.append(loose.group(1))

        for candidate in candidates:
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                return parsed
        return None

    @classmethod
    def _flatten_text(cls, value: Any) -> str:
        if isinstance(value, dict):
            content = value.get("content")
            if isinstance(content, list):
                return "\n".join(
                    str(chunk.get("text", "")) for chunk in content
                    if isinstance(chunk, dict) and chunk.get("type") == "text"
                )
            return json.dumps(value, ensure_ascii=False)
        if isinstance(value, list):
            return "\n".join(cls._flatten_text(item) for item in value)
        return "" if value is None else str(value)
