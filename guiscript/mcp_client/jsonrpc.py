from __future__ import annotations

import itertools
import json
from dataclasses import dataclass
from typing import Any


_request_ids = itertools.count(1)


class JsonRpcError(Exception):
    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"JSON-RPC error {code}: {message}")


@dataclass(slots=True)
class JsonRpcMessage:
    method: str
    params: dict[str, Any] | None = None
    id: int | None = None

    @property
    def is_notification(self) -> bool:
        return self.id is None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"jsonrpc": "2.0", "method": self.method}
        if self.params is not None:
            payload["params"] = self.params
        if self.id is not None:
            payload["id"] = self.id
        return payload

    def encode(self) -> bytes:
        return (json.dumps(self.to_dict(), ensure_ascii=False) + "\n").encode("utf-8")


def request(method: str, params: dict[str, Any] | None = None) -> JsonRpcMessage:
    return JsonRpcMessage(method=method, params=params, id=next(_request_ids))


def notification(method: str, params: dict[str, Any] | None = None) -> JsonRpcMessage:
    return JsonRpcMessage(method=method, params=params)


def decode(line: bytes) -> dict[str, Any]:
    payload = json.loads(line.decode("utf-8"))
    if not isinstance(payload, dict):
        raise JsonRpcError(-32600, f"Expected a JSON object, got {type(payload).__name__}")
    return payload


def is_response(payload: dict[str, Any]) -> bool:
    return payload.get("jsonrpc") == "2.0" and "id" in payload and (
        "result" in payload or "error" in payload
    )


def is_notification(payload: dict[str, Any]) -> bool:
    return payload.get("jsonrpc") == "2.0" and "method" in payload and "id" not in payload


def unwrap(payload: dict[str, Any]) -> Any:
    if "error" in payload:
        err = payload["error"] or {}
        raise JsonRpcError(
            code=err.get("code", -32000),
            message=err.get("message", "Unknown JSON-RPC error"),
            data=err.get("data"),
        )
    return payload.get("result")
