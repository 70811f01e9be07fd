"""A small Model Context Protocol server speaking JSON-RPC over line-delimited streams."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, TextIO

PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")
LATEST_PROTOCOL_VERSION = PROTOCOL_VERSIONS[0]

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602

ToolHandler = Callable[[dict], Mapping]


@dataclass(frozen=True)
class Tool:
    """A named tool with its JSON schemas and the callable that runs it."""

    name: str
    description: str
    input_schema: Mapping[str, Any]
    handler: ToolHandler
    output_schema: Mapping[str, Any] | None = field(default=None)

    def describe(self) -> dict:
        """Return the tool's entry for a tools/list reply."""
        entry: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "inputSchema": dict(self.input_schema),
        }
        if self.output_schema is not None:
            entry["outputSchema"] = dict(self.output_schema)
        return entry


class _RpcError(Exception):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def _error_response(request_id: Any, code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


class McpServer:
    """Dispatches MCP requests to registered tools."""

    def __init__(self, name: str, version: str) -> None:
        self.name = name
        self.version = version
        self._tools: dict[str, Tool] = {}

    @property
    def tools(self) -> tuple[Tool, ...]:
        return tuple(self._tools.values())

    def add_tool(self, tool: Tool) -> None:
        """Register ``tool``, replacing any tool of the same name."""
        self._tools[tool.name] = tool

    def handle_message(self, message: Any) -> dict | None:
        """Process one decoded JSON-RPC message and return the reply, if any."""
        if isinstance(message, dict) and "method" not in message and (
            "result" in message or "error" in message
        ):
            return None
        if (
            not isinstance(message, dict)
            or message.get("jsonrpc") != "2.0"
            or not isinstance(message.get("method"), str)
        ):
            request_id = message.get("id") if isinstance(message, dict) else None
            return _error_response(request_id, INVALID_REQUEST, "invalid request")

        is_notification = "id" not in message
        request_id = message.get("id")
        try:
            result = self._dispatch(message["method"], message.get("params"))
        except _RpcError as exc:
            if is_notification:
                return None
            return _error_response(request_id, exc.code, exc.message)
        if is_notification:
            return None
        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    def serve(self, reader: Iterable[str], writer: TextIO) -> None:
        """Answer newline-delimited JSON-RPC messages from ``reader`` until it ends."""
        for line in reader:
            line = line.strip()
            if not line:
                continue
            try:
                message = json.loads(line)
            except ValueError as exc:
                response: dict | None = _error_response(None, PARSE_ERROR, f"parse error: {exc}")
            else:
                response = self.handle_message(message)
            if response is not None:
                writer.write(json.dumps(response) + "\n")
                writer.flush()

    def _dispatch(self, method: str, params: Any) -> dict:
        if params is None:
            params = {}
        if not isinstance(params, dict):
            raise _RpcError(INVALID_PARAMS, "params must be an object")

        if method == "initialize":
            return self._initialize(params)
        if method == "ping":
            return {}
        if method == "tools/list":
            return {"tools": [tool.describe() for tool in self._tools.values()]}
        if method == "tools/call":
            return self._call_tool(params)
        if method.startswith("notifications/"):
            return {}
        raise _RpcError(METHOD_NOT_FOUND, f"method not found: {method}")

    def _initialize(self, params: dict) -> dict:
        requested = params.get("protocolVersion")
        version = requested if requested in PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {"listChanged": True}},
            "serverInfo": {"name": self.name, "version": self.version},
        }

    def _call_tool(self, params: dict) -> dict:
        name = params.get("name")
        if not isinstance(name, str):
            raise _RpcError(INVALID_PARAMS, "tool name must be a string")
        tool = self._tools.get(name)
        if tool is None:
            raise _RpcError(INVALID_PARAMS, f"unknown tool {name!r}")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise _RpcError(INVALID_PARAMS, "tool arguments must be an object")

        try:
            output = dict(tool.handler(arguments))
        except Exception as exc:  # tool failures are reported to the caller as results
            return {"content": [{"type": "text", "text": str(exc)}], "isError": True}
        return {
            "content": [{"type": "text", "text": json.dumps(output)}],
            "structuredContent": output,
            "isError": False,
        }