"""JSON-RPC request and response helpers shared by the server methods."""

from __future__ import annotations

import copy
import json
import logging
import uuid
from enum import IntEnum
from typing import Any

__all__ = [
    "JSON_RPC_ID",
    "JSON_RPC_PARAMS",
    "JSON_RPC_RESULT",
    "JSON_RPC_ERROR",
    "SESSION_ID",
    "VALUE",
    "TYPE",
    "REQUEST_TIMEOUT",
    "ErrorCode",
    "CallError",
    "parse_request",
    "serialize_response",
    "require_params",
    "get_or_create_session_id",
    "response_session_id",
    "inject_session_id",
    "ping",
]

log = logging.getLogger(__name__)

JSON_RPC_ID = "id"
JSON_RPC_PARAMS = "params"
JSON_RPC_RESULT = "result"
JSON_RPC_ERROR = "error"

SESSION_ID = "sessionId"
VALUE = "value"
TYPE = "type"

REQUEST_TIMEOUT = 20000  # milliseconds


class ErrorCode(IntEnum):
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class CallError(Exception):
    """An error to be reported to the caller as a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_json(self) -> dict[str, Any]:
        """The JSON-RPC ``error`` member for this error."""
        error: dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


def _get_string(container: Any, key: str) -> str:
    if not isinstance(container, dict):
        raise CallError(
            ErrorCode.INVALID_PARAMS, f"'{key}' parameter should be an object member"
        )
    if key not in container:
        raise CallError(ErrorCode.INVALID_PARAMS, f"'{key}' parameter is required")
    value = container[key]
    if not isinstance(value, str):
        raise CallError(ErrorCode.INVALID_PARAMS, f"'{key}' parameter should be a string")
    return value


def _get_member(container: Any, key: str) -> Any:
    if not isinstance(container, dict) or key not in container:
        raise CallError(ErrorCode.INVALID_PARAMS, f"'{key}' parameter is required")
    return container[key]


def parse_request(text: str) -> Any:
    """Decode a request; malformed JSON raises a ``PARSE_ERROR`` :class:`CallError`."""
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise CallError(ErrorCode.PARSE_ERROR, "Parse error.") from exc


def serialize_response(response: Any) -> str | None:
    """Encode a response without indentation; ``None`` gives ``None``."""
    if response is None:
        return None
    return json.dumps(response, separators=(",", ":"), ensure_ascii=False)


def require_params(params: Any) -> None:
    """Raise an ``INVALID_PARAMS`` error when ``params`` is missing."""
    if params is None:
        raise CallError(
            ErrorCode.INVALID_PARAMS, "'params' is required", {TYPE: "INVALID_PARAMS"}
        )


def get_or_create_session_id(params: Any) -> tuple[str, bool]:
    """Return the session id in ``params`` and ``True``, or a new id and ``False``."""
    try:
        return _get_string(params, SESSION_ID), True
    except CallError:
        return str(uuid.uuid4()), False


def response_session_id(response: Any) -> str:
    """Session id of a successful response; ``""`` for error responses.

    Raises :class:`CallError` when the result or its session id is missing.
    """
    if isinstance(response, dict) and JSON_RPC_ERROR in response:
        return ""
    result = _get_member(response, JSON_RPC_RESULT)
    return _get_string(result, SESSION_ID)


def inject_session_id(request: Any, session_id: str) -> Any:
    """Return ``request`` with ``session_id`` added to its params if they lack one."""
    if not isinstance(request, dict):
        return request
    params = request.get(JSON_RPC_PARAMS)
    if params is None:
        params = {}
    elif not isinstance(params, dict):
        return request
    if isinstance(params.get(SESSION_ID), str):
        return request
    log.debug("Injecting sessionId %s", session_id)
    injected = copy.copy(request)
    new_params = dict(params)
    new_params[SESSION_ID] = session_id
    injected[JSON_RPC_PARAMS] = new_params
    return injected


def ping(params: Any) -> dict[str, Any]:
    """Answer a ping with ``pong``, echoing the session id when one is given."""
    response: dict[str, Any] = {}
    session_id = ""
    try:
        session_id = _get_string(params, SESSION_ID)
        response[SESSION_ID] = session_id
    except CallError:
        pass

    if session_id:
        log.debug("WebSocket Ping/Pong with sessionId %s", session_id)
    else:
        log.debug("WebSocket Ping/Pong")

    response[VALUE] = "pong"
    return response