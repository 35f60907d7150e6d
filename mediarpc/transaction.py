"""Batched RPC transactions and the request-cache hooks around the handler."""

from __future__ import annotations

import copy
import logging
import re
import uuid
from collections.abc import Callable
from typing import Any

from mediarpc.request_cache import CacheError, RequestCache
from mediarpc.rpc import (
    JSON_RPC_ID,
    JSON_RPC_PARAMS,
    JSON_RPC_RESULT,
    SESSION_ID,
    TYPE,
    VALUE,
    CallError,
    ErrorCode,
    get_or_create_session_id,
    require_params,
)

__all__ = [
    "NEW_REF",
    "MALFORMED_TRANSACTION",
    "insert_result",
    "inject_refs",
    "run_transaction",
    "CachingHooks",
]

log = logging.getLogger(__name__)

NEW_REF = "newref:"
MALFORMED_TRANSACTION = "MALFORMED_TRANSACTION"

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

Process = Callable[[dict[str, Any]], "tuple[Any, bool]"]


def _malformed(message: str) -> CallError:
    return CallError(ErrorCode.INVALID_REQUEST, message, {TYPE: MALFORMED_TRANSACTION})


def insert_result(responses: list[Any], index: int) -> Any:
    """Return the ``value`` of the result of the response at ``index``.

    A missing response or result raises a ``MALFORMED_TRANSACTION`` error.
    """
    response = responses[index] if 0 <= index < len(responses) else None
    if not isinstance(response, dict) or JSON_RPC_RESULT not in response:
        log.error("Error while inserting new ref value: 'result' parameter is required")
        raise _malformed(f"Result not found on request {index}")
    result = response[JSON_RPC_RESULT]
    if isinstance(result, dict):
        return result.get(VALUE)
    if result is None:
        return None
    raise _malformed(f"Result not found on request {index}")


def inject_refs(params: Any, responses: list[Any]) -> Any:
    """Return ``params`` with every ``newref:<n>`` string replaced.

    Each reference is replaced by the value returned by request ``n``.
    """
    if isinstance(params, dict):
        return {key: inject_refs(item, responses) for key, item in params.items()}
    if isinstance(params, list):
        return [inject_refs(item, responses) for item in params]
    if isinstance(params, str) and len(params) > len(NEW_REF) and params.startswith(NEW_REF):
        ref = params[len(NEW_REF):]
        match = _LEADING_INT.match(ref)
        if match is None:
            raise _malformed(f"Invalid index of newref '{ref}'")
        return insert_result(responses, int(match.group(1)))
    return params


def _as_uint(value: Any) -> int | None:
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and value.is_integer() and value >= 0:
        return int(value)
    return None


def run_transaction(params: Any, process: Process) -> dict[str, Any]:
    """Run the ``operations`` of a transaction one after another.

    ``process`` takes a request and returns ``(response, keep_going)``.
    Operation ``i`` must carry id ``i``; it is sent with a unique id, the
    transaction's session id, and ``newref:`` references resolved. Processing
    stops after the first operation for which ``keep_going`` is false.
    """
    require_params(params)
    session_id, _ = get_or_create_session_id(params)

    if not isinstance(params, dict) or "operations" not in params:
        raise CallError(ErrorCode.INVALID_PARAMS, "'operations' parameter is required")
    operations = params["operations"]
    if not isinstance(operations, list):
        raise CallError(
            ErrorCode.INVALID_PARAMS, "'operations' parameter should be an array"
        )

    unique_id = str(uuid.uuid4())
    responses: list[Any] = []

    for index, operation in enumerate(operations):
        if not isinstance(operation, dict):
            raise _malformed(f"Request '{index}' should be an object")
        request = copy.deepcopy(operation)

        request_params = request.get(JSON_RPC_PARAMS)
        if request_params is None:
            request_params = {}
        elif not isinstance(request_params, dict):
            raise _malformed(f"Params of request '{index}' should be an object")
        request_params[SESSION_ID] = session_id

        if _as_uint(request.get(JSON_RPC_ID)) != index:
            raise _malformed(f"Id of request '{index}' should be '{index}'")

        request[JSON_RPC_ID] = f"{unique_id}_{index}"
        request[JSON_RPC_PARAMS] = inject_refs(request_params, responses)

        response, keep_going = process(request)
        answer = dict(response) if isinstance(response, dict) else {}
        answer[JSON_RPC_ID] = index
        responses.append(answer)

        if not keep_going:
            break

    return {VALUE: responses, SESSION_ID: session_id}


def _string_member(container: Any, key: str) -> str:
    if not isinstance(container, dict):
        raise CallError(ErrorCode.INVALID_PARAMS, f"'{key}' parameter is required")
    value = container.get(key)
    if not isinstance(value, str):
        raise CallError(ErrorCode.INVALID_PARAMS, f"'{key}' parameter should be a string")
    return value


def _object_member(container: Any, key: str) -> Any:
    if not isinstance(container, dict) or key not in container:
        raise CallError(ErrorCode.INVALID_PARAMS, f"'{key}' parameter is required")
    return container[key]


class CachingHooks:
    """Answers repeated requests from a :class:`RequestCache`."""

    def __init__(self, cache: RequestCache) -> None:
        self.cache = cache

    def pre_process(self, request: Any) -> Any:
        """Cached response for ``request``, or ``None`` if it must be processed."""
        try:
            request_id = _string_member(request, JSON_RPC_ID)
            params = _object_member(request, JSON_RPC_PARAMS)
            session_id = _string_member(params, SESSION_ID)
            response = self.cache.get_cached_response(session_id, request_id)
        except Exception:
            return None
        log.debug("Cached response")
        return response

    def post_process(self, request: Any, response: Any) -> None:
        """Cache ``response`` unless one is already cached for the request."""
        try:
            request_id = _string_member(request, JSON_RPC_ID)
            try:
                result = _object_member(response, JSON_RPC_RESULT)
                session_id = _string_member(result, SESSION_ID)
            except CallError:
                params = _object_member(request, JSON_RPC_PARAMS)
                session_id = _string_member(params, SESSION_ID)
        except CallError:
            return

        try:
            self.cache.get_cached_response(session_id, request_id)
        except CacheError:
            log.debug("Caching: %s", response)
            self.cache.add_response(session_id, request_id, response)