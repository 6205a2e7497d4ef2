from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, cast

from fastapi import Request
from starlette.datastructures import FormData
from starlette.responses import Response

from billing_invoicer.bootstrap.contracts import CallNext
from billing_invoicer.errors import InvalidContentLengthError, MalformedBodyError, PayloadTooLargeError

ReceiveMessage = MutableMapping[str, Any]
JSON_MEDIA_TYPE = "application/json"
FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"
PARSED_MEDIA_TYPES = frozenset({JSON_MEDIA_TYPE, FORM_MEDIA_TYPE})
REQUEST_SIZE_GUARD_DETAILS_ATTR = "_request_size_guard_details"
REQUEST_RECEIVE_ATTR = "_receive"


def request_media_type(request: Request) -> str:
    content_type = request.headers.get("content-type") or ""
    return content_type.split(";", 1)[0].strip().lower()


def _declared_content_length(request: Request, max_body_bytes: int) -> int | None:
    content_length_raw = (request.headers.get("content-length") or "").strip()
    if not content_length_raw:
        return None
    try:
        content_length = int(content_length_raw)
    except ValueError as exc:
        raise InvalidContentLengthError() from exc
    if content_length < 0:
        raise InvalidContentLengthError()
    if content_length > max_body_bytes:
        raise PayloadTooLargeError(
            details={"max_request_body_bytes": max_body_bytes, "content_length": content_length},
        )
    return content_length


def _install_receive_guard(request: Request, *, max_body_bytes: int, content_length: int | None) -> None:
    received_bytes = 0
    original_receive = cast(Callable[[], Awaitable[ReceiveMessage]], getattr(request, REQUEST_RECEIVE_ATTR))

    async def guarded_receive() -> ReceiveMessage:
        nonlocal received_bytes
        message = await original_receive()
        if message.get("type") != "http.request":
            return message

        chunk = message.get("body", b"") or b""
        received_bytes += len(chunk)
        if received_bytes > max_body_bytes:
            overflow_details: dict[str, Any] = {
                "max_request_body_bytes": max_body_bytes,
                "request_body_bytes": received_bytes,
            }
            if content_length is not None:
                overflow_details["content_length"] = content_length
            setattr(request.state, REQUEST_SIZE_GUARD_DETAILS_ATTR, overflow_details)
            # Stop reading request body as soon as the limit is exceeded.
            return {"type": "http.request", "body": b"", "more_body": False}
        return message

    setattr(request, REQUEST_RECEIVE_ATTR, guarded_receive)


def decode_json_body(raw: bytes) -> Any:
    if not raw.strip():
        return {}
    try:
        decoded = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedBodyError(details={"reason": "invalid_json", "error": str(exc)}) from exc
    # Only objects and arrays are accepted at the top level.
    if not isinstance(decoded, (dict, list)):
        raise MalformedBodyError(details={"reason": "non_object_json", "type": type(decoded).__name__})
    return decoded


def form_to_dict(form: FormData) -> dict[str, Any]:
    decoded: dict[str, Any] = {}
    for key in form.keys():
        values = form.getlist(key)
        decoded[key] = values[0] if len(values) == 1 else values
    return decoded


def build_body_parser(*, max_body_bytes: int):
    """Decode JSON and URL-encoded bodies into ``request.state.body``.

    Every request gets a body; it stays ``{}`` for other content types.

    Both parsers share the same size cap. Errors are raised rather than
    rendered so they reach the terminal error handler.
    """

    async def body_parser(request: Request, call_next: CallNext) -> Response:
        request.state.body = {}
        media_type = request_media_type(request)
        if media_type not in PARSED_MEDIA_TYPES:
            return await call_next(request)

        content_length = _declared_content_length(request, max_body_bytes)
        _install_receive_guard(request, max_body_bytes=max_body_bytes, content_length=content_length)
        raw = await request.body()
        guard_details = getattr(request.state, REQUEST_SIZE_GUARD_DETAILS_ATTR, None)
        if guard_details is not None:
            raise PayloadTooLargeError(details=guard_details)

        if media_type == JSON_MEDIA_TYPE:
            request.state.body = decode_json_body(raw)
        else:
            request.state.body = form_to_dict(await request.form())
        return await call_next(request)

    return body_parser
