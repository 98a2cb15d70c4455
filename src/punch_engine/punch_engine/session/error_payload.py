"""Decoding of server error bodies.

Bodies come in several shapes; each is decoded into one tagged variant and the
user-facing message is picked by a fixed precedence:

1. ``errors`` as a list of ``{message}`` items
2. ``errors`` as a field-keyed map (``non_field_errors`` first)
3. a common singular field: ``detail``, ``message``, ``error``, ``email[0]``,
   ``password[0]``, ``non_field_errors[0]``
4. "Request failed with status N"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

_SINGULAR_FIELDS = ("detail", "message", "error")
_SINGULAR_LIST_FIELDS = ("email", "password", "non_field_errors")


@dataclass(frozen=True)
class FieldErrorList:
    messages: tuple[str, ...]


@dataclass(frozen=True)
class FieldErrorMap:
    errors: dict[str, tuple[str, ...]]


@dataclass(frozen=True)
class SingleMessage:
    text: str


@dataclass(frozen=True)
class Unknown:
    status_code: int


ErrorPayload = Union[FieldErrorList, FieldErrorMap, SingleMessage, Unknown]


def _as_text_list(value: Any) -> tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value if v not in (None, ""))
    if value in (None, ""):
        return ()
    return (str(value),)


def _list_messages(items: list) -> tuple[str, ...]:
    out: list[str] = []
    for item in items:
        if isinstance(item, dict):
            text = item.get("message") or item.get("detail")
            if text:
                out.append(str(text))
        elif item not in (None, ""):
            out.append(str(item))
    return tuple(out)


def decode_error_payload(body: Any, status_code: int) -> ErrorPayload:
    if not isinstance(body, dict):
        if isinstance(body, str) and body.strip() and not body.lstrip().startswith("<"):
            return SingleMessage(body.strip())
        return Unknown(status_code)

    errors = body.get("errors")
    if isinstance(errors, list):
        messages = _list_messages(errors)
        if messages:
            return FieldErrorList(messages)
    elif isinstance(errors, dict):
        mapped = {str(k): _as_text_list(v) for k, v in errors.items()}
        mapped = {k: v for k, v in mapped.items() if v}
        if mapped:
            return FieldErrorMap(mapped)

    for name in _SINGULAR_FIELDS:
        value = body.get(name)
        if isinstance(value, str) and value.strip():
            return SingleMessage(value.strip())

    for name in _SINGULAR_LIST_FIELDS:
        values = _as_text_list(body.get(name))
        if values:
            return SingleMessage(values[0])

    return Unknown(status_code)


def error_message(payload: ErrorPayload) -> str:
    if isinstance(payload, FieldErrorList):
        return ", ".join(payload.messages)
    if isinstance(payload, FieldErrorMap):
        if "non_field_errors" in payload.errors:
            return ", ".join(payload.errors["non_field_errors"])
        first = next(iter(payload.errors.values()))
        return ", ".join(first)
    if isinstance(payload, SingleMessage):
        return payload.text
    return f"Request failed with status {payload.status_code}"
