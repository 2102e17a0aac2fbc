"""Encoding of wizard steps into Telegram callback data.

Telegram limits callback data to 64 bytes. Two token forms exist and are told
apart by their prefix:

- ``i:<step>:<len>.<value><len>.<value>...`` carries the parameters inline.
  Each value is length-prefixed, so values may contain ``:`` or ``.``.
- ``k:<key>`` points at a ``token`` store record holding the step and the
  parameters, used when the inline form does not fit. The record belongs to
  the operator who was shown the button and expires after five minutes.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from dobot.errors import SessionExpiredError
from dobot.services import store_service
from dobot.utils.auth import generate_key

MAX_TOKEN_BYTES = 64
INLINE_PREFIX = "i:"
KEY_PREFIX = "k:"


def _token_key(operator_id: int, key: str) -> str:
    return f"{operator_id}:{key}"


def encode_inline(step: str, params: Iterable[str] = ()) -> str:
    body = "".join(f"{len(value)}.{value}" for value in params)
    return f"{INLINE_PREFIX}{step}:{body}"


def encode(step: str, params: Iterable[object] = (), operator_id: Optional[int] = None) -> str:
    """Return callback data for a step, spilling to the store when too large."""
    values = [str(param) for param in params]
    token = encode_inline(step, values)
    if len(token.encode("utf-8")) <= MAX_TOKEN_BYTES:
        return token

    if operator_id is None:
        raise ValueError(f"Callback data for step {step!r} does not fit inline")

    key = generate_key()
    store_service.put(
        store_service.TOKEN_NAMESPACE,
        _token_key(operator_id, key),
        {"step": step, "params": values},
        ttl=store_service.TOKEN_TTL_SECONDS,
    )
    return f"{KEY_PREFIX}{key}"


def _decode_inline(body: str) -> Tuple[str, List[str]]:
    step, separator, rest = body.partition(":")
    if not separator or not step:
        raise SessionExpiredError()

    values: List[str] = []
    position = 0
    while position < len(rest):
        dot = rest.find(".", position)
        length_text = rest[position:dot] if dot != -1 else ""
        if not length_text.isdigit():
            raise SessionExpiredError()
        start = dot + 1
        end = start + int(length_text)
        if end > len(rest):
            raise SessionExpiredError()
        values.append(rest[start:end])
        position = end

    return step, values


def decode(token: str, operator_id: int, consume: bool = False) -> Tuple[str, List[str]]:
    """
    Resolve callback data back into ``(step, params)``.

    Raises:
        SessionExpiredError: The indirection record expired, was consumed,
            belongs to another operator, or the token is malformed
    """
    token = token or ""
    if token.startswith(INLINE_PREFIX):
        return _decode_inline(token[len(INLINE_PREFIX):])

    if token.startswith(KEY_PREFIX):
        store_key = _token_key(operator_id, token[len(KEY_PREFIX):])
        if consume:
            record = store_service.pop(store_service.TOKEN_NAMESPACE, store_key)
        else:
            record = store_service.get(store_service.TOKEN_NAMESPACE, store_key)
        if not record:
            raise SessionExpiredError()
        return record["step"], list(record["params"])

    raise SessionExpiredError()
