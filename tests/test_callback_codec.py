"""Tests for callback data encoding."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from dobot.errors import SessionExpiredError  # noqa: E402
from dobot.services import store_service  # noqa: E402
from dobot.utils import callback_codec  # noqa: E402


def test_values_may_contain_separator_characters():
    token = callback_codec.encode("it", ["app.prod:v2", "3.14"], operator_id=1)

    assert token.startswith(callback_codec.INLINE_PREFIX)
    assert callback_codec.decode(token, 1) == ("it", ["app.prod:v2", "3.14"])


def test_step_without_params():
    assert callback_codec.decode(callback_codec.encode("bk"), 1) == ("bk", [])


def test_long_params_spill_into_store(clock):
    long_ref = "gitlab-gitlabenterprise-20-04-with-a-very-long-suffix-for-testing"

    token = callback_codec.encode("it", [long_ref], operator_id=7)

    assert token.startswith(callback_codec.KEY_PREFIX)
    assert len(token.encode("utf-8")) <= callback_codec.MAX_TOKEN_BYTES
    assert callback_codec.decode(token, 7) == ("it", [long_ref])


def test_spilled_token_is_private_to_its_operator(clock):
    token = callback_codec.encode("it", ["x" * 80], operator_id=7)

    with pytest.raises(SessionExpiredError):
        callback_codec.decode(token, 8)


def test_spilled_token_expires(clock):
    token = callback_codec.encode("it", ["x" * 80], operator_id=7)

    clock.advance(store_service.TOKEN_TTL_SECONDS + 1)

    with pytest.raises(SessionExpiredError):
        callback_codec.decode(token, 7)


def test_consumed_token_cannot_be_reused(clock):
    token = callback_codec.encode("cf", ["y" * 80], operator_id=7)

    callback_codec.decode(token, 7, consume=True)

    with pytest.raises(SessionExpiredError):
        callback_codec.decode(token, 7)


def test_oversized_token_without_operator_is_refused():
    with pytest.raises(ValueError):
        callback_codec.encode("it", ["z" * 80])


@pytest.mark.parametrize("token", ["", "x:rg:4.nyc1", "i:rg:9.nyc1", "i:rg:a.nyc1", "i::4.nyc1"])
def test_malformed_tokens_are_reported_as_expired(token):
    with pytest.raises(SessionExpiredError):
        callback_codec.decode(token, 1)
