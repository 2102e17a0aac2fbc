"""Typed errors raised by the wizard services.

Every error carries a ``user_message`` that the webhook layer sends back to
the chat verbatim. Services raise; the webhook route catches ``BotError`` per
event and reports it, so a failure never leaves a single update's handling.
"""

from __future__ import annotations

from typing import Optional


class BotError(Exception):
    """Base exception for all user-facing wizard failures."""

    user_message = "❌ Something went wrong."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.user_message)
        if message:
            self.user_message = message


class CredentialMissingError(BotError):
    user_message = (
        "❌ No API token found.\n\n"
        "Please use /setapi to configure your DigitalOcean API token first."
    )


class CredentialInvalidError(BotError):
    user_message = (
        "❌ Invalid API token!\n\n"
        "The token you provided is not valid or doesn't have the required permissions.\n\n"
        "Please check it has Read & Write scope and try /setapi again."
    )


class SessionExpiredError(BotError):
    user_message = "⌛ Session expired. Please start again with /create or /droplets."


class StaleSessionError(SessionExpiredError):
    """A concurrent update already advanced the session."""

    user_message = "⚠️ This step was already handled. Please continue from the latest message."


class InputValidationError(BotError):
    user_message = "❌ Invalid input."


class EmptyResultError(BotError):
    user_message = "❌ Nothing found."


class RemoteApiError(BotError):
    """Non-success response or transport failure from the provider API."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"❌ DigitalOcean API error: {message}")
        self.provider_message = message
        self.status_code = status_code
